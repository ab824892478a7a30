"""
Ledger: balance and allowance accounting shared by every token variant.

The ledger is the only writer of the balance and allowance maps. Transfers
move value between accounts; supply changes go through :meth:`Ledger.credit`
and :meth:`Ledger.debit`, which adjust ``total_supply`` in the same step, so
``sum(balances) == total_supply`` holds after every operation.

Two failure dialects exist across token families:

- ``TransferDialect.SILENT``: transfer/transferFrom return ``False`` and
  leave state untouched when the sender lacks balance or allowance (or the
  recipient balance would overflow).
- ``TransferDialect.STRICT``: the same conditions raise
  :class:`InsufficientBalance` / :class:`InsufficientAllowance`, and a zero
  recipient raises :class:`InvalidRecipient`.
"""

from __future__ import annotations

import copy
import logging
from enum import Enum
from typing import Any, Callable, Mapping

from .addresses import normalize_address
from .constants import UINT256_MAX, ZERO_ADDRESS
from .exceptions import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidParameter,
    InvalidRecipient,
)

logger = logging.getLogger(__name__)


class TransferDialect(Enum):
    SILENT = "silent"
    STRICT = "strict"


def validate_amount(amount: int) -> int:
    """Reject values outside the uint256 domain."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidParameter(f"Amount must be an integer, got {type(amount).__name__}")
    if amount < 0:
        raise InvalidParameter("Amount cannot be negative")
    if amount > UINT256_MAX:
        raise InvalidParameter("Amount exceeds uint256")
    return amount


class Ledger:
    """Balances, allowances and total supply of one token."""

    def __init__(
        self,
        dialect: TransferDialect = TransferDialect.STRICT,
        emit: Callable[..., None] | None = None,
    ) -> None:
        self.dialect = dialect
        self.total_supply = 0
        self.balances: dict[str, int] = {}
        self.allowances: dict[str, dict[str, int]] = {}
        self._emit = emit or (lambda event_type, **args: None)

    # ==================== View Functions ====================

    def balance_of(self, account: str) -> int:
        return self.balances.get(normalize_address(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        owner_norm = normalize_address(owner)
        spender_norm = normalize_address(spender)
        return self.allowances.get(owner_norm, {}).get(spender_norm, 0)

    def check_conservation(self) -> bool:
        """Return True when the balances add up to the total supply."""
        return sum(self.balances.values()) == self.total_supply

    # ==================== Transfers ====================

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Move ``amount`` from ``sender`` to ``recipient``.

        Returns:
            True on success; False on a silent-dialect failure

        Raises:
            InsufficientBalance: strict dialect, amount exceeds sender balance
            InvalidRecipient: strict dialect, recipient is the zero address
        """
        sender_norm = normalize_address(sender)
        recipient_norm = normalize_address(recipient)
        validate_amount(amount)

        sender_balance = self.balances.get(sender_norm, 0)
        recipient_balance = self.balances.get(recipient_norm, 0)

        if self.dialect is TransferDialect.SILENT:
            if sender_balance < amount or recipient_balance + amount > UINT256_MAX:
                logger.debug(
                    "Transfer declined",
                    extra={
                        "event": "ledger.transfer_declined",
                        "from": sender_norm[:10],
                        "to": recipient_norm[:10],
                        "amount": amount,
                        "balance": sender_balance,
                    },
                )
                return False
        else:
            if amount > sender_balance:
                raise InsufficientBalance(
                    "You do not have sufficient balance to transfer these many tokens.",
                    details={"from": sender_norm, "amount": amount, "balance": sender_balance},
                )
            if recipient_norm == ZERO_ADDRESS:
                raise InvalidRecipient("Invalid address", details={"to": recipient_norm})

        self._move(sender_norm, recipient_norm, amount)
        self._emit("Transfer", from_address=sender_norm, to_address=recipient_norm, value=amount)

        logger.debug(
            "Token transfer",
            extra={
                "event": "ledger.transfer",
                "from": sender_norm[:10],
                "to": recipient_norm[:10],
                "amount": amount,
            },
        )
        return True

    def transfer_from(self, spender: str, from_addr: str, to_addr: str, amount: int) -> bool:
        """
        Move ``amount`` out of ``from_addr`` using the spender's allowance.

        Returns:
            True on success; False on a silent-dialect failure

        Raises:
            InsufficientBalance: strict dialect, amount exceeds the owner's balance
            InsufficientAllowance: strict dialect, amount exceeds the allowance
            InvalidRecipient: strict dialect, recipient is the zero address
        """
        spender_norm = normalize_address(spender)
        from_norm = normalize_address(from_addr)
        to_norm = normalize_address(to_addr)
        validate_amount(amount)

        current_allowance = self.allowance(from_norm, spender_norm)
        from_balance = self.balances.get(from_norm, 0)

        if self.dialect is TransferDialect.SILENT:
            if amount > current_allowance or amount > from_balance:
                logger.debug(
                    "TransferFrom declined",
                    extra={
                        "event": "ledger.transfer_from_declined",
                        "spender": spender_norm[:10],
                        "from": from_norm[:10],
                        "amount": amount,
                        "allowance": current_allowance,
                        "balance": from_balance,
                    },
                )
                return False
        else:
            if amount > from_balance:
                raise InsufficientBalance(
                    "The specified account does not have sufficient balance to transfer these many tokens.",
                    details={"from": from_norm, "amount": amount, "balance": from_balance},
                )
            if amount > current_allowance:
                raise InsufficientAllowance(
                    "You don't have approval to transfer these many tokens.",
                    details={"spender": spender_norm, "amount": amount, "allowance": current_allowance},
                )
            if to_norm == ZERO_ADDRESS:
                raise InvalidRecipient("Invalid address", details={"to": to_norm})

        self._set_allowance(from_norm, spender_norm, current_allowance - amount)
        self._move(from_norm, to_norm, amount)
        self._emit("Transfer", from_address=from_norm, to_address=to_norm, value=amount)

        logger.debug(
            "Token transferFrom",
            extra={
                "event": "ledger.transfer_from",
                "spender": spender_norm[:10],
                "from": from_norm[:10],
                "to": to_norm[:10],
                "amount": amount,
            },
        )
        return True

    # ==================== Allowances ====================

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Overwrite the allowance of ``spender`` over ``owner``'s balance.

        The previous allowance is replaced, not adjusted, so a spender watching
        the pending approval can still spend the old amount first.
        """
        owner_norm = normalize_address(owner)
        spender_norm = normalize_address(spender)
        validate_amount(amount)

        self._set_allowance(owner_norm, spender_norm, amount)
        self._emit("Approval", owner=owner_norm, spender=spender_norm, value=amount)
        return True

    def increase_approval(self, owner: str, spender: str, added_value: int) -> bool:
        owner_norm = normalize_address(owner)
        spender_norm = normalize_address(spender)
        validate_amount(added_value)

        new_allowance = self.allowance(owner_norm, spender_norm) + added_value
        if new_allowance > UINT256_MAX:
            raise InvalidParameter(
                "Allowance would exceed uint256",
                details={"spender": spender_norm, "added_value": added_value},
            )

        self._set_allowance(owner_norm, spender_norm, new_allowance)
        self._emit("Approval", owner=owner_norm, spender=spender_norm, value=new_allowance)
        return True

    def decrease_approval(self, owner: str, spender: str, subtracted_value: int) -> bool:
        """Subtract from an allowance, clamping at zero instead of underflowing."""
        owner_norm = normalize_address(owner)
        spender_norm = normalize_address(spender)
        validate_amount(subtracted_value)

        current = self.allowance(owner_norm, spender_norm)
        if subtracted_value >= current:
            new_allowance = 0
        else:
            new_allowance = current - subtracted_value

        self._set_allowance(owner_norm, spender_norm, new_allowance)
        self._emit("Approval", owner=owner_norm, spender=spender_norm, value=new_allowance)
        return True

    # ==================== Supply Primitives ====================

    def credit(self, account: str, amount: int) -> None:
        """Create ``amount`` new tokens in ``account``."""
        account_norm = normalize_address(account)
        validate_amount(amount)
        if self.total_supply + amount > UINT256_MAX:
            raise InvalidParameter("Total supply would exceed uint256")

        self.total_supply += amount
        self.balances[account_norm] = self.balances.get(account_norm, 0) + amount

    def debit(self, account: str, amount: int) -> None:
        """Destroy ``amount`` tokens held by ``account``."""
        account_norm = normalize_address(account)
        validate_amount(amount)
        balance = self.balances.get(account_norm, 0)
        if amount > balance:
            raise InsufficientBalance(
                "You don't have that many tokens to burn.",
                details={"from": account_norm, "amount": amount, "balance": balance},
            )

        self.balances[account_norm] = balance - amount
        self.total_supply -= amount

    # ==================== Helpers ====================

    def _move(self, from_norm: str, to_norm: str, amount: int) -> None:
        # Debit before reading the recipient so self-transfers net to zero.
        self.balances[from_norm] = self.balances.get(from_norm, 0) - amount
        self.balances[to_norm] = self.balances.get(to_norm, 0) + amount

    def _set_allowance(self, owner_norm: str, spender_norm: str, amount: int) -> None:
        self.allowances.setdefault(owner_norm, {})[spender_norm] = amount

    # ==================== Serialization ====================

    def snapshot(self) -> dict[str, Any]:
        return {
            "total_supply": self.total_supply,
            "balances": dict(self.balances),
            "allowances": copy.deepcopy(self.allowances),
        }

    def restore(self, snapshot: Mapping[str, Any]) -> None:
        self.total_supply = snapshot["total_supply"]
        self.balances = dict(snapshot["balances"])
        self.allowances = copy.deepcopy(dict(snapshot["allowances"]))
