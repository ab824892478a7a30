"""
Supply controller: capped minting and burning.

Both operations change ``total_supply`` and exactly one balance through the
ledger's supply primitives. Guards are evaluated by the owning contract
before these methods run; the supply preconditions (cap, then the
minting-finished flag) live here.
"""

from __future__ import annotations

import logging
from typing import Callable

from .addresses import normalize_address
from .constants import ZERO_ADDRESS
from .exceptions import AccessDenied, AlreadyInState, CapExceeded
from .guards import GUARD_MESSAGES, GuardFlags
from .ledger import Ledger, validate_amount
from .metrics import update_total_supply

logger = logging.getLogger(__name__)


class SupplyController:
    def __init__(
        self,
        ledger: Ledger,
        flags: GuardFlags,
        maximum_supply: int | None = None,
        emit: Callable[..., None] | None = None,
        token: str = "",
    ) -> None:
        self.ledger = ledger
        self.flags = flags
        self.maximum_supply = maximum_supply
        self.token = token
        self._emit = emit or (lambda event_type, **args: None)

    def cap(self) -> int | None:
        return self.maximum_supply

    def publish_supply(self) -> None:
        update_total_supply(self.token, self.ledger.total_supply)

    def mint(self, to: str, amount: int) -> bool:
        """
        Create ``amount`` tokens for ``to``.

        The cap is checked before the minting-finished flag, so an
        over-cap request is reported as such even after minting ended.

        Raises:
            CapExceeded: total supply would pass the maximum supply
            AccessDenied: minting has been finished
        """
        to_norm = normalize_address(to)
        validate_amount(amount)

        if self.maximum_supply is not None and self.ledger.total_supply + amount > self.maximum_supply:
            raise CapExceeded(
                "You cannot print those many tokens.",
                details={
                    "total_supply": self.ledger.total_supply,
                    "amount": amount,
                    "maximum_supply": self.maximum_supply,
                },
            )
        if self.flags.minting_finished:
            raise AccessDenied(
                GUARD_MESSAGES["minting_open"],
                details={"operation": "mint", "guard": "minting_open"},
            )

        self.ledger.credit(to_norm, amount)
        self._emit("Mint", to=to_norm, amount=amount)
        self._emit("Transfer", from_address=ZERO_ADDRESS, to_address=to_norm, value=amount)
        self.publish_supply()

        logger.info(
            "Tokens minted",
            extra={
                "event": "supply.mint",
                "token": self.token[:10],
                "to": to_norm[:10],
                "amount": amount,
                "new_supply": self.ledger.total_supply,
            },
        )
        return True

    def finish_minting(self) -> bool:
        """Stop minting forever."""
        if self.flags.minting_finished:
            raise AlreadyInState("The minting was already finished.")

        self.flags.minting_finished = True
        self._emit("MintFinished")
        logger.info("Minting finished", extra={"event": "supply.mint_finished", "token": self.token[:10]})
        return True

    def burn(self, holder: str, amount: int) -> None:
        """
        Destroy ``amount`` tokens held by ``holder``.

        Raises:
            InsufficientBalance: holder balance is below ``amount`` (never silent)
        """
        holder_norm = normalize_address(holder)
        self.ledger.debit(holder_norm, amount)
        self._emit("Burn", burner=holder_norm, value=amount)
        self._emit("Transfer", from_address=holder_norm, to_address=ZERO_ADDRESS, value=amount)
        self.publish_supply()

        logger.info(
            "Tokens burned",
            extra={
                "event": "supply.burn",
                "token": self.token[:10],
                "from": holder_norm[:10],
                "amount": amount,
                "new_supply": self.ledger.total_supply,
            },
        )
