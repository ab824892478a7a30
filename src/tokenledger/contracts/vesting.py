"""
Token vesting: releases a held token balance linearly after a cliff.

A single :class:`TokenVesting` contract can hold any number of tokens; each
token address has its own ``released`` accumulator and ``revoked`` flag.
For a token held by the contract::

    total    = balance_of(vesting) + released[token]
    vested   = 0                                   if now <  start + cliff
             = total                               if now >= start + duration or revoked
             = total * (now - start) // duration   otherwise
    releasable = vested - released[token]

``released`` only ever grows by exactly the releasable amount, so the
beneficiary can never be paid twice for the same entitlement. Revocation
refunds the owner everything that has not vested yet; the part that had
vested but was not yet released stays claimable by the beneficiary.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from ..core.addresses import normalize_address
from ..core.constants import ZERO_ADDRESS
from ..core.environment import Contract, Environment, atomic
from ..core.exceptions import (
    AlreadyInState,
    ExternalCallFailed,
    InsufficientBalance,
    InvalidParameter,
    NotRevocable,
    NothingToRelease,
    TokenError,
)
from ..core.guards import GuardFlags, GuardPolicy, GuardStack
from .interfaces import TokenHandle

logger = logging.getLogger(__name__)

VESTING_POLICY = GuardPolicy(
    {
        "revoke": ("is_owner",),
        "transfer_ownership": ("is_owner",),
        "renounce_ownership": ("is_owner",),
    }
)


def transfer_out(contract: Contract, token: TokenHandle, recipient: str, amount: int) -> None:
    """Transfer ``amount`` of ``token`` held by ``contract`` to ``recipient``.

    A ``False`` return or a token-side rejection becomes
    :class:`ExternalCallFailed` so the calling contract rolls back.
    """
    try:
        succeeded = token.transfer(contract.address, recipient, amount)
    except TokenError as exc:
        raise ExternalCallFailed(
            f"Token transfer rejected: {exc.message}",
            token=token.address,
            details={"recipient": recipient, "amount": amount},
        ) from exc
    if not succeeded:
        raise ExternalCallFailed(
            "Token transfer returned failure",
            token=token.address,
            details={"recipient": recipient, "amount": amount},
        )


class TokenVesting(Contract):
    def __init__(
        self,
        environment: Environment,
        deployer: str,
        beneficiary: str,
        start: int,
        cliff: int,
        duration: int,
        revocable: bool,
        address: str | None = None,
    ) -> None:
        """
        Create a vesting contract that vests its balance of any token to the
        beneficiary linearly until ``start + duration``.

        Args:
            deployer: Becomes the owner (may revoke when revocable)
            beneficiary: Address receiving released tokens
            start: Unix time at which vesting starts
            cliff: Seconds after ``start`` before anything vests
            duration: Seconds after ``start`` at which everything has vested
            revocable: Whether the owner may revoke
        """
        beneficiary_norm = normalize_address(beneficiary)
        if beneficiary_norm == ZERO_ADDRESS:
            raise InvalidParameter("Invalid address.", details={"beneficiary": beneficiary_norm})
        for label, value in (("start", start), ("cliff", cliff), ("duration", duration)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidParameter(f"{label} must be a non-negative integer")
        if cliff > duration:
            raise InvalidParameter(
                "Invalid value supplied for the parameter duration.",
                details={"cliff": cliff, "duration": duration},
            )

        deployer_norm = normalize_address(deployer)
        super().__init__(
            environment,
            address or environment.new_address(f"vesting{beneficiary_norm}{deployer_norm}"),
        )
        self.beneficiary = beneficiary_norm
        self.start = start
        self.cliff = cliff
        self.duration = duration
        self.revocable = bool(revocable)
        self.released: dict[str, int] = {}
        self.revoked: dict[str, bool] = {}
        self.guards = GuardStack(VESTING_POLICY, GuardFlags(owner=deployer_norm), emit=self._emit)

        logger.info(
            "Vesting schedule created",
            extra={
                "event": "vesting.created",
                "address": self.address,
                "beneficiary": beneficiary_norm[:10],
                "start": start,
                "cliff": cliff,
                "duration": duration,
                "revocable": self.revocable,
            },
        )

    @property
    def owner(self) -> str:
        return self.guards.flags.owner

    def released_amount(self, token: TokenHandle) -> int:
        return self.released.get(token.address.lower(), 0)

    def is_revoked(self, token: TokenHandle) -> bool:
        return self.revoked.get(token.address.lower(), False)

    # ==================== Schedule ====================

    def get_vested_amount(self, token: TokenHandle, now: int | None = None) -> int:
        """Cumulative amount of ``token`` the beneficiary is entitled to at ``now``."""
        if now is None:
            now = self.environment.now()

        current_balance = token.balance_of(self.address)
        total_balance = current_balance + self.released_amount(token)

        if now < self.start + self.cliff:
            return 0
        if now >= self.start + self.duration or self.is_revoked(token):
            return total_balance
        return total_balance * (now - self.start) // self.duration

    def get_releasable_amount(self, token: TokenHandle, now: int | None = None) -> int:
        """Vested amount not yet paid out."""
        vested = self.get_vested_amount(token, now)
        released = self.released_amount(token)
        if vested < released:
            # Only reachable if the token balance was moved out by something other than release().
            raise InsufficientBalance(
                "Released amount exceeds vested amount.",
                details={"token": token.address, "vested": vested, "released": released},
            )
        return vested - released

    # ==================== Entry Points ====================

    @atomic
    def release(self, token: TokenHandle) -> int:
        """Transfer the releasable amount of ``token`` to the beneficiary."""
        unreleased = self.get_releasable_amount(token)
        if unreleased == 0:
            raise NothingToRelease(details={"token": token.address})

        token_key = token.address.lower()
        self.released[token_key] = self.released.get(token_key, 0) + unreleased
        transfer_out(self, token, self.beneficiary, unreleased)
        self._emit("Released", token=token_key, amount=unreleased)

        logger.info(
            "Vested tokens released",
            extra={
                "event": "vesting.released",
                "token": token_key[:10],
                "beneficiary": self.beneficiary[:10],
                "amount": unreleased,
                "total_released": self.released[token_key],
            },
        )
        return unreleased

    @atomic
    def revoke(self, caller: str, token: TokenHandle) -> int:
        """Stop vesting ``token`` and refund the unvested part to the owner."""
        self.guards.require("revoke", caller)
        if not self.revocable:
            raise NotRevocable("Sorry but this vesting schedule is not revocable.")
        if self.is_revoked(token):
            raise AlreadyInState("Sorry but this vesting was already revoked.")

        closing_balance = token.balance_of(self.address)
        unreleased = self.get_releasable_amount(token)
        refund = closing_balance - unreleased

        self.revoked[token.address.lower()] = True
        transfer_out(self, token, self.owner, refund)
        self._emit("Revoked", token=token.address.lower(), refund=refund)

        logger.info(
            "Vesting revoked",
            extra={
                "event": "vesting.revoked",
                "token": token.address[:10],
                "refund": refund,
                "still_claimable": unreleased,
            },
        )
        return refund

    @atomic
    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self.guards.transfer_ownership(caller, new_owner)

    @atomic
    def renounce_ownership(self, caller: str) -> None:
        self.guards.renounce_ownership(caller)

    # ==================== State ====================

    def _snapshot(self) -> dict[str, Any]:
        return {
            "released": dict(self.released),
            "revoked": dict(self.revoked),
            "flags": self.guards.flags.copy(),
        }

    def _restore(self, snapshot: Mapping[str, Any]) -> None:
        self.released = dict(snapshot["released"])
        self.revoked = dict(snapshot["revoked"])
        self.guards.flags = snapshot["flags"].copy()

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "owner": self.owner,
            "beneficiary": self.beneficiary,
            "start": self.start,
            "cliff": self.cliff,
            "duration": self.duration,
            "revocable": self.revocable,
            "released": dict(self.released),
            "revoked": dict(self.revoked),
        }
