"""
Guard stack: composable access and state predicates.

Every mutating entry point of a contract names a fixed conjunction of
guards in its :class:`GuardPolicy`. The :class:`GuardStack` evaluates that
conjunction in order against the caller and the current :class:`GuardFlags`
before any state is touched, and also owns the governance operations that
mutate the flags (ownership, admin set, pause, transfer lock).

Guards:
- is_owner:     caller is the owner (never true once ownership is renounced)
- is_admin:     caller is the owner or a member of the admin set
- not_paused:   the paused flag is clear
- can_transfer: when paused or transfer-locked, only admins pass
- minting_open: minting has not been finished
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping

from .addresses import normalize_address
from .constants import ZERO_ADDRESS
from .exceptions import (
    AccessDenied,
    AlreadyInState,
    InvalidParameter,
    InvalidRecipient,
    UnsupportedOperation,
)

logger = logging.getLogger(__name__)

GUARD_NAMES = ("is_owner", "is_admin", "not_paused", "can_transfer", "minting_open")

GUARD_MESSAGES = {
    "is_owner": "Access is denied.",
    "is_admin": "Access is denied.",
    "not_paused": "Sorry but the contract is paused.",
    "can_transfer": "Could not complete this request because transfer state is locked or paused.",
    "minting_open": "Minting cannot be performed anymore.",
}

# Operation-specific wording for a failing guard; falls back to GUARD_MESSAGES.
OPERATION_MESSAGES = {
    ("transfer", "not_paused"): "Can not transfer because the token is paused.",
    ("transfer_from", "not_paused"): "Can not transfer because the token is paused.",
    ("transfer_ownership", "not_paused"): "You may not transfer ownership when the contract is paused.",
    ("renounce_ownership", "not_paused"): "You may not renounce ownership when the contract is paused.",
    ("enable_transfers", "not_paused"): "You cannot enable transfers when contract is paused.",
    ("disable_transfers", "not_paused"): "You cannot disable transfers when contract is paused.",
}

EmitFn = Callable[..., None]


@dataclass
class GuardFlags:
    """Per-contract guard state. Owner and admins are disjoint sets of addresses."""

    owner: str = ZERO_ADDRESS
    admins: set[str] = field(default_factory=set)
    paused: bool = False
    transfer_locked: bool = False
    minting_finished: bool = False

    def copy(self) -> "GuardFlags":
        return replace(self, admins=set(self.admins))

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "admins": sorted(self.admins),
            "paused": self.paused,
            "transfer_locked": self.transfer_locked,
            "minting_finished": self.minting_finished,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GuardFlags":
        return cls(
            owner=data.get("owner", ZERO_ADDRESS),
            admins=set(data.get("admins", [])),
            paused=data.get("paused", False),
            transfer_locked=data.get("transfer_locked", False),
            minting_finished=data.get("minting_finished", False),
        )


@dataclass(frozen=True)
class GuardPolicy:
    """Maps each supported operation to the guards it must pass, in order.

    Operations missing from the policy are not part of the contract.
    """

    rules: Mapping[str, tuple[str, ...]]

    def __post_init__(self) -> None:
        for operation, guards in self.rules.items():
            unknown = [name for name in guards if name not in GUARD_NAMES]
            if unknown:
                raise ValueError(f"Unknown guard(s) {unknown} for operation {operation}")

    def supports(self, operation: str) -> bool:
        return operation in self.rules

    def guards_for(self, operation: str) -> tuple[str, ...]:
        try:
            return self.rules[operation]
        except KeyError:
            raise UnsupportedOperation(
                f"Operation {operation} is not supported by this contract.",
                details={"operation": operation},
            ) from None

    def extend(self, **rules: tuple[str, ...]) -> "GuardPolicy":
        merged = dict(self.rules)
        merged.update(rules)
        return GuardPolicy(merged)


class GuardStack:
    """Evaluates guard conjunctions and performs flag-owning governance operations."""

    def __init__(
        self,
        policy: GuardPolicy,
        flags: GuardFlags | None = None,
        emit: EmitFn | None = None,
    ) -> None:
        self.policy = policy
        self.flags = flags or GuardFlags()
        self._emit = emit or (lambda event_type, **args: None)

    # ==================== Predicates ====================

    def is_owner(self, caller: str) -> bool:
        owner = self.flags.owner
        return owner != ZERO_ADDRESS and normalize_address(caller) == owner

    def is_admin(self, caller: str) -> bool:
        if self.is_owner(caller):
            return True
        return normalize_address(caller) in self.flags.admins

    def not_paused(self, caller: str) -> bool:
        return not self.flags.paused

    def can_transfer(self, caller: str) -> bool:
        if self.flags.paused or self.flags.transfer_locked:
            return self.is_admin(caller)
        return True

    def minting_open(self, caller: str) -> bool:
        return not self.flags.minting_finished

    def first_failure(self, operation: str, caller: str) -> str | None:
        """Return the name of the first failing guard for ``operation``, if any."""
        for name in self.policy.guards_for(operation):
            if not getattr(self, name)(caller):
                return name
        return None

    def require(self, operation: str, caller: str) -> None:
        """Raise :class:`AccessDenied` unless every guard of ``operation`` passes."""
        failed = self.first_failure(operation, caller)
        if failed is None:
            return

        logger.warning(
            "Guard rejected call",
            extra={
                "event": "guard.rejected",
                "operation": operation,
                "guard": failed,
                "caller": normalize_address(caller)[:10],
            },
        )
        raise AccessDenied(
            OPERATION_MESSAGES.get((operation, failed), GUARD_MESSAGES[failed]),
            details={"operation": operation, "guard": failed, "caller": normalize_address(caller)},
        )

    # ==================== Ownership ====================

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self.require("transfer_ownership", caller)
        new_owner_norm = normalize_address(new_owner)
        if new_owner_norm == ZERO_ADDRESS:
            raise InvalidRecipient("Invalid owner supplied.", details={"new_owner": new_owner_norm})

        previous = self.flags.owner
        # The owner may not also sit in the admin set.
        self.flags.admins.discard(new_owner_norm)
        self.flags.owner = new_owner_norm
        self._emit("OwnershipTransferred", previous_owner=previous, new_owner=new_owner_norm)
        logger.info(
            "Ownership transferred",
            extra={"event": "guard.ownership_transferred", "new_owner": new_owner_norm[:10]},
        )

    def renounce_ownership(self, caller: str) -> None:
        self.require("renounce_ownership", caller)
        previous = self.flags.owner
        self.flags.owner = ZERO_ADDRESS
        self._emit("OwnershipRenounced", previous_owner=previous)
        logger.info(
            "Ownership renounced",
            extra={"event": "guard.ownership_renounced", "previous_owner": previous[:10]},
        )

    # ==================== Admins ====================

    def _validate_admin_candidate(self, address: str) -> str:
        address_norm = normalize_address(address)
        if address_norm == ZERO_ADDRESS:
            raise InvalidRecipient("Invalid address.", details={"address": address_norm})
        if address_norm == self.flags.owner:
            raise InvalidParameter(
                "The owner cannot be added to or removed from the administrator list.",
                details={"address": address_norm},
            )
        return address_norm

    def add_admin(self, caller: str, address: str) -> bool:
        self.require("add_admin", caller)
        address_norm = self._validate_admin_candidate(address)
        if address_norm in self.flags.admins:
            raise AlreadyInState("This address is already an administrator.")

        self.flags.admins.add(address_norm)
        self._emit("AdminAdded", who=address_norm)
        logger.info("Admin added", extra={"event": "guard.admin_added", "admin": address_norm[:10]})
        return True

    def remove_admin(self, caller: str, address: str) -> bool:
        self.require("remove_admin", caller)
        address_norm = self._validate_admin_candidate(address)
        if address_norm not in self.flags.admins:
            raise AlreadyInState("This address isn't an administrator.")

        self.flags.admins.discard(address_norm)
        self._emit("AdminRemoved", who=address_norm)
        logger.info("Admin removed", extra={"event": "guard.admin_removed", "admin": address_norm[:10]})
        return True

    # ==================== Pause ====================

    def pause(self, caller: str) -> None:
        self.require("pause", caller)
        if self.flags.paused:
            raise AlreadyInState("The contract is already paused.")
        self.flags.paused = True
        self._emit("Paused")
        logger.info("Contract paused", extra={"event": "guard.paused"})

    def unpause(self, caller: str) -> None:
        self.require("unpause", caller)
        if not self.flags.paused:
            raise AlreadyInState("The contract is already unpaused.")
        self.flags.paused = False
        self._emit("Unpaused")
        logger.info("Contract unpaused", extra={"event": "guard.unpaused"})

    # ==================== Transfer lock ====================

    def enable_transfers(self, caller: str) -> None:
        self.require("enable_transfers", caller)
        if not self.flags.transfer_locked:
            raise AlreadyInState("The transfer state is already enabled.")
        self.flags.transfer_locked = False
        self._emit("TokenReleased", current_state=False)
        logger.info("Transfers enabled", extra={"event": "guard.transfers_enabled"})

    def disable_transfers(self, caller: str) -> None:
        self.require("disable_transfers", caller)
        if self.flags.transfer_locked:
            raise AlreadyInState("The transfer state is already disabled.")
        self.flags.transfer_locked = True
        self._emit("TokenReleased", current_state=True)
        logger.info("Transfers disabled", extra={"event": "guard.transfers_disabled"})
