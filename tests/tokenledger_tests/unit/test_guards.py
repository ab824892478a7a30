"""
Unit tests for the GuardStack predicates and governance operations.
"""

from __future__ import annotations

import pytest

from tokenledger.core.constants import ZERO_ADDRESS
from tokenledger.core.exceptions import (
    AccessDenied,
    AlreadyInState,
    InvalidParameter,
    InvalidRecipient,
    UnsupportedOperation,
)
from tokenledger.core.guards import GuardFlags, GuardPolicy, GuardStack

OWNER = "0x" + "11" * 20
ADMIN = "0x" + "22" * 20
USER = "0x" + "33" * 20

POLICY = GuardPolicy(
    {
        "transfer": ("can_transfer",),
        "mint": ("can_transfer", "is_admin", "minting_open"),
        "pause": ("is_owner",),
        "unpause": ("is_owner",),
        "enable_transfers": ("is_owner", "not_paused"),
        "disable_transfers": ("is_owner", "not_paused"),
        "add_admin": ("is_owner",),
        "remove_admin": ("is_owner",),
        "transfer_ownership": ("is_owner", "not_paused"),
        "renounce_ownership": ("is_owner", "not_paused"),
    }
)


@pytest.fixture
def events():
    return []


@pytest.fixture
def guards(events):
    return GuardStack(
        POLICY,
        GuardFlags(owner=OWNER),
        emit=lambda event_type, **args: events.append((event_type, args)),
    )


def test_policy_rejects_unknown_guard_names():
    with pytest.raises(ValueError):
        GuardPolicy({"transfer": ("is_wizard",)})


def test_unsupported_operation(guards):
    assert not guards.policy.supports("burn")
    with pytest.raises(UnsupportedOperation):
        guards.require("burn", USER)


def test_owner_is_admin(guards):
    assert guards.is_owner(OWNER)
    assert guards.is_admin(OWNER)
    assert not guards.is_admin(USER)


def test_can_transfer_only_admins_while_locked(guards):
    guards.flags.transfer_locked = True
    guards.flags.admins.add(ADMIN)

    assert guards.can_transfer(OWNER)
    assert guards.can_transfer(ADMIN)
    assert not guards.can_transfer(USER)


def test_require_reports_first_failing_guard(guards):
    guards.flags.minting_finished = True
    assert guards.first_failure("mint", USER) == "is_admin"
    assert guards.first_failure("mint", OWNER) == "minting_open"

    with pytest.raises(AccessDenied, match="Minting cannot be performed anymore."):
        guards.require("mint", OWNER)


def test_require_error_details(guards):
    with pytest.raises(AccessDenied) as excinfo:
        guards.require("pause", USER)
    assert excinfo.value.details["guard"] == "is_owner"
    assert excinfo.value.details["operation"] == "pause"


class TestOwnership:
    def test_transfer_ownership(self, guards, events):
        guards.transfer_ownership(OWNER, USER)

        assert guards.flags.owner == USER
        assert not guards.is_owner(OWNER)
        assert events[-1] == ("OwnershipTransferred", {"previous_owner": OWNER, "new_owner": USER})

    def test_transfer_ownership_to_zero_address(self, guards):
        with pytest.raises(InvalidRecipient, match="Invalid owner supplied."):
            guards.transfer_ownership(OWNER, ZERO_ADDRESS)

    def test_new_owner_leaves_admin_set(self, guards):
        guards.add_admin(OWNER, ADMIN)
        guards.transfer_ownership(OWNER, ADMIN)
        assert ADMIN not in guards.flags.admins

    def test_transfer_ownership_blocked_while_paused(self, guards):
        guards.pause(OWNER)
        with pytest.raises(AccessDenied, match="paused"):
            guards.transfer_ownership(OWNER, USER)

    def test_renounce_is_permanent(self, guards, events):
        guards.renounce_ownership(OWNER)

        assert guards.flags.owner == ZERO_ADDRESS
        assert events[-1] == ("OwnershipRenounced", {"previous_owner": OWNER})
        for caller in (OWNER, ZERO_ADDRESS, USER):
            with pytest.raises(AccessDenied):
                guards.pause(caller)


class TestAdmins:
    def test_add_and_remove_admin(self, guards, events):
        assert guards.add_admin(OWNER, ADMIN) is True
        assert guards.is_admin(ADMIN)
        assert events[-1] == ("AdminAdded", {"who": ADMIN})

        assert guards.remove_admin(OWNER, ADMIN) is True
        assert not guards.is_admin(ADMIN)
        assert events[-1] == ("AdminRemoved", {"who": ADMIN})

    def test_only_owner_manages_admins(self, guards):
        guards.add_admin(OWNER, ADMIN)
        with pytest.raises(AccessDenied):
            guards.add_admin(ADMIN, USER)

    def test_duplicate_add_and_missing_remove(self, guards):
        guards.add_admin(OWNER, ADMIN)
        with pytest.raises(AlreadyInState):
            guards.add_admin(OWNER, ADMIN)
        with pytest.raises(AlreadyInState):
            guards.remove_admin(OWNER, USER)

    def test_zero_and_owner_are_not_admin_candidates(self, guards):
        with pytest.raises(InvalidRecipient):
            guards.add_admin(OWNER, ZERO_ADDRESS)
        with pytest.raises(InvalidParameter):
            guards.add_admin(OWNER, OWNER)


class TestFlags:
    def test_pause_and_unpause(self, guards, events):
        guards.pause(OWNER)
        assert guards.flags.paused
        with pytest.raises(AlreadyInState):
            guards.pause(OWNER)

        guards.unpause(OWNER)
        assert not guards.flags.paused
        with pytest.raises(AlreadyInState):
            guards.unpause(OWNER)
        assert [name for name, _ in events] == ["Paused", "Unpaused"]

    def test_transfer_lock_toggles(self, guards, events):
        guards.disable_transfers(OWNER)
        assert guards.flags.transfer_locked
        assert events[-1] == ("TokenReleased", {"current_state": True})
        with pytest.raises(AlreadyInState):
            guards.disable_transfers(OWNER)

        guards.enable_transfers(OWNER)
        assert events[-1] == ("TokenReleased", {"current_state": False})

    def test_transfer_lock_needs_unpaused(self, guards):
        guards.pause(OWNER)
        with pytest.raises(AccessDenied):
            guards.disable_transfers(OWNER)

    def test_flags_round_trip(self, guards):
        guards.add_admin(OWNER, ADMIN)
        guards.pause(OWNER)
        restored = GuardFlags.from_dict(guards.flags.to_dict())
        assert restored == guards.flags
        assert restored.admins is not guards.flags.admins
