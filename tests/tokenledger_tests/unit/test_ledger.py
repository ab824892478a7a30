"""
Unit tests for the Ledger: both transfer dialects, allowances and supply primitives.
"""

from __future__ import annotations

import pytest

from tokenledger.core.constants import UINT256_MAX, ZERO_ADDRESS
from tokenledger.core.exceptions import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidParameter,
    InvalidRecipient,
)
from tokenledger.core.ledger import Ledger, TransferDialect, validate_amount

ALICE = "0x" + "aa" * 20
BOB = "0x" + "bb" * 20
CAROL = "0x" + "cc" * 20


class RecordingEmitter:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def __call__(self, event_type: str, **args) -> None:
        self.events.append((event_type, args))


def make_ledger(dialect: TransferDialect, balance: int = 100) -> tuple[Ledger, RecordingEmitter]:
    emitter = RecordingEmitter()
    ledger = Ledger(dialect, emit=emitter)
    if balance:
        ledger.credit(ALICE, balance)
    return ledger, emitter


class TestValidateAmount:
    @pytest.mark.parametrize("amount", [-1, UINT256_MAX + 1, 1.5, "10", True])
    def test_rejects_values_outside_uint256(self, amount):
        with pytest.raises(InvalidParameter):
            validate_amount(amount)

    def test_accepts_bounds(self):
        assert validate_amount(0) == 0
        assert validate_amount(UINT256_MAX) == UINT256_MAX


class TestStrictTransfer:
    def test_transfer_moves_balance_and_emits(self):
        ledger, emitter = make_ledger(TransferDialect.STRICT)

        assert ledger.transfer(ALICE, BOB, 40) is True

        assert ledger.balance_of(ALICE) == 60
        assert ledger.balance_of(BOB) == 40
        assert emitter.events[-1] == ("Transfer", {"from_address": ALICE, "to_address": BOB, "value": 40})

    def test_insufficient_balance_raises(self):
        ledger, _ = make_ledger(TransferDialect.STRICT)
        with pytest.raises(InsufficientBalance):
            ledger.transfer(ALICE, BOB, 101)
        assert ledger.balance_of(ALICE) == 100

    def test_zero_recipient_raises(self):
        ledger, _ = make_ledger(TransferDialect.STRICT)
        with pytest.raises(InvalidRecipient):
            ledger.transfer(ALICE, ZERO_ADDRESS, 1)

    def test_balance_is_checked_before_recipient(self):
        ledger, _ = make_ledger(TransferDialect.STRICT)
        with pytest.raises(InsufficientBalance):
            ledger.transfer(ALICE, ZERO_ADDRESS, 500)

    def test_zero_amount_transfer_succeeds(self):
        ledger, emitter = make_ledger(TransferDialect.STRICT)
        assert ledger.transfer(BOB, CAROL, 0) is True
        assert emitter.events[-1][0] == "Transfer"

    def test_self_transfer_keeps_balance(self):
        ledger, _ = make_ledger(TransferDialect.STRICT)
        assert ledger.transfer(ALICE, ALICE, 100) is True
        assert ledger.balance_of(ALICE) == 100
        assert ledger.check_conservation()

    def test_addresses_are_case_insensitive(self):
        ledger, _ = make_ledger(TransferDialect.STRICT)
        ledger.transfer(ALICE.upper().replace("0X", "0x"), BOB, 10)
        assert ledger.balance_of(ALICE) == 90


class TestSilentTransfer:
    def test_insufficient_balance_returns_false(self):
        ledger, emitter = make_ledger(TransferDialect.SILENT)
        emitted = len(emitter.events)

        assert ledger.transfer(ALICE, BOB, 101) is False

        assert ledger.balance_of(ALICE) == 100
        assert ledger.balance_of(BOB) == 0
        assert len(emitter.events) == emitted

    def test_recipient_overflow_returns_false(self):
        ledger, _ = make_ledger(TransferDialect.SILENT, balance=0)
        ledger.balances[BOB] = UINT256_MAX
        ledger.balances[ALICE] = 1
        ledger.total_supply = UINT256_MAX + 1

        assert ledger.transfer(ALICE, BOB, 1) is False
        assert ledger.balance_of(ALICE) == 1

    def test_zero_recipient_is_allowed(self):
        ledger, _ = make_ledger(TransferDialect.SILENT)
        assert ledger.transfer(ALICE, ZERO_ADDRESS, 10) is True
        assert ledger.balance_of(ZERO_ADDRESS) == 10


class TestTransferFrom:
    def test_strict_order_balance_then_allowance_then_recipient(self):
        ledger, _ = make_ledger(TransferDialect.STRICT)

        with pytest.raises(InsufficientBalance):
            ledger.transfer_from(BOB, ALICE, CAROL, 101)
        with pytest.raises(InsufficientAllowance):
            ledger.transfer_from(BOB, ALICE, CAROL, 10)

        ledger.approve(ALICE, BOB, 10)
        with pytest.raises(InvalidRecipient):
            ledger.transfer_from(BOB, ALICE, ZERO_ADDRESS, 10)

    def test_spends_allowance(self):
        ledger, emitter = make_ledger(TransferDialect.STRICT)
        ledger.approve(ALICE, BOB, 30)

        assert ledger.transfer_from(BOB, ALICE, CAROL, 20) is True

        assert ledger.allowance(ALICE, BOB) == 10
        assert ledger.balance_of(CAROL) == 20
        assert emitter.events[-1] == ("Transfer", {"from_address": ALICE, "to_address": CAROL, "value": 20})

    def test_silent_returns_false_without_allowance(self):
        ledger, _ = make_ledger(TransferDialect.SILENT)
        assert ledger.transfer_from(BOB, ALICE, CAROL, 10) is False
        assert ledger.balance_of(ALICE) == 100

    def test_silent_returns_false_without_balance(self):
        ledger, _ = make_ledger(TransferDialect.SILENT)
        ledger.approve(ALICE, BOB, 500)
        assert ledger.transfer_from(BOB, ALICE, CAROL, 200) is False
        assert ledger.allowance(ALICE, BOB) == 500


class TestApprovals:
    def test_approve_overwrites(self):
        ledger, emitter = make_ledger(TransferDialect.SILENT)
        ledger.approve(ALICE, BOB, 50)
        ledger.approve(ALICE, BOB, 5)
        assert ledger.allowance(ALICE, BOB) == 5
        assert emitter.events[-1] == ("Approval", {"owner": ALICE, "spender": BOB, "value": 5})

    def test_increase_approval_emits_new_total(self):
        ledger, emitter = make_ledger(TransferDialect.SILENT)
        ledger.approve(ALICE, BOB, 50)
        ledger.increase_approval(ALICE, BOB, 25)
        assert ledger.allowance(ALICE, BOB) == 75
        assert emitter.events[-1][1]["value"] == 75

    def test_increase_approval_overflow_is_rejected(self):
        ledger, _ = make_ledger(TransferDialect.SILENT)
        ledger.approve(ALICE, BOB, UINT256_MAX)
        with pytest.raises(InvalidParameter):
            ledger.increase_approval(ALICE, BOB, 1)
        assert ledger.allowance(ALICE, BOB) == UINT256_MAX

    def test_decrease_approval_clamps_at_zero(self):
        ledger, emitter = make_ledger(TransferDialect.SILENT)
        ledger.approve(ALICE, BOB, 10)
        ledger.decrease_approval(ALICE, BOB, 50)
        assert ledger.allowance(ALICE, BOB) == 0
        assert emitter.events[-1][1]["value"] == 0

    def test_decrease_approval_partial(self):
        ledger, _ = make_ledger(TransferDialect.SILENT)
        ledger.approve(ALICE, BOB, 10)
        ledger.decrease_approval(ALICE, BOB, 4)
        assert ledger.allowance(ALICE, BOB) == 6


class TestSupplyPrimitives:
    def test_credit_and_debit_track_total_supply(self):
        ledger, _ = make_ledger(TransferDialect.STRICT, balance=0)
        ledger.credit(ALICE, 70)
        ledger.credit(BOB, 30)
        ledger.debit(ALICE, 20)

        assert ledger.total_supply == 80
        assert ledger.check_conservation()

    def test_debit_more_than_balance(self):
        ledger, _ = make_ledger(TransferDialect.STRICT)
        with pytest.raises(InsufficientBalance, match="burn"):
            ledger.debit(ALICE, 101)
        assert ledger.total_supply == 100

    def test_snapshot_restore_is_independent(self):
        ledger, _ = make_ledger(TransferDialect.STRICT)
        ledger.approve(ALICE, BOB, 5)
        snapshot = ledger.snapshot()

        ledger.transfer(ALICE, BOB, 50)
        ledger.approve(ALICE, BOB, 99)
        ledger.restore(snapshot)

        assert ledger.balance_of(ALICE) == 100
        assert ledger.allowance(ALICE, BOB) == 5
