"""
Scenario runner: replays a YAML-described sequence of contract calls.

Scenario file layout::

    start_time: 1000              # initial block timestamp
    tokens:
      tok:
        variant: lockable
        deployer: owner
        name: Example
        symbol: EXM
        initial_supply: 1000
        maximum_supply: 5000
    vestings:
      vest:
        deployer: owner
        beneficiary: alice
        start: 1000
        cliff: 100
        duration: 1000
        revocable: true
    timelocks:
      lock:
        token: tok
        beneficiary: bob
        release_time: 5000
    steps:
      - {caller: owner, contract: tok, op: enable_transfers}
      - {caller: owner, contract: tok, op: transfer, args: ["@vest", 1000]}
      - {at: 1500, contract: vest, op: release, token: tok, expect: 500}
      - {caller: bob, contract: lock, op: release, expect: AccessDenied}

Argument strings starting with ``@`` name a deployed contract (replaced by
its address); ``@zero`` is the zero address. ``token:`` passes the named
token itself, for vesting operations. ``expect`` is ``ok``, ``false``, an
error class name, or an exact return value.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from ..contracts.timelock import TokenTimelock
from ..contracts.token import Token, TokenFactory
from ..contracts.vesting import TokenVesting
from ..core.constants import ZERO_ADDRESS
from ..core.environment import Contract, Environment, ManualClock
from ..core.exceptions import TokenError, is_recoverable_error

logger = logging.getLogger(__name__)

TOKEN_OPERATIONS = frozenset(
    {
        "balance_of",
        "allowance",
        "cap",
        "is_admin",
        "transfer",
        "transfer_from",
        "approve",
        "increase_approval",
        "decrease_approval",
        "mint",
        "finish_minting",
        "burn",
        "pause",
        "unpause",
        "enable_transfers",
        "disable_transfers",
        "add_admin",
        "remove_admin",
        "transfer_ownership",
        "renounce_ownership",
    }
)
VESTING_OPERATIONS = frozenset(
    {
        "release",
        "revoke",
        "get_vested_amount",
        "get_releasable_amount",
        "transfer_ownership",
        "renounce_ownership",
    }
)
TIMELOCK_OPERATIONS = frozenset({"release"})
STEP_KEYS = frozenset({"at", "advance", "caller", "contract", "op", "args", "token", "expect"})


class ScenarioError(Exception):
    """Raised when a scenario file is malformed."""
    pass


@dataclass
class StepResult:
    index: int
    contract: str
    operation: str
    caller: str | None
    outcome: str
    result: Any = None
    message: str = ""
    recoverable: bool = False
    expected: Any = None
    matched: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.index,
            "contract": self.contract,
            "operation": self.operation,
            "caller": self.caller,
            "outcome": self.outcome,
            "result": self.result,
            "message": self.message,
            "recoverable": self.recoverable,
            "expected": self.expected,
            "matched": self.matched,
        }


@dataclass
class ScenarioReport:
    steps: list[StepResult] = field(default_factory=list)
    tokens: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return all(step.matched for step in self.steps)

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "steps": [step.to_dict() for step in self.steps],
            "tokens": self.tokens,
        }


def load_scenario(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ScenarioError(f"Scenario file {path} must contain a mapping.")
    return data


class ScenarioRunner:
    def __init__(self, scenario: Mapping[str, Any]) -> None:
        self.scenario = scenario
        start_time = scenario.get("start_time", 0)
        if isinstance(start_time, bool) or not isinstance(start_time, int):
            raise ScenarioError(f"start_time must be an integer, got {start_time!r}")
        self.clock = ManualClock(start_time)
        self.environment = Environment(self.clock)
        self.factory = TokenFactory(self.environment)
        self.contracts: dict[str, Contract] = {}

        self._deploy_tokens(scenario.get("tokens") or {})
        self._deploy_vestings(scenario.get("vestings") or {})
        self._deploy_timelocks(scenario.get("timelocks") or {})

    # ==================== Deployment ====================

    def _deploy_tokens(self, tokens: Mapping[str, Mapping[str, Any]]) -> None:
        for contract_id, entry in tokens.items():
            try:
                self.contracts[contract_id] = self.factory.deploy(
                    entry.get("variant", "standard"),
                    entry["deployer"],
                    entry.get("name", contract_id),
                    entry.get("symbol", contract_id.upper()),
                    initial_supply=entry.get("initial_supply", 0),
                    decimals=entry.get("decimals"),
                    maximum_supply=entry.get("maximum_supply"),
                )
            except KeyError as exc:
                raise ScenarioError(f"Token {contract_id} is missing {exc.args[0]!r}") from exc

    def _deploy_vestings(self, vestings: Mapping[str, Mapping[str, Any]]) -> None:
        for contract_id, entry in vestings.items():
            try:
                self.contracts[contract_id] = TokenVesting(
                    self.environment,
                    deployer=entry["deployer"],
                    beneficiary=entry["beneficiary"],
                    start=entry["start"],
                    cliff=entry["cliff"],
                    duration=entry["duration"],
                    revocable=entry.get("revocable", False),
                )
            except KeyError as exc:
                raise ScenarioError(f"Vesting {contract_id} is missing {exc.args[0]!r}") from exc

    def _deploy_timelocks(self, timelocks: Mapping[str, Mapping[str, Any]]) -> None:
        for contract_id, entry in timelocks.items():
            try:
                self.contracts[contract_id] = TokenTimelock(
                    self.environment,
                    token=self._token(entry["token"]),
                    beneficiary=entry["beneficiary"],
                    release_time=entry["release_time"],
                )
            except KeyError as exc:
                raise ScenarioError(f"Timelock {contract_id} is missing {exc.args[0]!r}") from exc

    # ==================== Steps ====================

    def _token(self, contract_id: str) -> Token:
        contract = self.contracts.get(contract_id)
        if not isinstance(contract, Token):
            raise ScenarioError(f"Unknown token {contract_id!r}")
        return contract

    def _resolve(self, value: Any) -> Any:
        if isinstance(value, str) and value.startswith("@"):
            name = value[1:]
            if name == "zero":
                return ZERO_ADDRESS
            if name not in self.contracts:
                raise ScenarioError(f"Unknown contract reference {value!r}")
            return self.contracts[name].address
        return value

    def _method(self, contract: Contract, operation: str) -> Any:
        if isinstance(contract, Token):
            allowed = TOKEN_OPERATIONS
        elif isinstance(contract, TokenVesting):
            allowed = VESTING_OPERATIONS
        else:
            allowed = TIMELOCK_OPERATIONS
        if operation not in allowed:
            raise ScenarioError(f"Operation {operation!r} is not available on {type(contract).__name__}")
        return getattr(contract, operation)

    def _timestamp(self, index: int, key: str, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ScenarioError(f"Step {index}: {key!r} must be an integer, got {value!r}")
        return value

    def run_step(self, index: int, step: Mapping[str, Any]) -> StepResult:
        unknown = set(step) - STEP_KEYS
        if unknown:
            raise ScenarioError(f"Step {index}: unknown key(s) {', '.join(sorted(unknown))}")
        if "at" in step:
            self.clock.set(self._timestamp(index, "at", step["at"]))
        if "advance" in step:
            self.clock.advance(self._timestamp(index, "advance", step["advance"]))

        contract_id = step.get("contract")
        if not isinstance(contract_id, str) or contract_id not in self.contracts:
            raise ScenarioError(f"Step {index}: unknown contract {contract_id!r}")
        operation = step.get("op")
        if not isinstance(operation, str):
            raise ScenarioError(f"Step {index}: 'op' must name an operation")
        try:
            method = self._method(self.contracts[contract_id], operation)
        except ScenarioError as exc:
            raise ScenarioError(f"Step {index}: {exc}") from exc

        args = step.get("args") or []
        if not isinstance(args, list):
            raise ScenarioError(f"Step {index}: 'args' must be a list")
        caller = step.get("caller")
        call_args: list[Any] = [caller] if caller is not None else []
        call_args.extend(self._resolve(arg) for arg in args)
        if "token" in step:
            call_args.append(self._token(step["token"]))
        try:
            inspect.signature(method).bind(*call_args)
        except TypeError as exc:
            raise ScenarioError(f"Step {index}: bad arguments for {operation}: {exc}") from exc

        result = StepResult(index, contract_id, operation, caller, outcome="ok")
        try:
            value = method(*call_args)
        except TokenError as exc:
            result.outcome = type(exc).__name__
            result.message = exc.message
            result.recoverable = is_recoverable_error(exc)
        else:
            result.result = value
            if value is False:
                result.outcome = "false"

        if "expect" in step:
            expected = step["expect"]
            result.expected = expected
            if expected is True:
                result.matched = result.outcome == "ok"
            elif expected is False:
                result.matched = result.outcome == "false"
            elif isinstance(expected, int):
                result.matched = result.outcome == "ok" and result.result == expected
            else:
                result.matched = str(expected).lower() == result.outcome.lower()

        logger.debug(
            "Scenario step executed",
            extra={
                "event": "scenario.step",
                "step": index,
                "operation": operation,
                "outcome": result.outcome,
            },
        )
        return result

    def run(self) -> ScenarioReport:
        report = ScenarioReport()
        for index, step in enumerate(self.scenario.get("steps") or [], start=1):
            if not isinstance(step, Mapping):
                raise ScenarioError(f"Step {index} must be a mapping")
            report.steps.append(self.run_step(index, step))

        for contract_id, contract in self.contracts.items():
            if isinstance(contract, Token):
                report.tokens[contract_id] = {
                    "address": contract.address,
                    "total_supply": contract.total_supply,
                    "balances": {
                        self._label(account): balance
                        for account, balance in sorted(contract.ledger.balances.items())
                        if balance
                    },
                    "conserved": contract.check_conservation(),
                }
        return report

    def _label(self, address: str) -> str:
        for contract_id, contract in self.contracts.items():
            if contract.address == address:
                return f"@{contract_id}"
        return address
