"""
Execution environment for tokenledger contracts.

The environment stands in for the host chain: it supplies the block
timestamp, the shared event log, contract addresses, and the single
serialization boundary that makes every entry point all-or-nothing.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import threading
import time
from typing import Any, Callable, TypeVar

from .events import EventLog, TokenEvent
from .exceptions import get_error_context
from .metrics import record_operation

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class ManualClock:
    """Settable clock for tests, simulations and the scenario runner."""

    def __init__(self, start: int = 0) -> None:
        self.current = int(start)

    def __call__(self) -> int:
        return self.current

    def set(self, timestamp: int) -> None:
        self.current = int(timestamp)

    def advance(self, seconds: int) -> int:
        self.current += int(seconds)
        return self.current


class Environment:
    """Host services consumed by contracts: clock, event log, addresses, lock."""

    def __init__(self, time_provider: Callable[[], int] | None = None) -> None:
        self._time_provider = time_provider or (lambda: int(time.time()))
        self.events = EventLog()
        self.lock = threading.RLock()
        self.block_number = 0
        self._depth = 0
        self._nonce = 0

    def now(self) -> int:
        timestamp = self._time_provider()
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise ValueError(
                f"time_provider must return an integer timestamp, got {type(timestamp).__name__}"
            )
        return timestamp

    def new_address(self, seed: str) -> str:
        """Derive a deterministic contract address from a seed and deployment nonce."""
        with self.lock:
            self._nonce += 1
            digest = hashlib.sha3_256(f"{seed}:{self._nonce}".encode()).digest()
        return f"0x{digest[-20:].hex()}"

    def emit(self, contract: str, event_type: str, **args: Any) -> TokenEvent:
        event = TokenEvent(
            event_type=event_type,
            contract=contract,
            args=args,
            timestamp=self.now(),
            block_number=self.block_number,
        )
        self.events.append(event)
        return event


class Contract:
    """Base class for contracts living in an :class:`Environment`.

    Subclasses provide ``_snapshot``/``_restore`` so that :func:`atomic`
    can roll back every piece of state when a call fails.
    """

    def __init__(self, environment: Environment, address: str) -> None:
        self.environment = environment
        self.address = address.lower()

    def _emit(self, event_type: str, **args: Any) -> None:
        self.environment.emit(self.address, event_type, **args)

    def _snapshot(self) -> Any:
        raise NotImplementedError

    def _restore(self, snapshot: Any) -> None:
        raise NotImplementedError


def atomic(method: F) -> F:
    """Run a contract entry point as one serialized, all-or-nothing step.

    On any exception the contract state and the events emitted during the
    call are rolled back before the exception propagates. A nested call into
    another contract rolls back that contract on its own.
    """
    operation = method.__name__

    @functools.wraps(method)
    def wrapper(self: Contract, *args: Any, **kwargs: Any) -> Any:
        env = self.environment
        with env.lock:
            snapshot = self._snapshot()
            mark = len(env.events)
            env._depth += 1
            try:
                result = method(self, *args, **kwargs)
            except Exception as exc:
                self._restore(snapshot)
                env.events.truncate(mark)
                record_operation(operation, "rejected")
                logger.debug(
                    "Call reverted",
                    extra={
                        "event": "contract.revert",
                        "contract": self.address[:10],
                        "operation": operation,
                        **get_error_context(exc),
                    },
                )
                raise
            finally:
                env._depth -= 1

            record_operation(operation, "failed" if result is False else "ok")
            if env._depth == 0:
                env.block_number += 1
            return result

    return wrapper  # type: ignore[return-value]
