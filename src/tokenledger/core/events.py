"""
Append-only event log shared by every contract in an environment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

EVENT_TYPES = frozenset(
    {
        "Transfer",
        "Approval",
        "Burn",
        "Mint",
        "MintFinished",
        "Paused",
        "Unpaused",
        "TokenReleased",
        "OwnershipTransferred",
        "OwnershipRenounced",
        "AdminAdded",
        "AdminRemoved",
        "Released",
        "Revoked",
    }
)


@dataclass
class TokenEvent:
    """Represents an emitted contract event."""

    event_type: str
    contract: str
    args: dict[str, Any] = field(default_factory=dict)
    timestamp: int = 0
    block_number: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.event_type,
            "contract": self.contract,
            "args": dict(self.args),
            "timestamp": self.timestamp,
            "block_number": self.block_number,
        }


class EventLog:
    """Irreversible from the caller's view; only a failed call may drop its own tail."""

    def __init__(self) -> None:
        self._events: list[TokenEvent] = []

    def append(self, event: TokenEvent) -> None:
        if event.event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event.event_type}")
        self._events.append(event)

    def truncate(self, length: int) -> None:
        """Drop events emitted after ``length``. Used when a call is rolled back."""
        del self._events[length:]

    def filter(self, event_type: str, contract: str | None = None) -> list[TokenEvent]:
        return [
            event
            for event in self._events
            if event.event_type == event_type
            and (contract is None or event.contract == contract.lower())
        ]

    def last(self) -> TokenEvent | None:
        return self._events[-1] if self._events else None

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[TokenEvent]:
        return iter(list(self._events))
