"""
tokenledger core: accounting, guards, supply and the execution environment.
"""

from .environment import Contract, Environment, ManualClock, atomic
from .events import EventLog, TokenEvent
from .exceptions import (
    AccessDenied,
    AlreadyInState,
    CapExceeded,
    ExternalCallFailed,
    InsufficientAllowance,
    InsufficientBalance,
    InvalidParameter,
    InvalidRecipient,
    NothingToRelease,
    NotRevocable,
    TokenError,
    UnsupportedOperation,
)
from .guards import GuardFlags, GuardPolicy, GuardStack
from .ledger import Ledger, TransferDialect
from .supply import SupplyController

__all__ = [
    "Contract",
    "Environment",
    "ManualClock",
    "atomic",
    "EventLog",
    "TokenEvent",
    "GuardFlags",
    "GuardPolicy",
    "GuardStack",
    "Ledger",
    "TransferDialect",
    "SupplyController",
    # Errors
    "TokenError",
    "AccessDenied",
    "AlreadyInState",
    "UnsupportedOperation",
    "InsufficientBalance",
    "InsufficientAllowance",
    "InvalidRecipient",
    "CapExceeded",
    "InvalidParameter",
    "NothingToRelease",
    "NotRevocable",
    "ExternalCallFailed",
]
