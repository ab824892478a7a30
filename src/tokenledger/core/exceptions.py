"""
Token-specific exception hierarchy for tokenledger.

Every rejected call raises one of these typed exceptions. The contract that
raised it has already restored its state, so callers only need to decide
whether to retry with different arguments.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class TokenError(Exception):
    """Base exception for all ledger, guard, supply and custody errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error (operation, caller, amounts)
        recoverable: Whether retrying with other arguments can succeed
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


# ==================== Guard Errors ====================


class AccessDenied(TokenError):
    """Raised when the caller fails a guard (owner, admin, pause, lock, minting)."""
    pass


class AlreadyInState(TokenError):
    """Raised when a flag operation would not change the flag.

    Examples: pausing a paused contract, finishing minting twice, revoking a
    vesting schedule a second time.
    """
    pass


class UnsupportedOperation(TokenError):
    """Raised when an entry point is not part of the token variant."""
    pass


# ==================== Accounting Errors ====================


class InsufficientBalance(TokenError):
    """Raised when an account lacks the balance for a transfer or burn."""
    pass


class InsufficientAllowance(TokenError):
    """Raised when a spender's allowance does not cover a transferFrom."""
    pass


class InvalidRecipient(TokenError):
    """Raised when the zero address is used where it is not allowed."""
    pass


class CapExceeded(TokenError):
    """Raised when minting would push total supply above the cap."""
    pass


class InvalidParameter(TokenError):
    """Raised for malformed arguments and construction-time violations."""
    pass


# ==================== Custody Errors ====================


class NothingToRelease(TokenError):
    """Raised when a release would move zero tokens."""

    def __init__(self, message: str = "Nothing to release.", **kwargs: Any) -> None:
        super().__init__(message, recoverable=True, **kwargs)


class NotRevocable(TokenError):
    """Raised when revoking a vesting schedule created as irrevocable."""
    pass


class ExternalCallFailed(TokenError):
    """Raised when the held token rejects a custody contract's transfer."""

    def __init__(
        self,
        message: str,
        token: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.token = token


def is_recoverable_error(error: Exception) -> bool:
    """Return True if the failed call may succeed later without new arguments."""
    if isinstance(error, TokenError):
        return error.recoverable
    return False


def get_error_context(exc: Exception) -> Dict[str, Any]:
    """Extract error context from an exception for logging.

    Args:
        exc: The exception to extract context from

    Returns:
        Dictionary containing error type, message, and any additional details
    """
    context: Dict[str, Any] = {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    if isinstance(exc, TokenError):
        context["recoverable"] = exc.recoverable
        if exc.details:
            context["details"] = exc.details

    if isinstance(exc, ExternalCallFailed) and exc.token:
        context["token"] = exc.token

    return context
