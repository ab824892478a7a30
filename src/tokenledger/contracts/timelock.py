"""
Token timelock: holds one token until a fixed release time, then lets the
beneficiary withdraw the whole balance.
"""

from __future__ import annotations

import logging
from typing import Any

from ..core.addresses import normalize_address
from ..core.environment import Contract, Environment, atomic
from ..core.exceptions import AccessDenied, InvalidParameter, NothingToRelease
from .interfaces import TokenHandle
from .vesting import transfer_out

logger = logging.getLogger(__name__)


class TokenTimelock(Contract):
    def __init__(
        self,
        environment: Environment,
        token: TokenHandle,
        beneficiary: str,
        release_time: int,
        address: str | None = None,
    ) -> None:
        """
        Args:
            token: The token held by this timelock
            beneficiary: Address receiving the tokens after ``release_time``
            release_time: Unix time at which release becomes possible; must be in the future
        """
        if isinstance(release_time, bool) or not isinstance(release_time, int):
            raise InvalidParameter("release_time must be an integer timestamp")
        if release_time <= environment.now():
            raise InvalidParameter(
                "Invalid value for release time.",
                details={"release_time": release_time, "now": environment.now()},
            )

        beneficiary_norm = normalize_address(beneficiary)
        super().__init__(
            environment,
            address or environment.new_address(f"timelock{token.address}{beneficiary_norm}"),
        )
        self.token = token
        self.beneficiary = beneficiary_norm
        self.release_time = release_time

    @atomic
    def release(self, caller: str) -> int:
        """Transfer every held token to the beneficiary once the release time has passed."""
        if normalize_address(caller) != self.beneficiary:
            raise AccessDenied("Access is denied.", details={"caller": normalize_address(caller)})
        now = self.environment.now()
        if now < self.release_time:
            raise AccessDenied(
                "Access is denied. It's too early to withdraw your tokens.",
                details={"now": now, "release_time": self.release_time},
                recoverable=True,
            )

        amount = self.token.balance_of(self.address)
        if amount == 0:
            raise NothingToRelease("Nothing to withdraw.")

        transfer_out(self, self.token, self.beneficiary, amount)
        logger.info(
            "Timelock released",
            extra={
                "event": "timelock.released",
                "token": self.token.address[:10],
                "beneficiary": self.beneficiary[:10],
                "amount": amount,
            },
        )
        return amount

    # Timelock state never changes; only the held token's balances do.
    def _snapshot(self) -> None:
        return None

    def _restore(self, snapshot: Any) -> None:
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "token": self.token.address,
            "beneficiary": self.beneficiary,
            "release_time": self.release_time,
        }
