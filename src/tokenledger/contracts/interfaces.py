"""
Narrow token interface consumed by custody contracts.

Vesting and timelock contracts only ever read their own balance and
transfer out of it, so they depend on this protocol rather than on
:class:`~tokenledger.contracts.token.Token`. Tests can pass a fake ledger.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenHandle(Protocol):
    address: str

    def balance_of(self, account: str) -> int:
        ...

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        ...
