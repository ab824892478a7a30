"""
tokenledger contracts.

- Token: ERC20 token assembled from the shared ledger, guard and supply core
- TokenFactory: deploys and registers tokens of the built-in variants
- TokenVesting: linear vesting with cliff and optional revocation
- TokenTimelock: fixed-date release of a held token
"""

from .interfaces import TokenHandle
from .timelock import TokenTimelock
from .token import VARIANTS, Token, TokenFactory, TokenVariant, get_variant
from .vesting import TokenVesting

__all__ = [
    "Token",
    "TokenFactory",
    "TokenVariant",
    "VARIANTS",
    "get_variant",
    "TokenHandle",
    "TokenVesting",
    "TokenTimelock",
]
