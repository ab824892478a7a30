"""
tokenledger constants

Numeric limits and sentinel values shared by the ledger, the guard stack
and the custody contracts.
"""

from typing import Final

# =============================================================================
# HOST WORD
# =============================================================================

UINT256_MAX: Final[int] = 2**256 - 1

# The zero address doubles as the "no owner" sentinel and as the mint/burn
# counterparty in Transfer events.
ZERO_ADDRESS: Final[str] = "0x" + "0" * 40

# =============================================================================
# TOKEN DEFAULTS
# =============================================================================

DEFAULT_DECIMALS: Final[int] = 18
MAX_DECIMALS: Final[int] = 255  # uint8 in the ERC20 ABI
