"""
Address helpers.

Addresses are opaque strings compared case-insensitively; the canonical
form is lowercase.
"""

from __future__ import annotations

from .exceptions import InvalidParameter


def normalize_address(address: str) -> str:
    """Return the canonical (lowercase, stripped) form of an address."""
    if not isinstance(address, str) or not address.strip():
        raise InvalidParameter(f"Invalid address: {address!r}")
    return address.strip().lower()
