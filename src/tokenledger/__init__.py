"""
tokenledger - ERC20-style token ledgers and custody contracts

Main Components:
- Ledger: balance and allowance accounting shared by every token variant
- GuardStack: ownership, admin, pause, transfer-lock and minting guards
- SupplyController: capped minting and burning
- TokenVesting / TokenTimelock: custody contracts releasing tokens over time
"""

__version__ = "0.1.0"
__author__ = "tokenledger developers"

__all__ = []
