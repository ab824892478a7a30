"""
Fungible token contracts (ERC20 surface) built from one shared core.

Every token variant is the same :class:`Token` class wired with a different
:class:`TokenVariant`: the transfer-failure dialect of its ledger, the guard
conjunction of each entry point, and whether minting is capped.

Built-in variants:
- standard: strict transfers, no owner
- burnable: silent transfers plus burn
- mintable: silent transfers, owner-only capped mint, finishMinting
- pausable: silent transfers gated by the pause flag, owner pause/unpause
- lockable: admins, pause, transfer lock, capped mint and burn; starts locked
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from ..core.addresses import normalize_address
from ..core.config import SETTINGS
from ..core.constants import MAX_DECIMALS, ZERO_ADDRESS
from ..core.environment import Contract, Environment, atomic
from ..core.exceptions import InvalidParameter, UnsupportedOperation
from ..core.guards import GuardFlags, GuardPolicy, GuardStack
from ..core.ledger import Ledger, TransferDialect, validate_amount
from ..core.supply import SupplyController

logger = logging.getLogger(__name__)

LEDGER_OPERATIONS = ("transfer", "transfer_from", "approve", "increase_approval", "decrease_approval")
APPROVAL_OPERATIONS = ("approve", "increase_approval", "decrease_approval")


@dataclass(frozen=True)
class TokenVariant:
    """Static configuration of a token family."""

    name: str
    dialect: TransferDialect
    policy: GuardPolicy
    capped: bool = False
    ownable: bool = False
    initially_locked: bool = False


STANDARD_POLICY = GuardPolicy({operation: () for operation in LEDGER_OPERATIONS})

BURNABLE_POLICY = STANDARD_POLICY.extend(burn=())

MINTABLE_POLICY = STANDARD_POLICY.extend(
    mint=("is_owner",),
    finish_minting=("is_owner",),
    transfer_ownership=("is_owner",),
    renounce_ownership=("is_owner",),
)

PAUSABLE_POLICY = GuardPolicy({operation: ("not_paused",) for operation in LEDGER_OPERATIONS}).extend(
    pause=("is_owner",),
    unpause=("is_owner",),
    transfer_ownership=("is_owner", "not_paused"),
    renounce_ownership=("is_owner", "not_paused"),
)

LOCKABLE_POLICY = GuardPolicy(
    {
        "transfer": ("can_transfer",),
        "transfer_from": ("can_transfer",),
        **{operation: ("not_paused",) for operation in APPROVAL_OPERATIONS},
        "burn": ("can_transfer",),
        "mint": ("can_transfer", "is_admin"),
        "finish_minting": ("is_admin",),
        "pause": ("is_owner",),
        "unpause": ("is_owner",),
        "enable_transfers": ("is_owner", "not_paused"),
        "disable_transfers": ("is_owner", "not_paused"),
        "add_admin": ("is_owner",),
        "remove_admin": ("is_owner",),
        "transfer_ownership": ("is_owner", "not_paused"),
        "renounce_ownership": ("is_owner", "not_paused"),
    }
)

VARIANTS: dict[str, TokenVariant] = {
    "standard": TokenVariant("standard", TransferDialect.STRICT, STANDARD_POLICY),
    "burnable": TokenVariant("burnable", TransferDialect.SILENT, BURNABLE_POLICY),
    "mintable": TokenVariant(
        "mintable", TransferDialect.SILENT, MINTABLE_POLICY, capped=True, ownable=True
    ),
    "pausable": TokenVariant("pausable", TransferDialect.SILENT, PAUSABLE_POLICY, ownable=True),
    "lockable": TokenVariant(
        "lockable",
        TransferDialect.SILENT,
        LOCKABLE_POLICY,
        capped=True,
        ownable=True,
        initially_locked=True,
    ),
}


def get_variant(variant: str | TokenVariant) -> TokenVariant:
    if isinstance(variant, TokenVariant):
        return variant
    try:
        return VARIANTS[variant]
    except KeyError:
        raise InvalidParameter(
            f"Unknown token variant {variant!r}; expected one of {', '.join(VARIANTS)}"
        ) from None


class Token(Contract):
    """
    ERC20 token composed of a Ledger, a GuardStack and a SupplyController.

    Every mutating entry point takes the caller (``msg.sender``) as its
    first argument, checks the variant's guards for that operation, and
    then mutates state. A failing call leaves balances, allowances and
    flags exactly as they were.
    """

    def __init__(
        self,
        environment: Environment,
        variant: str | TokenVariant,
        deployer: str,
        name: str,
        symbol: str,
        initial_supply: int = 0,
        decimals: int | None = None,
        maximum_supply: int | None = None,
        address: str | None = None,
    ) -> None:
        self.variant = get_variant(variant)
        deployer_norm = normalize_address(deployer)

        if not name:
            raise InvalidParameter("Token name cannot be empty")
        if not symbol:
            raise InvalidParameter("Token symbol cannot be empty")
        decimals = SETTINGS.default_decimals if decimals is None else decimals
        if isinstance(decimals, bool) or not isinstance(decimals, int) or not 0 <= decimals <= MAX_DECIMALS:
            raise InvalidParameter(f"Invalid decimals: {decimals!r}")
        validate_amount(initial_supply)

        if self.variant.capped:
            if maximum_supply is None:
                raise InvalidParameter(f"The {self.variant.name} variant requires a maximum supply")
            validate_amount(maximum_supply)
            if initial_supply > maximum_supply:
                raise InvalidParameter(
                    "Sorry but the total supply cannot be more than maximum supply.",
                    details={"initial_supply": initial_supply, "maximum_supply": maximum_supply},
                )
        elif maximum_supply is not None:
            raise InvalidParameter(f"The {self.variant.name} variant has no supply cap")

        super().__init__(
            environment,
            address or environment.new_address(f"{name}{symbol}{deployer_norm}"),
        )
        self.name = name
        self.symbol = symbol
        self.decimals = decimals

        self.ledger = Ledger(self.variant.dialect, emit=self._emit)
        flags = GuardFlags(
            owner=deployer_norm if self.variant.ownable else ZERO_ADDRESS,
            transfer_locked=self.variant.initially_locked,
        )
        self.guards = GuardStack(self.variant.policy, flags, emit=self._emit)
        self.supply = SupplyController(
            self.ledger, flags, maximum_supply, emit=self._emit, token=self.address
        )

        if initial_supply:
            self.ledger.credit(deployer_norm, initial_supply)
        self.supply.publish_supply()

    # ==================== View Functions ====================

    @property
    def total_supply(self) -> int:
        return self.ledger.total_supply

    @property
    def owner(self) -> str:
        return self.guards.flags.owner

    @property
    def paused(self) -> bool:
        return self.guards.flags.paused

    @property
    def transfer_locked(self) -> bool:
        return self.guards.flags.transfer_locked

    @property
    def minting_finished(self) -> bool:
        return self.guards.flags.minting_finished

    def balance_of(self, account: str) -> int:
        return self.ledger.balance_of(account)

    def allowance(self, owner: str, spender: str) -> int:
        return self.ledger.allowance(owner, spender)

    def is_admin(self, account: str) -> bool:
        return self.guards.is_admin(account)

    def cap(self) -> int:
        if not self.variant.capped:
            raise UnsupportedOperation(f"The {self.variant.name} variant has no supply cap")
        return self.supply.maximum_supply

    def supports(self, operation: str) -> bool:
        return self.guards.policy.supports(operation)

    def check_conservation(self) -> bool:
        return self.ledger.check_conservation()

    # ==================== ERC20 ====================

    @atomic
    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        self.guards.require("transfer", sender)
        return self.ledger.transfer(sender, recipient, amount)

    @atomic
    def transfer_from(self, spender: str, from_addr: str, to_addr: str, amount: int) -> bool:
        self.guards.require("transfer_from", spender)
        return self.ledger.transfer_from(spender, from_addr, to_addr, amount)

    @atomic
    def approve(self, owner: str, spender: str, amount: int) -> bool:
        self.guards.require("approve", owner)
        return self.ledger.approve(owner, spender, amount)

    @atomic
    def increase_approval(self, owner: str, spender: str, added_value: int) -> bool:
        self.guards.require("increase_approval", owner)
        return self.ledger.increase_approval(owner, spender, added_value)

    @atomic
    def decrease_approval(self, owner: str, spender: str, subtracted_value: int) -> bool:
        self.guards.require("decrease_approval", owner)
        return self.ledger.decrease_approval(owner, spender, subtracted_value)

    # ==================== Minting & Burning ====================

    @atomic
    def mint(self, caller: str, to: str, amount: int) -> bool:
        self.guards.require("mint", caller)
        return self.supply.mint(to, amount)

    @atomic
    def finish_minting(self, caller: str) -> bool:
        self.guards.require("finish_minting", caller)
        return self.supply.finish_minting()

    @atomic
    def burn(self, holder: str, amount: int) -> None:
        self.guards.require("burn", holder)
        self.supply.burn(holder, amount)

    # ==================== Governance ====================

    @atomic
    def pause(self, caller: str) -> None:
        self.guards.pause(caller)

    @atomic
    def unpause(self, caller: str) -> None:
        self.guards.unpause(caller)

    @atomic
    def enable_transfers(self, caller: str) -> None:
        self.guards.enable_transfers(caller)

    @atomic
    def disable_transfers(self, caller: str) -> None:
        self.guards.disable_transfers(caller)

    @atomic
    def add_admin(self, caller: str, address: str) -> bool:
        return self.guards.add_admin(caller, address)

    @atomic
    def remove_admin(self, caller: str, address: str) -> bool:
        return self.guards.remove_admin(caller, address)

    @atomic
    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self.guards.transfer_ownership(caller, new_owner)

    @atomic
    def renounce_ownership(self, caller: str) -> None:
        self.guards.renounce_ownership(caller)

    # ==================== State ====================

    def _bind_flags(self, flags: GuardFlags) -> None:
        self.guards.flags = flags
        self.supply.flags = flags

    def _snapshot(self) -> dict[str, Any]:
        return {"ledger": self.ledger.snapshot(), "flags": self.guards.flags.copy()}

    def _restore(self, snapshot: Mapping[str, Any]) -> None:
        self.ledger.restore(snapshot["ledger"])
        self._bind_flags(snapshot["flags"].copy())

    def to_dict(self) -> dict[str, Any]:
        """Serialize token state to a JSON-compatible dictionary."""
        return {
            "address": self.address,
            "variant": self.variant.name,
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "maximum_supply": self.supply.maximum_supply,
            "flags": self.guards.flags.to_dict(),
            **self.ledger.snapshot(),
        }

    @classmethod
    def from_dict(cls, environment: Environment, data: Mapping[str, Any]) -> "Token":
        """Rebuild a token from :meth:`to_dict` output."""
        token = cls(
            environment,
            data["variant"],
            deployer=data["flags"].get("owner") or ZERO_ADDRESS,
            name=data["name"],
            symbol=data["symbol"],
            decimals=data.get("decimals"),
            maximum_supply=data.get("maximum_supply"),
            address=data["address"],
        )
        token.ledger.restore(data)
        token._bind_flags(GuardFlags.from_dict(data["flags"]))
        if not token.check_conservation():
            raise InvalidParameter("Token snapshot balances do not add up to total supply")
        token.supply.publish_supply()
        return token


class TokenFactory:
    """
    Deploys tokens into an environment and keeps a registry by address.
    """

    def __init__(self, environment: Environment) -> None:
        self.environment = environment
        self.deployed_tokens: dict[str, Token] = {}

    def deploy(
        self,
        variant: str | TokenVariant,
        deployer: str,
        name: str,
        symbol: str,
        initial_supply: int = 0,
        decimals: int | None = None,
        maximum_supply: int | None = None,
    ) -> Token:
        """
        Deploy a new token; the deployer receives the initial supply and,
        for ownable variants, ownership.

        Raises:
            InvalidParameter: If construction arguments are invalid
        """
        token = Token(
            self.environment,
            variant,
            deployer,
            name,
            symbol,
            initial_supply=initial_supply,
            decimals=decimals,
            maximum_supply=maximum_supply,
        )
        self.deployed_tokens[token.address] = token

        logger.info(
            "Token deployed",
            extra={
                "event": "token.deployed",
                "address": token.address,
                "variant": token.variant.name,
                "symbol": symbol,
                "initial_supply": initial_supply,
                "deployer": normalize_address(deployer)[:10],
            },
        )
        return token

    def get_token(self, address: str) -> Token | None:
        return self.deployed_tokens.get(address.lower())

    def list_tokens(self) -> list[dict[str, Any]]:
        return [
            {
                "address": address,
                "variant": token.variant.name,
                "name": token.name,
                "symbol": token.symbol,
                "decimals": token.decimals,
                "total_supply": token.total_supply,
                "owner": token.owner,
            }
            for address, token in self.deployed_tokens.items()
        ]
