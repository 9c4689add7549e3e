"""
Shared data models for the Drop coordinator.

This module contains the value types passed between the configuration,
discovery, check modules and the scheduler.
"""

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any

# Same shape cosmjs accepts for GasPrice.fromString, e.g. "0.025untrn"
_GAS_PRICE_PATTERN = re.compile(r"^([0-9]+(?:\.[0-9]+)?)([a-zA-Z][a-zA-Z0-9/:._-]{2,127})$")


@dataclass(frozen=True, slots=True)
class GasPrice:
    """Gas price as configured for a chain.

    Attributes:
        amount: Price per unit of gas
        denom: Fee denomination
    """
    amount: Decimal
    denom: str

    @classmethod
    def from_string(cls, value: str) -> "GasPrice":
        """
        Parse a gas price string such as ``0.025untrn``.

        Raises:
            ValueError: If the string is not an amount followed by a denom
        """
        match = _GAS_PRICE_PATTERN.match(value.strip()) if value else None
        if not match:
            raise ValueError(f"Invalid gas price: {value!r}. Expected format like '0.025untrn'")
        try:
            amount = Decimal(match.group(1))
        except InvalidOperation:
            raise ValueError(f"Invalid gas price amount: {match.group(1)!r}") from None
        return cls(amount=amount, denom=match.group(2))

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


@dataclass(frozen=True)
class FactoryState(Mapping[str, str]):
    """Snapshot of protocol sub-contract addresses keyed by role.

    Roles are the factory's state keys without the ``_contract`` suffix,
    so ``core_contract`` becomes ``core``. The snapshot is never modified;
    re-discovery produces a new instance.
    """
    addresses: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "addresses", MappingProxyType(dict(self.addresses)))

    @classmethod
    def from_response(cls, response: Any) -> "FactoryState":
        """
        Build a snapshot from the factory's ``{"state": {}}`` query response.

        Unset optional contracts (null or empty) are left out.

        Raises:
            ValueError: If the response is not an object of address strings
        """
        if not isinstance(response, Mapping):
            raise ValueError(f"Factory state must be an object, got {type(response).__name__}")

        addresses: dict[str, str] = {}
        for key, value in response.items():
            if value is None or value == "":
                continue
            if not isinstance(value, str):
                raise ValueError(f"Factory state entry {key!r} is not an address: {value!r}")
            addresses[key.removesuffix("_contract")] = value

        if not addresses:
            raise ValueError("Factory state contains no contract addresses")
        return cls(addresses)

    @property
    def roles(self) -> list[str]:
        return sorted(self.addresses)

    def __getitem__(self, role: str) -> str:
        return self.addresses[role]

    def __iter__(self) -> Iterator[str]:
        return iter(self.addresses)

    def __len__(self) -> int:
        return len(self.addresses)


@dataclass(frozen=True, slots=True)
class ModuleConfig:
    """Resolved configuration of a check module.

    Attributes:
        contract_address: Address of the contract the module watches
        source: Where the address came from, ``override`` or ``factory``
    """
    contract_address: str
    source: str


@dataclass(frozen=True, slots=True)
class CycleResult:
    """Outcome of one module's check cycle within a tick."""
    module: str
    ok: bool
    duration: float
    error: str | None = None


@dataclass(slots=True)
class TickReport:
    """Per-module results of one scheduler tick."""
    number: int
    results: list[CycleResult] = field(default_factory=list)

    @property
    def failed(self) -> list[str]:
        return [result.module for result in self.results if not result.ok]
