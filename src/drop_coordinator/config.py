"""Configuration management for the Drop coordinator.

This module provides type-safe configuration dataclasses with validation.
Configuration is loaded from environment variables exactly once at startup
and is immutable afterwards; components receive it explicitly.
"""

import logging
import os
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import ClassVar
from urllib.parse import urlparse

from .models import GasPrice

# Get logger for this module
logger = logging.getLogger(__name__)

# Environment variables that pin a module's contract instead of using the factory
CONTRACT_OVERRIDE_ENV: dict[str, tuple[str, ...]] = {
    "core": ("CORE_CONTRACT_ADDRESS",),
    "validators_stats": (
        "VALIDATOR_STATS_CONTRACT_ADDRESS",
        "VALIDATORS_STATS_CONTRACT_ADDRESS",
    ),
}


def _validate_url(url: str, name: str, schemes: tuple[str, ...]) -> None:
    if not url:
        raise ValueError(f"{name} is required")
    parsed = urlparse(url)
    if parsed.scheme not in schemes or not parsed.netloc:
        raise ValueError(
            f"Invalid {name}: {url!r}. Expected a {' or '.join(schemes)} URL"
        )


@dataclass(frozen=True, slots=True)
class CoordinatorSettings:
    """Coordinator-wide settings.

    Attributes:
        factory_contract_address: Address of the Drop factory contract
        icq_run_command: Relayer command template, query ids are appended
        checks_period: Seconds between two scheduler ticks
        mnemonic: Coordinator account mnemonic (optional)
    """

    factory_contract_address: str
    icq_run_command: str
    checks_period: int
    mnemonic: str | None = None

    VALID_MNEMONIC_LENGTHS: ClassVar[set[int]] = {12, 15, 18, 21, 24}

    def __post_init__(self) -> None:
        """Validate coordinator settings."""
        if not self.factory_contract_address:
            raise ValueError("Factory contract address is required (FACTORY_CONTRACT_ADDRESS)")

        if not self.icq_run_command or not self.icq_run_command.strip():
            raise ValueError("ICQ relayer command is required (ICQ_RUN_COMMAND)")
        try:
            shlex.split(self.icq_run_command)
        except ValueError as e:
            raise ValueError(f"Invalid ICQ_RUN_COMMAND: {e}") from None

        if self.checks_period <= 0:
            raise ValueError(f"Checks period must be positive, got {self.checks_period}")

        if self.mnemonic is not None:
            words = self.mnemonic.split()
            if len(words) not in self.VALID_MNEMONIC_LENGTHS:
                raise ValueError(
                    f"Invalid mnemonic length. Expected 12, 15, 18, 21 or 24 words, got {len(words)}"
                )


@dataclass(frozen=True, slots=True)
class HubChainConfig:
    """Configuration for the hub chain (Neutron) hosting the protocol contracts."""

    rpc_url: str
    rest_url: str
    gas_price: GasPrice
    gas_adjustment: float
    account_prefix: str = "neutron"

    def __post_init__(self) -> None:
        """Validate hub chain configuration."""
        _validate_url(self.rpc_url, "hub RPC URL (RELAYER_NEUTRON_CHAIN_RPC_ADDR)", ("http", "https", "ws", "wss"))
        _validate_url(self.rest_url, "hub REST URL (RELAYER_NEUTRON_CHAIN_REST_ADDR)", ("http", "https"))
        if self.gas_adjustment <= 0:
            raise ValueError(f"Gas adjustment must be positive, got {self.gas_adjustment}")
        if not self.account_prefix:
            raise ValueError("Hub account prefix must not be empty")


@dataclass(frozen=True, slots=True)
class TargetChainConfig:
    """Configuration for the target chain being staked against."""

    rpc_url: str
    rest_url: str
    denom: str
    gas_price: GasPrice
    account_prefix: str
    validator_account_prefix: str

    def __post_init__(self) -> None:
        """Validate target chain configuration."""
        _validate_url(self.rpc_url, "target RPC URL (RELAYER_TARGET_CHAIN_RPC_ADDR)", ("http", "https", "ws", "wss"))
        _validate_url(self.rest_url, "target REST URL (RELAYER_TARGET_CHAIN_REST_ADDR)", ("http", "https"))
        if not self.denom:
            raise ValueError("Target chain denom is required (RELAYER_TARGET_CHAIN_DENOM)")
        if not self.account_prefix:
            raise ValueError("Target account prefix is required (RELAYER_TARGET_CHAIN_ACCOUNT_PREFIX)")
        if not self.validator_account_prefix:
            raise ValueError(
                "Target validator account prefix is required "
                "(RELAYER_TARGET_CHAIN_VALIDATOR_ACCOUNT_PREFIX)"
            )


@dataclass(frozen=True, slots=True)
class TimeoutConfig:
    """Upper bounds for blocking work, in seconds."""
    query_timeout: int = 30  # single REST/RPC request
    relayer_timeout: int = 300  # one ICQ relayer process
    cycle_timeout: int = 600  # one module check cycle

    def __post_init__(self) -> None:
        """Validate timeouts."""
        if self.query_timeout <= 0:
            raise ValueError(f"Query timeout must be positive, got {self.query_timeout}")
        if self.query_timeout > 300:
            raise ValueError(f"Query timeout too long (max 300s), got {self.query_timeout}")

        if self.relayer_timeout <= 0:
            raise ValueError(f"Relayer timeout must be positive, got {self.relayer_timeout}")
        if self.relayer_timeout > 3600:
            raise ValueError(f"Relayer timeout too long (max 3600s), got {self.relayer_timeout}")

        # A cycle is one contract query followed by at most one relayer run
        if self.cycle_timeout <= self.relayer_timeout + self.query_timeout:
            raise ValueError(
                f"Cycle timeout ({self.cycle_timeout}s) must be longer than relayer "
                f"timeout plus query timeout ({self.relayer_timeout + self.query_timeout}s)"
            )


def _require(environ: Mapping[str, str], *names: str) -> str:
    for name in names:
        value = environ.get(name)
        if value:
            return value
    raise ValueError(f"{names[0]} environment variable is required")


def _int_env(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def _gas_price_env(environ: Mapping[str, str], name: str) -> GasPrice:
    try:
        return GasPrice.from_string(_require(environ, name))
    except ValueError as e:
        raise ValueError(f"{name}: {e}") from None


@dataclass(frozen=True, slots=True)
class CoordinatorConfig:
    """Main configuration for the Drop coordinator.

    Attributes:
        coordinator: Coordinator-wide settings
        hub: Hub chain endpoints and fees
        target: Target chain endpoints and fees
        timeouts: Bounds for queries, relayer runs and check cycles
        contract_overrides: Contract addresses pinned per module role
    """

    coordinator: CoordinatorSettings
    hub: HubChainConfig
    target: TargetChainConfig
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    contract_overrides: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "contract_overrides", MappingProxyType(dict(self.contract_overrides)))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "CoordinatorConfig":
        """Load configuration from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            CoordinatorConfig instance with loaded values

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        env = os.environ if environ is None else environ

        checks_period_raw = _require(env, "COORDINATOR_CHECKS_PERIOD", "CHECKS_PERIOD")
        checks_period_name = (
            "COORDINATOR_CHECKS_PERIOD" if env.get("COORDINATOR_CHECKS_PERIOD") else "CHECKS_PERIOD"
        )
        coordinator = CoordinatorSettings(
            factory_contract_address=_require(env, "FACTORY_CONTRACT_ADDRESS"),
            icq_run_command=_require(env, "ICQ_RUN_COMMAND"),
            checks_period=_int_env(checks_period_name, checks_period_raw),
            mnemonic=env.get("COORDINATOR_MNEMONIC") or None,
        )

        gas_adjustment_raw = _require(env, "NEUTRON_GAS_ADJUSTMENT")
        try:
            gas_adjustment = float(gas_adjustment_raw)
        except ValueError:
            raise ValueError(
                f"NEUTRON_GAS_ADJUSTMENT must be a number, got {gas_adjustment_raw!r}"
            ) from None

        hub = HubChainConfig(
            rpc_url=_require(env, "RELAYER_NEUTRON_CHAIN_RPC_ADDR"),
            rest_url=_require(env, "RELAYER_NEUTRON_CHAIN_REST_ADDR"),
            gas_price=_gas_price_env(env, "RELAYER_NEUTRON_CHAIN_GAS_PRICES"),
            gas_adjustment=gas_adjustment,
            account_prefix=env.get("RELAYER_NEUTRON_CHAIN_ACCOUNT_PREFIX", "neutron"),
        )

        target = TargetChainConfig(
            rpc_url=_require(env, "RELAYER_TARGET_CHAIN_RPC_ADDR"),
            rest_url=_require(env, "RELAYER_TARGET_CHAIN_REST_ADDR"),
            denom=_require(env, "RELAYER_TARGET_CHAIN_DENOM"),
            gas_price=_gas_price_env(env, "RELAYER_TARGET_CHAIN_GAS_PRICES"),
            account_prefix=_require(env, "RELAYER_TARGET_CHAIN_ACCOUNT_PREFIX"),
            validator_account_prefix=_require(env, "RELAYER_TARGET_CHAIN_VALIDATOR_ACCOUNT_PREFIX"),
        )

        timeouts = TimeoutConfig(
            query_timeout=_int_env("QUERY_TIMEOUT", env.get("QUERY_TIMEOUT", "30")),
            relayer_timeout=_int_env("RELAYER_TIMEOUT", env.get("RELAYER_TIMEOUT", "300")),
            cycle_timeout=_int_env("CYCLE_TIMEOUT", env.get("CYCLE_TIMEOUT", "600")),
        )

        overrides: dict[str, str] = {}
        for role, names in CONTRACT_OVERRIDE_ENV.items():
            for name in names:
                if address := env.get(name):
                    overrides[role] = address
                    break

        return cls(
            coordinator=coordinator,
            hub=hub,
            target=target,
            timeouts=timeouts,
            contract_overrides=overrides,
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format, hiding the mnemonic."""
        logger.info("=" * 60)
        logger.info("Drop Coordinator Configuration")
        logger.info("=" * 60)

        logger.info("Coordinator:")
        logger.info(f"  Factory: {self.coordinator.factory_contract_address}")
        logger.info(f"  ICQ Command: {self.coordinator.icq_run_command}")
        logger.info(f"  Checks Period: {self.coordinator.checks_period} seconds")
        logger.info(f"  Mnemonic: {'[SET]' if self.coordinator.mnemonic else '[NOT SET]'}")

        logger.info("Hub Chain:")
        logger.info(f"  RPC URL: {self.hub.rpc_url}")
        logger.info(f"  REST URL: {self.hub.rest_url}")
        logger.info(f"  Gas Price: {self.hub.gas_price} (adjustment {self.hub.gas_adjustment})")

        logger.info("Target Chain:")
        logger.info(f"  RPC URL: {self.target.rpc_url}")
        logger.info(f"  REST URL: {self.target.rest_url}")
        logger.info(f"  Denom: {self.target.denom}")
        logger.info(f"  Gas Price: {self.target.gas_price}")
        logger.info(f"  Prefixes: {self.target.account_prefix} / {self.target.validator_account_prefix}")

        logger.info("Timeouts:")
        logger.info(f"  Query: {self.timeouts.query_timeout}s")
        logger.info(f"  Relayer: {self.timeouts.relayer_timeout}s")
        logger.info(f"  Cycle: {self.timeouts.cycle_timeout}s")

        if self.contract_overrides:
            logger.info("Contract Overrides:")
            for role, address in sorted(self.contract_overrides.items()):
                logger.info(f"  {role}: {address}")

        logger.info("=" * 60)
