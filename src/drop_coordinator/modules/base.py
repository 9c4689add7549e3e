"""
Base class for check modules.

A check module watches one protocol contract. Its lifecycle is
configure -> (optionally) on_factory_discovered -> run once per scheduler
tick, for as long as the process lives.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from ..config import CONTRACT_OVERRIDE_ENV, CoordinatorConfig
from ..exceptions import ChainQueryError, ModuleConfigurationError
from ..models import ModuleConfig
from ..utils.chain_client import ContractClient

if TYPE_CHECKING:
    from ..context import Context

logger = logging.getLogger(__name__)


class CheckModule(ABC):
    """
    Uniform contract for all check modules.

    Subclasses set ``name`` and ``role`` (the factory role of the watched
    contract) and implement ``check``. ``run`` wraps ``check`` so that a
    failed cycle is logged and the module stays schedulable.
    """

    name: ClassVar[str]
    role: ClassVar[str]

    def __init__(self) -> None:
        self.context: Optional["Context"] = None
        self.contract: Optional[ContractClient] = None
        self._config: Optional[ModuleConfig] = None
        self.logger = logging.getLogger(f"{__package__}.{self.name}")

    @property
    def config(self) -> Optional[ModuleConfig]:
        return self._config

    @classmethod
    def resolve_address(
        cls, config: CoordinatorConfig, factory_state: Mapping[str, str]
    ) -> Optional[ModuleConfig]:
        """Explicit override first, then the factory snapshot."""
        if override := config.contract_overrides.get(cls.role):
            return ModuleConfig(contract_address=override, source="override")
        if address := factory_state.get(cls.role):
            return ModuleConfig(contract_address=address, source="factory")
        return None

    @classmethod
    def verify_config(cls, config: CoordinatorConfig, factory_state: Mapping[str, str]) -> bool:
        """Whether the module can resolve the contract it watches."""
        if cls.resolve_address(config, factory_state) is None:
            env_names = " or ".join(CONTRACT_OVERRIDE_ENV.get(cls.role, ()))
            logger.error(
                f"{cls.name}: factory has no '{cls.role}' contract"
                + (f" and {env_names} is not provided" if env_names else "")
            )
            return False
        return True

    def configure(self, context: "Context") -> ModuleConfig:
        """
        Resolve the contract address and bind a contract client.

        Safe to call again; the client is simply rebound.

        Raises:
            ModuleConfigurationError: If no address can be resolved
        """
        resolved = self.resolve_address(context.config, context.factory_state)
        if resolved is None:
            raise ModuleConfigurationError(
                f"{self.name} module has no contract address for role '{self.role}'"
            )

        self.context = context
        self._bind(resolved)
        return resolved

    def on_factory_discovered(self, factory_state: Mapping[str, str]) -> None:
        """Pick up a new factory address unless an override is in effect."""
        if self.context is None or self._config is None:
            return
        if self._config.source == "override":
            return

        address = factory_state.get(self.role)
        if not address:
            self.logger.warning(
                f"New factory state has no '{self.role}' contract, "
                f"keeping {self._config.contract_address}"
            )
            return
        if address != self._config.contract_address:
            self._bind(ModuleConfig(contract_address=address, source="factory"))

    def _bind(self, resolved: ModuleConfig) -> None:
        assert self.context is not None
        self._config = resolved
        self.contract = ContractClient(self.context.clients.hub_query, resolved.contract_address)
        self.logger.info(f"{self.name} module bound to {resolved.contract_address} ({resolved.source})")

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """
        Perform one check cycle.

        Never raises: query failures and malformed responses end the cycle
        early with an error log line.
        """
        if stop_event is not None and stop_event.is_set():
            self.logger.debug("Stop requested, skipping cycle")
            return
        if self.contract is None:
            self.logger.error(f"{self.name} module is not configured, skipping cycle")
            return

        try:
            await self.check()
        except ChainQueryError as e:
            self.logger.error(f"Error querying {self.name} contract {self.contract.address}: {e}")
        except Exception as e:
            self.logger.error(f"Unexpected error in {self.name} check: {e}", exc_info=True)

    async def query(self, msg: dict[str, Any]) -> Any:
        assert self.contract is not None
        return await self.contract.query(msg)

    @abstractmethod
    async def check(self) -> None:
        """Query the contract and act on the result."""
