"""
Drop coordinator service.

This module wires configuration, chain clients, factory discovery and the
check modules together and hands them to the scheduler.
"""

import logging
from collections.abc import Sequence
from typing import Optional

from .config import CoordinatorConfig
from .context import Context
from .exceptions import ChainQueryError, ModuleConfigurationError
from .factory import FactoryDiscovery
from .models import FactoryState
from .modules import DEFAULT_MODULES, CheckModule
from .relay import CommandExecutor, IcqRelayInvoker
from .scheduler import Scheduler
from .utils.chain_client import ChainClientSet

logger = logging.getLogger(__name__)


class Coordinator:
    """
    Main coordinator service.

    Startup order is fixed: clients, factory discovery, module registration,
    then the scheduler loop. Any failure before the loop is fatal.
    """

    def __init__(
        self,
        config: CoordinatorConfig,
        module_types: Sequence[type[CheckModule]] = DEFAULT_MODULES,
        executor: Optional[CommandExecutor] = None,
    ):
        """
        Initialize the coordinator.

        Args:
            config: Coordinator configuration
            module_types: Check modules to register, in run order
            executor: Command executor for the ICQ relayer (tests pass a fake)
        """
        self.config = config
        self.module_types = list(module_types)
        self.relay = IcqRelayInvoker(
            config.coordinator.icq_run_command,
            executor=executor,
            timeout=config.timeouts.relayer_timeout,
        )
        self.clients: Optional[ChainClientSet] = None
        self.discovery: Optional[FactoryDiscovery] = None
        self.context: Optional[Context] = None
        self.modules: list[CheckModule] = []
        self.scheduler: Optional[Scheduler] = None

    @classmethod
    def from_env(cls) -> "Coordinator":
        """
        Create a Coordinator from environment variables.

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        config = CoordinatorConfig.from_env()
        config.log_config()
        return cls(config)

    async def init(self, clients: Optional[ChainClientSet] = None) -> None:
        """
        Connect clients, discover the factory and register modules.

        Raises:
            ChainQueryError: If the chains cannot be reached
            FactoryDiscoveryError: If the factory state cannot be read
            ModuleConfigurationError: If a module cannot resolve its contract
        """
        self.clients = clients or await ChainClientSet.connect(self.config)
        self.discovery = FactoryDiscovery(
            self.clients.hub_query, self.config.coordinator.factory_contract_address
        )
        factory_state = await self.discovery.discover()

        self.context = Context(
            config=self.config,
            clients=self.clients,
            relay=self.relay,
            factory_state=factory_state,
        )
        self.modules = self.register_modules()
        self.scheduler = Scheduler(
            self.modules,
            interval=self.config.coordinator.checks_period,
            cycle_timeout=self.config.timeouts.cycle_timeout,
            before_tick=self.report_account,
        )

    def register_modules(self) -> list[CheckModule]:
        """
        Instantiate and configure every module type that can resolve its
        contract. Modules that cannot are logged and left out.

        Raises:
            ModuleConfigurationError: If no module can be scheduled
        """
        assert self.context is not None
        modules = []
        for module_type in self.module_types:
            if not module_type.verify_config(self.config, self.context.factory_state):
                logger.warning(f"Skipping {module_type.name} module: contract address unresolved")
                continue
            module = module_type()
            module.configure(self.context)
            modules.append(module)

        if not modules:
            raise ModuleConfigurationError(
                "No check module can be scheduled: "
                f"{', '.join(t.name for t in self.module_types)} all lack a contract address"
            )
        logger.info(f"Registered modules: {', '.join(m.name for m in modules)}")
        return modules

    async def rediscover(self) -> FactoryState:
        """Query the factory again and swap the snapshot for all modules."""
        assert self.discovery is not None and self.context is not None
        state = await self.discovery.discover()
        self.context.replace_factory_state(state)
        for module in self.modules:
            module.on_factory_discovered(state)
        return state

    async def report_account(self) -> None:
        """Log the coordinator account balance and hub height."""
        if self.clients is None or self.clients.hub_signer is None:
            return
        denom = self.config.hub.gas_price.denom
        try:
            balance = await self.clients.hub_query.get_balance(self.clients.hub_signer.address, denom)
            height = await self.clients.hub_query.get_latest_height()
        except ChainQueryError as e:
            logger.warning(f"Unable to fetch coordinator account state: {e}")
            return
        logger.info(f"Coordinator address state: {balance}{denom}, height: {height}")

    async def run(self, once: bool = False) -> None:
        """Run the scheduler until stopped, or a single tick with ``once``."""
        if self.scheduler is None:
            await self.init()
        assert self.scheduler is not None

        logger.info("Drop coordinator starting...")
        try:
            if once:
                await self.scheduler.run_tick()
            else:
                await self.scheduler.run()
        finally:
            await self.shutdown()

    def stop(self) -> None:
        """Stop the coordinator service."""
        if self.scheduler is not None:
            self.scheduler.stop()

    async def shutdown(self) -> None:
        if self.clients is not None:
            await self.clients.close()
        logger.info("Drop coordinator stopped")
