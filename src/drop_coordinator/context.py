"""
Shared runtime context handed to every check module.
"""

import logging
from dataclasses import dataclass

from .config import CoordinatorConfig
from .models import FactoryState
from .relay import IcqRelayInvoker
from .utils.chain_client import ChainClientSet

logger = logging.getLogger(__name__)


@dataclass
class Context:
    """
    Configuration, clients and discovery results shared by all modules.

    Modules only read from the context. The factory snapshot is swapped as a
    whole through replace_factory_state, never merged.
    """
    config: CoordinatorConfig
    clients: ChainClientSet
    relay: IcqRelayInvoker
    factory_state: FactoryState

    def replace_factory_state(self, state: FactoryState) -> FactoryState:
        """Install a new factory snapshot and return the previous one."""
        previous = self.factory_state
        self.factory_state = state
        logger.info(f"Factory state replaced: {', '.join(state.roles)}")
        return previous
