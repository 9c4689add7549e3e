"""
Drop coordinator package.

Periodic on-chain checks for the Drop liquid-staking protocol, triggering
the ICQ relayer for pending interchain queries.
"""

from .config import CoordinatorConfig
from .coordinator import Coordinator
from .models import FactoryState
from .relay import IcqRelayInvoker
from .scheduler import Scheduler

__all__ = ["CoordinatorConfig", "Coordinator", "FactoryState", "IcqRelayInvoker", "Scheduler"]
__version__ = "0.1.0"
