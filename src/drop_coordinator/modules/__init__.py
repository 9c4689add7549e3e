"""
Check modules.

New checks subclass CheckModule and are registered here explicitly.
"""

from .base import CheckModule
from .core import CoreModule
from .validators_stats import ValidatorsStatsModule

DEFAULT_MODULES: tuple[type[CheckModule], ...] = (CoreModule, ValidatorsStatsModule)

__all__ = ["CheckModule", "CoreModule", "ValidatorsStatsModule", "DEFAULT_MODULES"]
