"""
Error types raised by the coordinator.

Configuration problems are reported as ``ValueError`` from the config
dataclasses; the classes below cover chain access and startup wiring.
"""


class ChainQueryError(Exception):
    """A query against a chain endpoint failed or returned something unusable."""


class FactoryDiscoveryError(Exception):
    """The factory contract could not be queried for sub-contract addresses."""


class ModuleConfigurationError(Exception):
    """A check module could not resolve the contract it is supposed to watch."""
