"""Shared fixtures for the coordinator tests."""

from collections.abc import Sequence
from unittest.mock import AsyncMock, MagicMock

import pytest

from drop_coordinator.config import CoordinatorConfig
from drop_coordinator.context import Context
from drop_coordinator.models import FactoryState
from drop_coordinator.relay import CommandResult, IcqRelayInvoker

BASE_ENV = {
    "FACTORY_CONTRACT_ADDRESS": "neutron1factory",
    "ICQ_RUN_COMMAND": "icq-relayer",
    "COORDINATOR_CHECKS_PERIOD": "10",
    "RELAYER_NEUTRON_CHAIN_RPC_ADDR": "http://127.0.0.1:26657",
    "RELAYER_NEUTRON_CHAIN_REST_ADDR": "http://127.0.0.1:1317",
    "RELAYER_NEUTRON_CHAIN_GAS_PRICES": "0.025untrn",
    "NEUTRON_GAS_ADJUSTMENT": "1.5",
    "RELAYER_TARGET_CHAIN_RPC_ADDR": "http://127.0.0.1:36657",
    "RELAYER_TARGET_CHAIN_REST_ADDR": "http://127.0.0.1:2317",
    "RELAYER_TARGET_CHAIN_DENOM": "uatom",
    "RELAYER_TARGET_CHAIN_GAS_PRICES": "0.01uatom",
    "RELAYER_TARGET_CHAIN_ACCOUNT_PREFIX": "cosmos",
    "RELAYER_TARGET_CHAIN_VALIDATOR_ACCOUNT_PREFIX": "cosmosvaloper",
}


class FakeExecutor:
    """In-memory command executor recording every invocation."""

    def __init__(self, returncode: int = 0, stdout: str = "", stderr: str = "", error: Exception | None = None):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.error = error
        self.calls: list[list[str]] = []

    async def execute(self, args: Sequence[str], timeout: float) -> CommandResult:
        self.calls.append(list(args))
        if self.error is not None:
            raise self.error
        return CommandResult(self.returncode, self.stdout, self.stderr)


@pytest.fixture
def env():
    """A complete, valid coordinator environment."""
    return dict(BASE_ENV)


@pytest.fixture
def config(env):
    return CoordinatorConfig.from_env(env)


@pytest.fixture
def fake_executor():
    return FakeExecutor()


@pytest.fixture
def hub_query():
    """Mock hub query client; tests set query_contract_smart behaviour."""
    mock = MagicMock()
    mock.query_contract_smart = AsyncMock()
    return mock


@pytest.fixture
def make_context(config, hub_query, fake_executor):
    """Build a Context around mock clients and a fake relayer executor."""

    def _make(factory_state=None, cfg=None):
        clients = MagicMock()
        clients.hub_query = hub_query
        clients.hub_signer = None
        cfg = cfg or config
        return Context(
            config=cfg,
            clients=clients,
            relay=IcqRelayInvoker(cfg.coordinator.icq_run_command, executor=fake_executor),
            factory_state=factory_state or FactoryState({"core": "addrA", "validators_stats": "addrB"}),
        )

    return _make
