#!/usr/bin/env python3
"""Tests for the Coordinator service wiring."""

import asyncio
import logging
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import pytest

from drop_coordinator.coordinator import Coordinator
from drop_coordinator.exceptions import (
    ChainQueryError,
    FactoryDiscoveryError,
    ModuleConfigurationError,
)
from drop_coordinator.models import FactoryState

FACTORY_STATE = {"core_contract": "addrA", "validators_stats_contract": "addrB"}


@pytest.fixture
def mock_clients(hub_query):
    """Client set whose hub answers factory and module queries."""

    async def query(address, msg):
        if msg == {"state": {}}:
            return dict(FACTORY_STATE)
        if msg == {"contract_state": {}}:
            return "idle"
        if msg == {"transfer_ack_received": {}}:
            return True
        if msg == {"query_ids": {}}:
            return {"missed_blocks": "7", "signing_info": None, "delegations": "9"}
        raise ChainQueryError(f"unexpected query {msg}")

    hub_query.query_contract_smart.side_effect = query
    hub_query.get_balance = AsyncMock(return_value=1000)
    hub_query.get_latest_height = AsyncMock(return_value=42)

    clients = MagicMock()
    clients.hub_query = hub_query
    clients.hub_signer = None
    clients.close = AsyncMock()
    return clients


class TestCoordinatorInit:
    """Tests for Coordinator.init."""

    @pytest.mark.asyncio
    async def test_modules_resolve_from_factory(self, config, mock_clients, fake_executor):
        coordinator = Coordinator(config, executor=fake_executor)

        await coordinator.init(clients=mock_clients)

        addresses = {m.name: m.config.contract_address for m in coordinator.modules}
        assert addresses == {"core": "addrA", "validators_stats": "addrB"}
        assert coordinator.scheduler.interval == 10

    @pytest.mark.asyncio
    async def test_override_scenario(self, config, mock_clients, fake_executor):
        """Test core from factory (addrA) and validators stats from override (addrC)."""
        config = replace(config, contract_overrides={"validators_stats": "addrC"})
        coordinator = Coordinator(config, executor=fake_executor)

        await coordinator.init(clients=mock_clients)

        addresses = {m.name: m.config.contract_address for m in coordinator.modules}
        assert addresses == {"core": "addrA", "validators_stats": "addrC"}

    @pytest.mark.asyncio
    async def test_failed_discovery_is_fatal(self, config, mock_clients, fake_executor):
        """Test that no scheduler is built when the factory cannot be read."""
        mock_clients.hub_query.query_contract_smart.side_effect = ChainQueryError("down")
        coordinator = Coordinator(config, executor=fake_executor)

        with pytest.raises(FactoryDiscoveryError):
            await coordinator.init(clients=mock_clients)

        assert coordinator.scheduler is None

    @pytest.mark.asyncio
    async def test_unresolvable_module_is_skipped(self, config, mock_clients, fake_executor, caplog):
        """Test that a factory without a validators stats contract still schedules core."""
        mock_clients.hub_query.query_contract_smart.side_effect = None
        mock_clients.hub_query.query_contract_smart.return_value = {
            "token_contract": "addrT",
            "core_contract": "addrA",
            "puppeteer_contract": "addrP",
            "withdrawal_voucher_contract": "addrV",
            "withdrawal_manager_contract": "addrW",
            "strategy_contract": "addrS",
            "validators_set_contract": "addrVS",
            "distribution_contract": "addrD",
            "rewards_manager_contract": "addrR",
        }
        coordinator = Coordinator(config, executor=fake_executor)

        with caplog.at_level(logging.WARNING, logger="drop_coordinator.coordinator"):
            await coordinator.init(clients=mock_clients)

        assert [m.name for m in coordinator.modules] == ["core"]
        assert coordinator.scheduler.modules == coordinator.modules
        assert "Skipping validators_stats module" in caplog.text

    @pytest.mark.asyncio
    async def test_no_schedulable_module_is_fatal(self, config, mock_clients, fake_executor):
        mock_clients.hub_query.query_contract_smart.side_effect = None
        mock_clients.hub_query.query_contract_smart.return_value = {"token_contract": "addrT"}
        coordinator = Coordinator(config, executor=fake_executor)

        with pytest.raises(ModuleConfigurationError, match="No check module can be scheduled"):
            await coordinator.init(clients=mock_clients)

        assert coordinator.scheduler is None


class TestCoordinatorRun:
    """Tests for running the coordinator."""

    @pytest.mark.asyncio
    async def test_single_tick_relays_pending_ids(self, config, mock_clients, fake_executor):
        coordinator = Coordinator(config, executor=fake_executor)
        await coordinator.init(clients=mock_clients)

        await coordinator.run(once=True)

        assert fake_executor.calls == [["icq-relayer", "-q", "7", "-q", "9"]]
        mock_clients.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_ends_loop(self, config, mock_clients, fake_executor):
        coordinator = Coordinator(config, executor=fake_executor)
        await coordinator.init(clients=mock_clients)

        async def stop_soon():
            await asyncio.sleep(0.05)
            coordinator.stop()

        await asyncio.wait_for(asyncio.gather(coordinator.run(), stop_soon()), timeout=5)

        assert coordinator.scheduler.ticks == 1
        mock_clients.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rediscover_swaps_state(self, config, mock_clients, fake_executor):
        """Test that re-discovery replaces the snapshot and rebinds modules."""
        coordinator = Coordinator(config, executor=fake_executor)
        await coordinator.init(clients=mock_clients)
        original = coordinator.context.factory_state

        next_state = {"core_contract": "addrA2", "validators_stats_contract": "addrB2"}
        mock_clients.hub_query.query_contract_smart.side_effect = None
        mock_clients.hub_query.query_contract_smart.return_value = next_state

        state = await coordinator.rediscover()

        assert coordinator.context.factory_state is state
        assert state is not original
        assert original == FactoryState({"core": "addrA", "validators_stats": "addrB"})
        assert [m.contract.address for m in coordinator.modules] == ["addrA2", "addrB2"]


class TestReportAccount:
    """Tests for the per-tick account report."""

    @pytest.mark.asyncio
    async def test_skipped_without_signer(self, config, mock_clients, fake_executor):
        coordinator = Coordinator(config, executor=fake_executor)
        await coordinator.init(clients=mock_clients)

        await coordinator.report_account()

        mock_clients.hub_query.get_balance.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_logs_balance_and_height(self, config, mock_clients, fake_executor, caplog):
        mock_clients.hub_signer = MagicMock(address="neutron1coordinator")
        coordinator = Coordinator(config, executor=fake_executor)
        await coordinator.init(clients=mock_clients)

        with caplog.at_level(logging.INFO, logger="drop_coordinator.coordinator"):
            await coordinator.report_account()

        mock_clients.hub_query.get_balance.assert_awaited_once_with("neutron1coordinator", "untrn")
        assert "Coordinator address state: 1000untrn, height: 42" in caplog.text

    @pytest.mark.asyncio
    async def test_query_failure_is_logged(self, config, mock_clients, fake_executor, caplog):
        mock_clients.hub_signer = MagicMock(address="neutron1coordinator")
        mock_clients.hub_query.get_latest_height.side_effect = ChainQueryError("rpc down")
        coordinator = Coordinator(config, executor=fake_executor)
        await coordinator.init(clients=mock_clients)

        with caplog.at_level(logging.WARNING, logger="drop_coordinator.coordinator"):
            await coordinator.report_account()

        assert "rpc down" in caplog.text
