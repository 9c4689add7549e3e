"""Tests for the shared data models."""

from decimal import Decimal

import pytest

from drop_coordinator.models import CycleResult, FactoryState, GasPrice, TickReport


class TestGasPrice:
    """Tests for GasPrice parsing."""

    def test_parse_decimal_price(self):
        price = GasPrice.from_string("0.025untrn")

        assert price.amount == Decimal("0.025")
        assert price.denom == "untrn"
        assert str(price) == "0.025untrn"

    def test_parse_ibc_denom(self):
        """Test that IBC denoms with a slash are accepted."""
        price = GasPrice.from_string("0.1ibc/27394FB092D2ECCD56123C74F36E4C1F926001CEADA9CA97EA622B25F41E5EB2")

        assert price.denom.startswith("ibc/")

    @pytest.mark.parametrize("value", ["", "untrn", "0.025", "-1untrn", "0.025 untrn", "1.ux"])
    def test_rejects_malformed(self, value):
        with pytest.raises(ValueError, match="Invalid gas price"):
            GasPrice.from_string(value)


class TestFactoryState:
    """Tests for FactoryState."""

    def test_from_response_strips_contract_suffix(self):
        """Test that factory keys are mapped to roles."""
        state = FactoryState.from_response({
            "core_contract": "addrA",
            "validators_stats_contract": "addrB",
            "distribution_contract": "addrD",
        })

        assert state["core"] == "addrA"
        assert state["validators_stats"] == "addrB"
        assert state.roles == ["core", "distribution", "validators_stats"]

    def test_from_response_drops_unset_optional_contracts(self):
        state = FactoryState.from_response({
            "core_contract": "addrA",
            "val_ref_contract": None,
            "rewards_pump_contract": "",
        })

        assert "val_ref" not in state
        assert "rewards_pump" not in state
        assert len(state) == 1

    def test_from_response_rejects_non_object(self):
        with pytest.raises(ValueError, match="must be an object"):
            FactoryState.from_response(["addrA"])

    def test_from_response_rejects_non_string_address(self):
        with pytest.raises(ValueError, match="is not an address"):
            FactoryState.from_response({"core_contract": 42})

    def test_from_response_rejects_empty_state(self):
        with pytest.raises(ValueError, match="no contract addresses"):
            FactoryState.from_response({})

    def test_snapshot_is_immutable(self):
        """Test that a snapshot cannot be partially updated."""
        source = {"core": "addrA"}
        state = FactoryState(source)
        source["core"] = "addrZ"

        assert state["core"] == "addrA"
        with pytest.raises(TypeError):
            state.addresses["core"] = "addrZ"  # type: ignore[index]

    def test_get_missing_role(self):
        assert FactoryState({"core": "addrA"}).get("validators_stats") is None


class TestTickReport:
    def test_failed_lists_failed_modules(self):
        report = TickReport(number=1, results=[
            CycleResult("core", ok=True, duration=0.1),
            CycleResult("validators_stats", ok=False, duration=0.2, error="boom"),
        ])

        assert report.failed == ["validators_stats"]
