"""
Unit Tests for Exchange Adapter Interface and Manager

These tests verify that:
- ExchangeAdapter is properly defined as an abstract class
- Minimal implementations can inherit and implement the interface
- ExchangeManager correctly manages adapter instances
- Lifecycle and health checks tolerate failing adapters

Run with:
    pytest tests/unit/test_exchange_interface.py -v
"""

import pytest

from core.exchange_interface import ExchangeAdapter
from core.exchange_manager import ExchangeManager
from core.schemas import Exchange
from exchanges.binance import BinanceAdapter
from exchanges.kraken import KrakenAdapter


# ============================================
# Dummy Adapter for Testing
# ============================================

class DummyAdapter(ExchangeAdapter):
    """Minimal adapter: no history, lifecycle calls are recorded."""

    name = "kraken"
    exchange = Exchange.KRAKEN
    capabilities = {
        "ticker": True,
        "history": False  # Intentionally not supported
    }

    def __init__(self, fail_lifecycle=False):
        self.fail_lifecycle = fail_lifecycle
        self.events = []

    async def fetch_one(self, pair):
        raise NotImplementedError("Dummy adapter has no ticker data")

    async def fetch_history(self, pair):
        return []

    async def initialize(self):
        self.events.append("initialize")
        if self.fail_lifecycle:
            raise RuntimeError("boom")

    async def shutdown(self):
        self.events.append("shutdown")

    async def health_check(self):
        if self.fail_lifecycle:
            raise RuntimeError("boom")
        return True


# ============================================
# Tests for ExchangeAdapter
# ============================================

class TestExchangeAdapter:
    """Test the ExchangeAdapter abstract class"""

    def test_cannot_instantiate_abstract_interface(self):
        with pytest.raises(TypeError):
            ExchangeAdapter()

    def test_supports_method_returns_correct_values(self):
        adapter = DummyAdapter()
        assert adapter.supports("ticker") is True
        assert adapter.supports("history") is False
        assert adapter.supports("websocket") is False

    def test_repr_includes_name(self):
        assert repr(DummyAdapter()) == "<DummyAdapter(name='kraken')>"

    @pytest.mark.asyncio
    async def test_health_check_default_returns_true(self, binance):
        assert await binance.health_check() is True

    def test_real_adapters_implement_interface(self):
        assert issubclass(BinanceAdapter, ExchangeAdapter)
        assert issubclass(KrakenAdapter, ExchangeAdapter)


# ============================================
# Tests for ExchangeManager
# ============================================

class TestExchangeManager:
    """Test ExchangeManager registry and lifecycle"""

    def test_default_manager_builds_both_adapters(self):
        manager = ExchangeManager()
        assert manager.list_exchanges() == ["binance", "kraken"]
        assert isinstance(manager.get_adapter(Exchange.BINANCE), BinanceAdapter)
        assert isinstance(manager.get_adapter(Exchange.KRAKEN), KrakenAdapter)
        assert len(manager) == 2

    def test_get_adapter_by_name_case_insensitive(self, manager, kraken):
        assert manager.get_adapter("kraken") is kraken
        assert manager.get_adapter("KRAKEN") is kraken

    def test_get_adapter_raises_for_unknown(self, manager):
        with pytest.raises(ValueError, match="not supported"):
            manager.get_adapter("coinbase")

    def test_has_adapter(self, manager):
        assert manager.has_adapter(Exchange.BINANCE)
        assert not manager.has_adapter("coinbase")

    def test_missing_adapter_reported(self, binance):
        manager = ExchangeManager({Exchange.BINANCE: binance})
        assert not manager.has_adapter(Exchange.KRAKEN)
        with pytest.raises(ValueError):
            manager.get_adapter(Exchange.KRAKEN)

    def test_capabilities_are_copied(self, manager):
        capabilities = manager.get_exchange_capabilities("binance")
        capabilities["history"] = False
        assert manager.get_adapter("binance").supports("history")

    def test_repr_includes_exchange_names(self, manager):
        assert "binance" in repr(manager)
        assert "kraken" in repr(manager)

    @pytest.mark.asyncio
    async def test_initialize_all_survives_failing_adapter(self, binance):
        dummy = DummyAdapter(fail_lifecycle=True)
        manager = ExchangeManager({Exchange.BINANCE: binance, Exchange.KRAKEN: dummy})

        await manager.initialize_all()
        await manager.shutdown_all()

        assert dummy.events == ["initialize", "shutdown"]

    @pytest.mark.asyncio
    async def test_health_check_all_marks_failures_unhealthy(self, binance):
        manager = ExchangeManager({Exchange.BINANCE: binance, Exchange.KRAKEN: DummyAdapter(fail_lifecycle=True)})

        health = await manager.health_check_all()

        assert health == {"binance": True, "kraken": False}
