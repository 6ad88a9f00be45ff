"""
Unit Tests for the Aggregator

These tests verify that one poll cycle:
- Returns coins in watch-list order whatever order fetches complete in
- Falls back to the other exchange on unsupported pairs and every fetch error
- Omits symbols that fail on both exchanges
- Keeps a coin whose history failed
- Rejects contract violations before sending any request

Run with:
    pytest tests/unit/test_aggregator.py -v
"""

import pytest

from core.aggregator import Aggregator
from core.errors import MalformedError, NotFoundError, RateLimitedError, TransientError
from core.schemas import Currency, Exchange


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def aggregator(manager):
    return Aggregator(manager)


# ============================================
# Happy Path & Ordering
# ============================================

class TestAggregate:
    """Tests for the per-symbol algorithm"""

    @pytest.mark.asyncio
    async def test_unknown_symbol_omitted_and_secondary_serves(self, aggregator, binance, kraken):
        """BTC from Binance, ZZZ nowhere, ETH only on Kraken"""
        binance.prices = {"BTC": 64000.0}
        kraken.prices = {"ETH": 3100.0}

        coins = await aggregator.aggregate(["BTC", "ZZZ", "ETH"], Currency.USD, Exchange.BINANCE)

        assert [coin.symbol for coin in coins] == ["BTC", "ETH"]
        assert coins[0].exchange is Exchange.BINANCE
        assert coins[1].exchange is Exchange.KRAKEN
        assert coins[1].current_price == 3100.0

    @pytest.mark.asyncio
    async def test_primary_serves_everything_without_touching_secondary(self, aggregator, binance, kraken):
        binance.prices = {"BTC": 64000.0, "ETH": 3100.0}

        coins = await aggregator.aggregate(["BTC", "ETH"], Currency.USD, Exchange.BINANCE)

        assert len(coins) == 2
        assert kraken.calls == []

    @pytest.mark.asyncio
    async def test_order_preserved_under_reversed_completion(self, aggregator, binance):
        """First symbol finishes last, output order still matches input"""
        binance.prices = {"BTC": 64000.0, "ETH": 3100.0, "XRP": 0.5}
        binance.delays = {"BTC": 0.05, "ETH": 0.02, "XRP": 0.0}

        coins = await aggregator.aggregate(["BTC", "ETH", "XRP"], Currency.USD, Exchange.BINANCE)

        assert [coin.symbol for coin in coins] == ["BTC", "ETH", "XRP"]

    @pytest.mark.asyncio
    async def test_lookups_run_concurrently(self, aggregator, binance):
        binance.prices = {"BTC": 64000.0, "ETH": 3100.0, "XRP": 0.5}
        binance.delays = {"BTC": 0.02, "ETH": 0.02, "XRP": 0.02}

        await aggregator.aggregate(["BTC", "ETH", "XRP"], Currency.USD, Exchange.BINANCE)

        assert binance.max_active == 3

    @pytest.mark.asyncio
    async def test_result_is_unique_subset_of_watchlist(self, aggregator, binance, kraken):
        binance.prices = {"BTC": 64000.0, "SOL": 150.0}
        kraken.prices = {"BTC": 64010.0, "ADA": 0.4}
        symbols = ["ADA", "BTC", "DOT", "SOL"]

        coins = await aggregator.aggregate(symbols, Currency.USD, Exchange.BINANCE)
        result = [coin.symbol for coin in coins]

        assert len(result) == len(set(result))
        assert set(result) <= set(symbols)
        assert result == [s for s in symbols if s in result]

    @pytest.mark.asyncio
    async def test_empty_watchlist_returns_empty_list(self, aggregator, binance, kraken):
        assert await aggregator.aggregate([], Currency.USD, Exchange.BINANCE) == []
        assert binance.calls == []
        assert kraken.calls == []


# ============================================
# Fallback
# ============================================

class TestFallback:
    """Tests for secondary-exchange fallback"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        NotFoundError("unknown pair"),
        RateLimitedError("HTTP 429", retry_after=30),
        TransientError("timeout"),
        MalformedError("missing field 'lastPrice'"),
    ])
    async def test_any_fetch_error_falls_back(self, aggregator, binance, kraken, error):
        binance.errors = {"BTC": error}
        kraken.prices = {"BTC": 64010.0}

        coins = await aggregator.aggregate(["BTC"], Currency.USD, Exchange.BINANCE)

        assert len(coins) == 1
        assert coins[0].exchange is Exchange.KRAKEN
        assert coins[0].current_price == 64010.0

    @pytest.mark.asyncio
    async def test_kraken_primary_falls_back_to_binance(self, aggregator, binance, kraken):
        kraken.errors = {"ETH": TransientError("HTTP 502")}
        binance.prices = {"ETH": 3100.0}

        coins = await aggregator.aggregate(["ETH"], Currency.EUR, Exchange.KRAKEN)

        assert coins[0].exchange is Exchange.BINANCE
        assert binance.calls[0].pair_id == "ETHEUR"

    @pytest.mark.asyncio
    async def test_unsupported_on_primary_skips_request(self, aggregator, binance, kraken):
        """ATOM has no EUR pair on Binance, so only Kraken is asked"""
        kraken.prices = {"ATOM": 7.2}

        coins = await aggregator.aggregate(["ATOM"], Currency.EUR, Exchange.BINANCE)

        assert binance.calls == []
        assert kraken.calls[0].pair_id == "ATOMEUR"
        assert coins[0].exchange is Exchange.KRAKEN

    @pytest.mark.asyncio
    async def test_symbol_failing_on_both_is_omitted(self, aggregator, binance, kraken):
        binance.prices = {"ETH": 3100.0}
        binance.errors = {"BTC": RateLimitedError("HTTP 429")}
        kraken.errors = {"BTC": TransientError("timeout")}

        coins = await aggregator.aggregate(["BTC", "ETH"], Currency.USD, Exchange.BINANCE)

        assert [coin.symbol for coin in coins] == ["ETH"]

    @pytest.mark.asyncio
    async def test_everything_failing_returns_empty_list(self, aggregator):
        assert await aggregator.aggregate(["BTC", "ETH"], Currency.USD, Exchange.BINANCE) == []


# ============================================
# History
# ============================================

class TestHistory:
    """Tests for sparkline history handling"""

    @pytest.mark.asyncio
    async def test_history_from_serving_exchange(self, aggregator, binance, kraken):
        kraken.prices = {"BTC": 64010.0}

        coins = await aggregator.aggregate(["BTC"], Currency.USD, Exchange.BINANCE)

        assert binance.history_calls == []
        assert len(kraken.history_calls) == 1
        assert [point.price for point in coins[0].history] == [64010.0, 64011.0, 64012.0]

    @pytest.mark.asyncio
    async def test_history_failure_keeps_coin(self, aggregator, binance):
        binance.prices = {"BTC": 64000.0}
        binance.history_errors = {"BTC": TransientError("timeout")}

        coins = await aggregator.aggregate(["BTC"], Currency.USD, Exchange.BINANCE)

        assert len(coins) == 1
        assert coins[0].history == []
        assert coins[0].current_price == 64000.0

    @pytest.mark.asyncio
    async def test_history_skipped_when_unsupported(self, fake_adapter):
        from core.exchange_manager import ExchangeManager

        binance = fake_adapter(Exchange.BINANCE, prices={"BTC": 64000.0}, supports_history=False)
        kraken = fake_adapter(Exchange.KRAKEN)
        aggregator = Aggregator(ExchangeManager({Exchange.BINANCE: binance, Exchange.KRAKEN: kraken}))

        coins = await aggregator.aggregate(["BTC"], Currency.USD, Exchange.BINANCE)

        assert coins[0].history == []
        assert binance.history_calls == []

    @pytest.mark.asyncio
    async def test_bad_candle_time_keeps_whole_cycle(self, kraken, monkeypatch):
        """A kline with an impossible open time only costs BTC its sparkline"""
        from core.exchange_manager import ExchangeManager
        from exchanges.binance import BinanceAdapter

        binance = BinanceAdapter()
        kraken.prices = {"ETH": 3100.0}

        async def mock_get(path, params=None, pair_id=None):
            if pair_id != "BTCUSDT":
                raise NotFoundError("unknown pair", "binance", pair_id)
            if path == "/api/v3/ticker/24hr":
                return {"lastPrice": "64000.00", "priceChangePercent": "1.20"}
            return [[-1, "1", "1", "1", "1.5", "1"]]

        monkeypatch.setattr(binance.client, "_get", mock_get)
        aggregator = Aggregator(ExchangeManager({Exchange.BINANCE: binance, Exchange.KRAKEN: kraken}))

        coins = await aggregator.aggregate(["BTC", "ETH"], Currency.USD, Exchange.BINANCE)

        assert [coin.symbol for coin in coins] == ["BTC", "ETH"]
        assert coins[0].current_price == 64000.0
        assert coins[0].history == []
        assert coins[1].exchange is Exchange.KRAKEN


# ============================================
# Contract Violations
# ============================================

class TestContract:
    """Programming errors raise before any request"""

    @pytest.mark.asyncio
    async def test_duplicate_symbols_rejected(self, aggregator, binance):
        with pytest.raises(ValueError):
            await aggregator.aggregate(["BTC", "BTC"], Currency.USD, Exchange.BINANCE)
        assert binance.calls == []

    @pytest.mark.asyncio
    async def test_lowercase_symbol_rejected(self, aggregator):
        with pytest.raises(ValueError):
            await aggregator.aggregate(["btc"], Currency.USD, Exchange.BINANCE)

    @pytest.mark.asyncio
    async def test_plain_string_currency_rejected(self, aggregator):
        with pytest.raises(TypeError):
            await aggregator.aggregate(["BTC"], "USD", Exchange.BINANCE)

    @pytest.mark.asyncio
    async def test_string_instead_of_list_rejected(self, aggregator):
        with pytest.raises(TypeError):
            await aggregator.aggregate("BTC", Currency.USD, Exchange.BINANCE)
