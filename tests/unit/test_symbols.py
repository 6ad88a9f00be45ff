"""
Unit Tests for the Symbol Resolver

Run with:
    pytest tests/unit/test_symbols.py -v
"""

import pytest

from core.schemas import Currency, Exchange
from core.symbols import SymbolResolver


@pytest.fixture
def resolver():
    return SymbolResolver()


class TestBinance:
    """Binance pair naming"""

    def test_usd_uses_usdt_quote(self, resolver):
        pair = resolver.resolve("BTC", Currency.USD, Exchange.BINANCE)
        assert pair.pair_id == "BTCUSDT"
        assert pair.exchange is Exchange.BINANCE
        assert pair.symbol == "BTC"
        assert str(pair) == "BINANCE:BTCUSDT"

    def test_eur_for_listed_base(self, resolver):
        assert resolver.resolve("ETH", Currency.EUR, Exchange.BINANCE).pair_id == "ETHEUR"

    def test_eur_for_unlisted_base_unsupported(self, resolver):
        assert resolver.resolve("ATOM", Currency.EUR, Exchange.BINANCE) is None

    def test_quote_asset_itself_unsupported(self, resolver):
        assert resolver.resolve("USDT", Currency.USD, Exchange.BINANCE) is None
        assert resolver.resolve("EUR", Currency.EUR, Exchange.BINANCE) is None

    def test_custom_eur_bases(self):
        resolver = SymbolResolver(binance_eur_bases=frozenset({"ATOM"}))
        assert resolver.resolve("ATOM", Currency.EUR, Exchange.BINANCE).pair_id == "ATOMEUR"
        assert resolver.resolve("BTC", Currency.EUR, Exchange.BINANCE) is None


class TestKraken:
    """Kraken pair naming"""

    @pytest.mark.parametrize("symbol, currency, expected", [
        ("BTC", Currency.USD, "XBTUSD"),
        ("BTC", Currency.EUR, "XBTEUR"),
        ("DOGE", Currency.EUR, "XDGEUR"),
        ("ETH", Currency.EUR, "ETHEUR"),
        ("SOL", Currency.USD, "SOLUSD"),
    ])
    def test_pair_ids(self, resolver, symbol, currency, expected):
        assert resolver.resolve(symbol, currency, Exchange.KRAKEN).pair_id == expected

    def test_quote_asset_itself_unsupported(self, resolver):
        assert resolver.resolve("USD", Currency.USD, Exchange.KRAKEN) is None

    def test_usdt_is_a_base_on_kraken(self, resolver):
        assert resolver.resolve("USDT", Currency.USD, Exchange.KRAKEN).pair_id == "USDTUSD"


class TestInvalidSymbols:

    @pytest.mark.parametrize("symbol", ["", "btc", "BTC/USD", "A" * 16, "BT C"])
    def test_malformed_symbols_unsupported(self, resolver, symbol):
        for exchange in Exchange:
            assert resolver.resolve(symbol, Currency.USD, exchange) is None

    def test_resolution_is_deterministic(self, resolver):
        first = resolver.resolve("XRP", Currency.EUR, Exchange.KRAKEN)
        second = resolver.resolve("XRP", Currency.EUR, Exchange.KRAKEN)
        assert first == second
