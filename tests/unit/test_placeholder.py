"""
Unit Tests for the Placeholder Snapshot and Coin Metadata

Run with:
    pytest tests/unit/test_placeholder.py -v
"""

import re

import pytest

from core.coins import coin_color, coin_name
from core.placeholder import initial_snapshot
from core.schemas import Currency


class TestInitialSnapshot:
    """Tests for initial_snapshot"""

    def test_one_zero_entry_per_symbol_in_order(self):
        coins = initial_snapshot(Currency.USD, ["BTC", "ETH", "XRP"])

        assert [coin.symbol for coin in coins] == ["BTC", "ETH", "XRP"]
        assert [coin.id for coin in coins] == ["btc", "eth", "xrp"]
        for coin in coins:
            assert coin.current_price == 0
            assert coin.change_24h == 0
            assert coin.history == []
            assert coin.exchange is None
            assert not coin.is_live

    def test_normalizes_and_dedupes(self):
        coins = initial_snapshot(Currency.EUR, [" sol", "SOL", "", "btc"])
        assert [coin.symbol for coin in coins] == ["SOL", "BTC"]

    def test_idempotent(self):
        assert initial_snapshot(Currency.USD, ["BTC", "PEPE"]) == initial_snapshot(Currency.USD, ["BTC", "PEPE"])

    def test_empty_watchlist(self):
        assert initial_snapshot(Currency.USD, []) == []

    def test_rejects_plain_string_currency(self):
        with pytest.raises(TypeError):
            initial_snapshot("USD", ["BTC"])


class TestCoinMetadata:
    """Tests for names and colors"""

    def test_known_names(self):
        assert coin_name("btc") == "Bitcoin"
        assert coin_name("ETH") == "Ethereum"

    def test_unknown_name_falls_back_to_symbol(self):
        assert coin_name("zzz") == "ZZZ"

    def test_brand_color(self):
        assert coin_color("BTC") == "#F7931A"

    @pytest.mark.parametrize("symbol", ["PEPE", "ZZZ", "1INCH", "A"])
    def test_derived_color_is_stable_hex(self, symbol):
        color = coin_color(symbol)
        assert re.fullmatch(r"#[0-9A-F]{6}", color)
        assert coin_color(symbol.lower()) == color
