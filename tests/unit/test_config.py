"""
Unit Tests for Configuration Module

These tests verify that the configuration system works correctly:
- Default values are applied when needed
- Validation catches invalid configurations
- Property methods work as expected

Run with:
    pytest tests/unit/test_config.py -v
"""

import pytest

from core.config import Settings, settings, validate_configuration
from core.schemas import Currency, Exchange


class TestConfigurationLoading:
    """Test that configuration loads correctly"""

    def test_exchange_urls_loaded(self):
        assert "binance" in settings.binance_base_url.lower()
        assert "kraken" in settings.kraken_base_url.lower()
        assert settings.binance_base_url.startswith("http")

    def test_app_port_is_valid_integer(self):
        assert isinstance(settings.app_port, int)
        assert 1 <= settings.app_port <= 65535

    def test_defaults_are_enums(self):
        assert isinstance(settings.default_currency, Currency)
        assert isinstance(settings.default_exchange, Exchange)

    def test_global_settings_pass_validation(self):
        validate_configuration()


class TestSymbolsParsing:
    """Test that symbols are parsed correctly from comma-separated string"""

    def test_symbols_list_normalized_and_deduped(self):
        config = Settings(default_symbols=" btc,ETH, ,eth,xrp ")
        assert config.symbols_list == ["BTC", "ETH", "XRP"]

    def test_default_watchlist(self):
        assert Settings(default_symbols="BTC,ETH,XRP").symbols_list == ["BTC", "ETH", "XRP"]

    def test_cors_origins_list(self):
        config = Settings(cors_origins="http://a.test, http://b.test,")
        assert config.cors_origins_list == ["http://a.test", "http://b.test"]


class TestPollIntervals:

    def test_interval_per_exchange(self):
        config = Settings(binance_poll_interval=5.0, kraken_poll_interval=10.0)
        assert config.poll_interval_for(Exchange.BINANCE) == 5.0
        assert config.poll_interval_for(Exchange.KRAKEN) == 10.0


class TestValidation:
    """Test validate_configuration rejects invalid settings"""

    def test_timeout_must_be_shorter_than_every_interval(self):
        config = Settings(request_timeout=5.0, binance_poll_interval=5.0, kraken_poll_interval=10.0)
        with pytest.raises(ValueError, match="REQUEST_TIMEOUT"):
            validate_configuration(config)

    def test_invalid_symbol_rejected(self):
        with pytest.raises(ValueError, match="alphanumeric"):
            validate_configuration(Settings(default_symbols="BTC,ET-H"))

    def test_empty_watchlist_rejected(self):
        with pytest.raises(ValueError):
            validate_configuration(Settings(default_symbols=" , "))

    def test_invalid_history_interval_rejected(self):
        with pytest.raises(ValueError, match="HISTORY_INTERVAL_MINUTES"):
            validate_configuration(Settings(history_interval_minutes=7))

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValueError, match="LOG_LEVEL"):
            validate_configuration(Settings(log_level="LOUD"))

    def test_invalid_port_rejected(self):
        with pytest.raises(ValueError, match="port"):
            validate_configuration(Settings(app_port=70000))
