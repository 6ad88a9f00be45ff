"""
Configuration Management Module

This module handles loading, validating, and providing access to application configuration
from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Validates all required settings
- Provides type-safe access to configuration values
- Converts comma-separated strings to lists (watch-list symbols, CORS origins)
- Resolves the refresh cadence for each exchange

Usage:
    from core.config import settings

    # Access configuration values
    print(settings.kraken_base_url)
    print(settings.symbols_list)  # Returns a list of strings
"""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

from core.schemas import Currency, Exchange


class Settings(BaseSettings):
    """
    Application Settings

    This class defines all configuration parameters for the application.
    Values are automatically loaded from environment variables or .env file.

    Attributes:
        binance_base_url: Base URL for the Binance spot REST API
        kraken_base_url: Base URL for the Kraken spot REST API
        request_timeout: Timeout for a single exchange HTTP request (seconds)
        binance_poll_interval: Refresh cadence while Binance is the selected exchange
        kraken_poll_interval: Refresh cadence while Kraken is the selected exchange
        history_points: Number of samples kept for the sparkline history
        history_interval_minutes: Candle size used for the sparkline history
        default_symbols: Initial watch-list of the dashboard session
        default_currency: Initial display currency
        default_exchange: Initial selected exchange
        gemini_api_key: API key for the market analysis service (optional)
        gemini_model: Gemini model used for market analysis
        analysis_timeout: Timeout for the analysis request (seconds)
        app_host: Host address for FastAPI server
        app_port: Port number for FastAPI server
        environment: Current environment (development, production)
        debug: Enable debug mode with verbose logging
    """

    # ============================================
    # Exchange API Configuration
    # ============================================

    binance_base_url: str = Field(
        default="https://api.binance.com",
        description="Binance spot API base URL"
    )

    kraken_base_url: str = Field(
        default="https://api.kraken.com",
        description="Kraken spot API base URL"
    )

    # ============================================
    # Polling & Timeouts
    # ============================================

    request_timeout: float = Field(
        default=4.0,
        gt=0,
        description="HTTP request timeout in seconds (must be shorter than every poll interval)"
    )

    binance_poll_interval: float = Field(
        default=5.0,
        gt=0,
        description="Seconds between poll cycles when Binance is selected"
    )

    kraken_poll_interval: float = Field(
        default=10.0,
        gt=0,
        description="Seconds between poll cycles when Kraken is selected (per-pair request cost)"
    )

    history_points: int = Field(
        default=24,
        ge=0,
        le=500,
        description="Number of price samples kept per coin for the sparkline"
    )

    history_interval_minutes: int = Field(
        default=60,
        description="Candle size in minutes used for the sparkline history"
    )

    # ============================================
    # Dashboard Defaults
    # ============================================

    default_symbols: str = Field(
        default="BTC,ETH,XRP",
        description="Comma-separated initial watch-list"
    )

    default_currency: Currency = Field(
        default=Currency.USD,
        description="Initial display currency"
    )

    default_exchange: Exchange = Field(
        default=Exchange.BINANCE,
        description="Initial selected exchange"
    )

    # ============================================
    # Market Analysis (Gemini) Configuration
    # ============================================

    gemini_api_key: str = Field(
        default="",
        description="Gemini API key (optional, analysis is disabled without it)"
    )

    gemini_model: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model used for market sentiment analysis"
    )

    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST API base URL"
    )

    analysis_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for the analysis request in seconds"
    )

    # ============================================
    # Application Configuration
    # ============================================

    app_host: str = Field(
        default="0.0.0.0",
        description="FastAPI server host address"
    )

    app_port: int = Field(
        default=8000,
        description="FastAPI server port"
    )

    environment: str = Field(
        default="development",
        description="Application environment (development, production)"
    )

    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # ============================================
    # CORS Configuration
    # ============================================

    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    # ============================================
    # Pydantic Settings Configuration
    # ============================================

    model_config = SettingsConfigDict(
        # Look for .env file in the project root
        env_file=".env",
        # Ignore extra fields in .env that aren't defined here
        extra="ignore",
        # Case-insensitive environment variable matching
        case_sensitive=False
    )

    # ============================================
    # Custom Properties
    # ============================================

    @property
    def symbols_list(self) -> List[str]:
        """
        Convert the comma-separated default watch-list to a list.

        Duplicates are dropped while keeping the first occurrence.

        Example:
            >>> settings.symbols_list
            ['BTC', 'ETH', 'XRP']
        """
        symbols: List[str] = []
        for raw in self.default_symbols.split(","):
            symbol = raw.strip().upper()
            if symbol and symbol not in symbols:
                symbols.append(symbol)
        return symbols

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Convert comma-separated CORS origins string to a list.

        Example:
            >>> settings.cors_origins_list
            ['http://localhost:3000', 'http://localhost:5173']
        """
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def analysis_enabled(self) -> bool:
        """True if a Gemini API key is configured."""
        return bool(self.gemini_api_key)

    def poll_interval_for(self, exchange: Exchange) -> float:
        """
        Get the refresh cadence for the selected exchange.

        Binance has looser public rate limits, so it is polled more often
        than Kraken, where every pair costs a separate request.
        """
        if exchange is Exchange.KRAKEN:
            return self.kraken_poll_interval
        return self.binance_poll_interval


# ============================================
# Global Settings Instance
# ============================================

# Create a single instance of settings to be imported throughout the application
settings = Settings()


# ============================================
# Configuration Validation
# ============================================

VALID_HISTORY_INTERVALS = [1, 5, 15, 30, 60, 240, 1440]


def validate_configuration(config: Settings = None) -> None:
    """
    Validate critical configuration settings on application startup.

    Args:
        config: Settings to validate (defaults to the global settings)

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    # Import logger here to avoid circular import
    # (logging.py imports config.py, so we can't import at module level)
    from core.logging import logger

    config = config or settings

    if not config.symbols_list:
        raise ValueError("DEFAULT_SYMBOLS must contain at least one symbol")

    for symbol in config.symbols_list:
        if not symbol.isalnum():
            raise ValueError(
                f"Symbol '{symbol}' must be alphanumeric. "
                f"Please update DEFAULT_SYMBOLS in .env"
            )

    # A request that outlives the poll interval would starve later cycles
    shortest_interval = min(config.binance_poll_interval, config.kraken_poll_interval)
    if config.request_timeout >= shortest_interval:
        raise ValueError(
            f"REQUEST_TIMEOUT ({config.request_timeout}s) must be shorter than "
            f"every poll interval (shortest is {shortest_interval}s)"
        )

    if config.history_interval_minutes not in VALID_HISTORY_INTERVALS:
        raise ValueError(
            f"Invalid HISTORY_INTERVAL_MINUTES: {config.history_interval_minutes}. "
            f"Must be one of: {', '.join(str(i) for i in VALID_HISTORY_INTERVALS)}"
        )

    if not (1 <= config.app_port <= 65535):
        raise ValueError(f"Invalid port number: {config.app_port}. Must be between 1 and 65535")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{config.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(f"Default watch-list: {', '.join(config.symbols_list)}")
    logger.info(f"Default currency/exchange: {config.default_currency.value}/{config.default_exchange.value}")
    logger.info(f"Binance API: {config.binance_base_url} (every {config.binance_poll_interval}s)")
    logger.info(f"Kraken API: {config.kraken_base_url} (every {config.kraken_poll_interval}s)")
    logger.info(f"Request timeout: {config.request_timeout}s")
    logger.info(f"Market analysis: {'enabled' if config.analysis_enabled else 'disabled'}")
    logger.info(f"Server: {config.app_host}:{config.app_port}")
    logger.info(f"Log level: {config.log_level.upper()}")
