"""
Binance Exchange Adapter

This module implements the ExchangeAdapter interface for the Binance spot market.

Binance has the broadest coin coverage and the loosest public rate limits of the
two supported exchanges, so it is the default primary exchange and is polled
every few seconds.

API Documentation:
    https://developers.binance.com/docs/binance-spot-api-docs/rest-api

Endpoints Used:
    - GET /api/v3/ticker/24hr - Last price and 24h change
    - GET /api/v3/klines - Candle closes for the sparkline history
    - GET /api/v3/ping - Health check

Structure:
    exchanges/binance/
    ├── __init__.py          # This file (BinanceAdapter class)
    └── api_client.py        # REST API client with aiohttp
"""

from typing import List, Optional

from core.exchange_interface import ExchangeAdapter
from core.errors import FetchError
from core.logging import logger
from core.schemas import CoinSnapshot, Exchange, PricePoint, TradingPair
from .api_client import BinanceAPIClient, KLINE_INTERVALS


class BinanceAdapter(ExchangeAdapter):
    """
    Binance Spot Exchange Adapter

    Attributes:
        name: Exchange identifier ("binance")
        exchange: Exchange.BINANCE
        capabilities: Dictionary of supported features
        client: BinanceAPIClient used for REST calls

    Example:
        >>> adapter = BinanceAdapter()
        >>> await adapter.initialize()
        >>> coin = await adapter.fetch_one(pair)
        >>> await adapter.shutdown()
    """

    name = "binance"
    exchange = Exchange.BINANCE

    capabilities = {
        "ticker": True,
        "history": True
    }

    def __init__(self, client: Optional[BinanceAPIClient] = None):
        """
        Initialize the Binance adapter.

        Args:
            client: Optional pre-built API client (defaults to one built from settings)
        """
        from core.config import settings

        self.client = client or BinanceAPIClient()
        self.history_points = settings.history_points
        self.history_interval_minutes = settings.history_interval_minutes

        logger.debug(f"BinanceAdapter created (base_url={self.client.base_url})")

    @property
    def history_interval(self) -> str:
        """Kline interval string for the configured candle size (e.g., 60 -> "1h")."""
        try:
            return KLINE_INTERVALS[self.history_interval_minutes]
        except KeyError:
            raise ValueError(
                f"No Binance kline interval for {self.history_interval_minutes} minutes. "
                f"Must be one of: {sorted(KLINE_INTERVALS)}"
            )

    async def initialize(self) -> None:
        """Open the HTTP session of the API client."""
        if self.client.session is not None:
            return
        logger.info("Initializing Binance exchange adapter...")
        await self.client.__aenter__()
        logger.info("✓ Binance exchange adapter initialized")

    async def shutdown(self) -> None:
        """Close the HTTP session of the API client."""
        logger.info("Shutting down Binance exchange adapter...")
        await self.client.__aexit__(None, None, None)

    async def health_check(self) -> bool:
        """Ping the Binance REST API."""
        try:
            return await self.client.ping()
        except FetchError as e:
            logger.warning(f"Binance health check failed: {e}")
            return False

    # ============================================
    # REST Methods
    # ============================================

    async def fetch_one(self, pair: TradingPair) -> CoinSnapshot:
        """Fetch last price and 24h change for a Binance pair."""
        return await self.client.get_ticker(pair)

    async def fetch_history(self, pair: TradingPair) -> List[PricePoint]:
        """Fetch the sparkline candles for a Binance pair."""
        return await self.client.get_history(pair, self.history_interval, self.history_points)
