"""
Kraken Exchange Adapter

This module implements the ExchangeAdapter interface for the Kraken spot market.

Kraken quotes natively in both USD and EUR, which makes it the natural secondary
exchange for EUR pairs Binance does not list. Every pair is a separate request,
so it is polled less often than Binance when selected as primary.

API Documentation:
    https://docs.kraken.com/api/docs/rest-api/get-ticker-information

Endpoints Used:
    - GET /0/public/Ticker - Last trade price and today's opening price
    - GET /0/public/OHLC - Candle closes for the sparkline history
    - GET /0/public/SystemStatus - Health check

Structure:
    exchanges/kraken/
    ├── __init__.py          # This file (KrakenAdapter class)
    └── api_client.py        # REST API client with aiohttp
"""

from typing import List, Optional

from core.exchange_interface import ExchangeAdapter
from core.errors import FetchError
from core.logging import logger
from core.schemas import CoinSnapshot, Exchange, PricePoint, TradingPair
from .api_client import KrakenAPIClient


class KrakenAdapter(ExchangeAdapter):
    """
    Kraken Spot Exchange Adapter

    Attributes:
        name: Exchange identifier ("kraken")
        exchange: Exchange.KRAKEN
        capabilities: Dictionary of supported features
        client: KrakenAPIClient used for REST calls
    """

    name = "kraken"
    exchange = Exchange.KRAKEN

    capabilities = {
        "ticker": True,
        "history": True
    }

    def __init__(self, client: Optional[KrakenAPIClient] = None):
        from core.config import settings

        self.client = client or KrakenAPIClient()
        self.history_points = settings.history_points
        self.history_interval = settings.history_interval_minutes

        logger.debug(f"KrakenAdapter created (base_url={self.client.base_url})")

    async def initialize(self) -> None:
        """Open the HTTP session of the API client."""
        if self.client.session is not None:
            return
        logger.info("Initializing Kraken exchange adapter...")
        await self.client.__aenter__()
        logger.info("✓ Kraken exchange adapter initialized")

    async def shutdown(self) -> None:
        """Close the HTTP session of the API client."""
        logger.info("Shutting down Kraken exchange adapter...")
        await self.client.__aexit__(None, None, None)

    async def health_check(self) -> bool:
        """Healthy when Kraken reports its system status as online."""
        try:
            status = await self.client.get_system_status()
        except FetchError as e:
            logger.warning(f"Kraken health check failed: {e}")
            return False
        return status == "online"

    # ============================================
    # REST Methods
    # ============================================

    async def fetch_one(self, pair: TradingPair) -> CoinSnapshot:
        """Fetch last price and 24h change for a Kraken pair."""
        return await self.client.get_ticker(pair)

    async def fetch_history(self, pair: TradingPair) -> List[PricePoint]:
        """Fetch the sparkline candles for a Kraken pair."""
        return await self.client.get_history(pair, self.history_interval, self.history_points)
