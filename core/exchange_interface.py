"""
Exchange Adapter Interface — Abstract Contract for All Exchanges

This module defines the abstract base class every exchange adapter implements.
An adapter translates one exchange's REST wire format into our CoinSnapshot
schema for a single trading pair.

Design Philosophy:
    "Program to an interface, not an implementation"

    The Aggregator works with ExchangeAdapter, never with a concrete exchange.
    Binance and Kraken differ in endpoints, field names and error reporting, but
    both end up raising the same FetchError kinds and returning the same models.

Example:
    class BinanceAdapter(ExchangeAdapter):
        name = "binance"
        exchange = Exchange.BINANCE

        async def fetch_one(self, pair):
            # Binance-specific implementation
            ...

    adapter = manager.get_adapter(Exchange.BINANCE)
    coin = await adapter.fetch_one(pair)

Capabilities System:
    Each adapter declares which features it supports via the `capabilities` dict.
    An exchange without a history endpoint declares "history": False and the
    Aggregator leaves the coin's history empty instead of calling it.
"""

from abc import ABC, abstractmethod
from typing import Dict, List

from core.schemas import CoinSnapshot, Exchange, PricePoint, TradingPair


class ExchangeAdapter(ABC):
    """
    Abstract Base Class for Exchange Adapters

    Class Attributes:
        name: Unique identifier for the exchange (lowercase, e.g., "binance", "kraken")
        exchange: The Exchange enum value this adapter serves
        capabilities: Dictionary indicating which features this exchange supports

    Abstract Methods (MUST be implemented by all adapters):
        - fetch_one: Current price and 24h change for one pair
        - fetch_history: Short look-back price history for one pair

    Optional Methods (can be overridden):
        - initialize: Setup HTTP sessions
        - shutdown: Cleanup sessions
        - health_check: Verify exchange API is accessible

    Adapters must not keep per-request state: the Aggregator calls them
    concurrently for every symbol of a poll cycle.
    """

    # ============================================
    # Class Attributes (must be set by subclasses)
    # ============================================

    name: str
    """Unique exchange identifier (lowercase). Example: "binance", "kraken" """

    exchange: Exchange
    """Exchange enum value served by this adapter"""

    capabilities: Dict[str, bool] = {
        "ticker": False,
        "history": False
    }
    """Dictionary indicating which features this exchange supports"""

    # ============================================
    # REST Methods
    # ============================================

    @abstractmethod
    async def fetch_one(self, pair: TradingPair) -> CoinSnapshot:
        """
        Fetch the current market state of one trading pair.

        Args:
            pair: Pair resolved by the SymbolResolver for this exchange

        Returns:
            CoinSnapshot: Normalized snapshot with an empty history

        Raises:
            NotFoundError: Pair delisted or unknown to the exchange
            RateLimitedError: Exchange rate limit hit
            TransientError: Timeout, connection failure or 5xx
            MalformedError: Missing or non-numeric price/change fields

        Notes:
            - Prices and percentages are parsed as Decimal, never defaulted to zero
            - current_price is always positive and finite on success
        """
        ...

    @abstractmethod
    async def fetch_history(self, pair: TradingPair) -> List[PricePoint]:
        """
        Fetch the short look-back price history of one trading pair.

        Args:
            pair: Pair resolved by the SymbolResolver for this exchange

        Returns:
            List[PricePoint]: Chronological samples (oldest first), bounded by
                             settings.history_points

        Raises:
            FetchError: Same kinds as fetch_one
        """
        ...

    # ============================================
    # Optional Lifecycle Methods
    # ============================================

    async def initialize(self) -> None:
        """
        Initialize the adapter (e.g., open the aiohttp ClientSession).

        Notes:
            - This is optional; default implementation does nothing
            - Called automatically by ExchangeManager
            - Should be idempotent (safe to call multiple times)
        """
        pass

    async def shutdown(self) -> None:
        """
        Shutdown the adapter and cleanup resources.

        Notes:
            - This is optional; default implementation does nothing
            - Should handle errors gracefully (don't raise exceptions)
        """
        pass

    async def health_check(self) -> bool:
        """
        Check if the exchange API is accessible and healthy.

        Returns:
            bool: True if exchange is accessible, False otherwise
        """
        return True

    # ============================================
    # Helper Methods
    # ============================================

    def supports(self, feature: str) -> bool:
        """
        Check if this exchange supports a specific feature.

        Example:
            >>> if adapter.supports("history"):
            ...     history = await adapter.fetch_history(pair)
        """
        return self.capabilities.get(feature, False)

    def __repr__(self) -> str:
        """String representation of the adapter."""
        return f"<{self.__class__.__name__}(name='{self.name}')>"
