"""
Aggregator — One Poll Cycle Across Both Exchanges

For a watch-list, a display currency and the selected (primary) exchange, the
Aggregator looks every symbol up concurrently and assembles one ordered list of
CoinSnapshot entries.

Per-symbol algorithm:
    1. Resolve the symbol on the primary exchange and fetch its ticker
    2. If the pair is unsupported, or the fetch fails for any reason
       (not found, rate limited, transient, malformed), resolve and fetch on
       the secondary exchange instead
    3. If both exchanges fail, the symbol is left out of the result
    4. History comes from the exchange that served the price; a history failure
       leaves the history empty but keeps the coin

Guarantees:
    - Lookups are independent: one slow or failing symbol never delays another
    - Output order is the watch-list order, whatever order fetches complete in
    - Per-symbol failures never raise; an empty list is a valid result
    - Contract violations (duplicate or lowercase symbols, wrong enum types)
      raise immediately, before any request is sent
"""

import asyncio
from typing import List, Optional, Sequence

from core.errors import FetchError
from core.exchange_interface import ExchangeAdapter
from core.exchange_manager import ExchangeManager
from core.logging import get_logger
from core.schemas import CoinSnapshot, Currency, Exchange, PricePoint, TradingPair
from core.symbols import SymbolResolver


class Aggregator:
    """
    Fan out per-symbol lookups with secondary-exchange fallback.

    Example:
        >>> aggregator = Aggregator(manager)
        >>> coins = await aggregator.aggregate(["BTC", "ZZZ", "ETH"], Currency.USD, Exchange.BINANCE)
        >>> [coin.symbol for coin in coins]
        ['BTC', 'ETH']
    """

    def __init__(self, manager: ExchangeManager, resolver: Optional[SymbolResolver] = None):
        self.manager = manager
        self.resolver = resolver or SymbolResolver()
        self.logger = get_logger(__name__)

    async def aggregate(
        self,
        symbols: Sequence[str],
        currency: Currency,
        primary: Exchange
    ) -> List[CoinSnapshot]:
        """
        Run one poll cycle.

        Args:
            symbols: Ordered, duplicate-free uppercase watch-list
            currency: Display currency
            primary: Selected exchange; the other one is the secondary

        Returns:
            List[CoinSnapshot]: Successful entries in watch-list order

        Raises:
            TypeError: If currency/primary are not enum values or symbols is a string
            ValueError: If symbols contains duplicates or non-uppercase entries
        """
        self._validate(symbols, currency, primary)
        if not symbols:
            return []

        secondary = primary.fallback
        results = await asyncio.gather(*(
            self._lookup(symbol, currency, primary, secondary) for symbol in symbols
        ))

        coins = [coin for coin in results if coin is not None]
        fallbacks = sum(1 for coin in coins if coin.exchange is not primary)
        self.logger.info(
            f"Aggregated {len(coins)}/{len(symbols)} coins "
            f"({primary.value}/{currency.value}, {fallbacks} via {secondary.value})"
        )
        return coins

    # ============================================
    # Per-Symbol Lookup
    # ============================================

    async def _lookup(
        self,
        symbol: str,
        currency: Currency,
        primary: Exchange,
        secondary: Exchange
    ) -> Optional[CoinSnapshot]:
        coin = await self._fetch_from(symbol, currency, primary)
        if coin is not None:
            return coin

        coin = await self._fetch_from(symbol, currency, secondary)
        if coin is not None:
            self.logger.info(f"{symbol} served by {secondary.label} (fallback from {primary.label})")
            return coin

        self.logger.warning(f"{symbol}/{currency.value} unavailable on both exchanges, dropped from snapshot")
        return None

    async def _fetch_from(self, symbol: str, currency: Currency, exchange: Exchange) -> Optional[CoinSnapshot]:
        """Resolve and fetch on one exchange; None means unsupported or failed."""
        pair = self.resolver.resolve(symbol, currency, exchange)
        if pair is None or not self.manager.has_adapter(exchange):
            self.logger.debug(f"{symbol}/{currency.value} unsupported on {exchange.label}")
            return None

        adapter = self.manager.get_adapter(exchange)
        try:
            coin = await adapter.fetch_one(pair)
        except FetchError as e:
            self.logger.warning(f"{symbol} unavailable on {adapter.name}: {e}")
            return None

        history = await self._fetch_history(adapter, pair)
        return coin.model_copy(update={"history": history, "exchange": exchange})

    async def _fetch_history(self, adapter: ExchangeAdapter, pair: TradingPair) -> List[PricePoint]:
        if not adapter.supports("history"):
            return []
        try:
            return await adapter.fetch_history(pair)
        except FetchError as e:
            self.logger.warning(f"History for {pair} unavailable, keeping price only: {e}")
            return []

    # ============================================
    # Contract Checks
    # ============================================

    @staticmethod
    def _validate(symbols: Sequence[str], currency: Currency, primary: Exchange) -> None:
        if not isinstance(currency, Currency):
            raise TypeError(f"currency must be a Currency, got {currency!r}")
        if not isinstance(primary, Exchange):
            raise TypeError(f"primary must be an Exchange, got {primary!r}")
        if isinstance(symbols, str):
            raise TypeError("symbols must be a sequence of tickers, not a string")

        seen = set()
        for symbol in symbols:
            if not isinstance(symbol, str) or not symbol or symbol != symbol.strip().upper():
                raise ValueError(f"Symbol {symbol!r} must be a non-empty uppercase ticker")
            if symbol in seen:
                raise ValueError(f"Duplicate symbol in watch-list: {symbol}")
            seen.add(symbol)
