"""
Market Data Service

The boundary between the dashboard core and its consumers (REST endpoints, the
dashboard session). It bundles the three operations a UI needs:

    - get_initial_snapshot: zero-network placeholder for first render
    - poll_snapshot: one live aggregate cycle across both exchanges
    - analyze_market: AI sentiment for the displayed coins
"""

from typing import Iterable, List, Optional, Sequence

from core.aggregator import Aggregator
from core.errors import AnalysisError
from core.exchange_manager import ExchangeManager
from core.logging import get_logger
from core.placeholder import initial_snapshot
from core.schemas import CoinSnapshot, Currency, Exchange, MarketAnalysis
from core.symbols import SymbolResolver
from services.analysis import GeminiAnalyzer


class MarketDataService:
    """
    Facade over the Aggregator, the placeholder generator and the analyzer.

    Attributes:
        manager: ExchangeManager holding the exchange adapters
        aggregator: Aggregator running poll cycles
        analyzer: Market analysis collaborator
    """

    def __init__(
        self,
        manager: Optional[ExchangeManager] = None,
        resolver: Optional[SymbolResolver] = None,
        analyzer: Optional[GeminiAnalyzer] = None
    ):
        self.manager = manager or ExchangeManager()
        self.aggregator = Aggregator(self.manager, resolver)
        self.analyzer = analyzer or GeminiAnalyzer()
        self.logger = get_logger(__name__)

    def get_initial_snapshot(self, currency: Currency, symbols: Iterable[str]) -> List[CoinSnapshot]:
        """Placeholder entries for the watch-list (synchronous, no network)."""
        return initial_snapshot(currency, symbols)

    async def poll_snapshot(
        self,
        currency: Currency,
        symbols: Sequence[str],
        exchange: Exchange = Exchange.BINANCE
    ) -> List[CoinSnapshot]:
        """One live cycle; symbols that fail on both exchanges are omitted."""
        return await self.aggregator.aggregate(symbols, currency, exchange)

    async def analyze_market(self, coins: Sequence[CoinSnapshot], currency: Currency) -> MarketAnalysis:
        """
        AI sentiment analysis of the given coins.

        Placeholder entries (no live price) are not sent to the analyzer.

        Raises:
            AnalysisError: If there is nothing to analyze or the analyzer fails
        """
        live = [coin for coin in coins if coin.is_live]
        if not live:
            raise AnalysisError("No live coin data to analyze yet")
        return await self.analyzer.analyze(live, currency)
