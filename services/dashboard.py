"""
Dashboard Session

Holds the user-owned dashboard state (watch-list, display currency, selected
exchange) and keeps a Poller bound to it. Every state change is an explicit
transition that re-arms the Poller for the new configuration; the Poller
discards results of cycles started under the old one.

Published events (topic "snapshots" on the event bus):
    {"type": "snapshot", "data": <MarketSnapshot JSON, camelCase coin fields>}

A placeholder snapshot is published whenever the configuration changes, so
subscribers can render the new watch-list before the first live cycle settles.
"""

from typing import Iterable, Iterator, Mapping, Optional, Tuple

from core.errors import WatchListError
from core.logging import get_logger
from core.poller import Poller, PollerState
from core.schemas import Currency, Exchange, MarketAnalysis, MarketSnapshot, PollConfig
from core.symbols import SYMBOL_PATTERN
from core.utils.time import current_utc_datetime
from services.event_bus import EventBus, bus as default_bus
from services.market_data import MarketDataService


SNAPSHOT_TOPIC = "snapshots"


class WatchList:
    """
    Ordered set of unique uppercase ticker symbols.

    Example:
        >>> watchlist = WatchList(["BTC", "ETH"])
        >>> watchlist.add(" sol ")
        'SOL'
        >>> watchlist.symbols
        ('BTC', 'ETH', 'SOL')
    """

    def __init__(self, symbols: Optional[Iterable[str]] = None):
        if symbols is None:
            from core.config import settings
            symbols = settings.symbols_list

        self._symbols = []
        for raw in symbols:
            symbol = self._normalize(raw)
            if symbol and symbol not in self._symbols:
                self._symbols.append(symbol)
        if not self._symbols:
            raise WatchListError("Watch-list must contain at least one symbol")

    @staticmethod
    def _normalize(symbol: str) -> str:
        return symbol.strip().upper()

    @property
    def symbols(self) -> Tuple[str, ...]:
        return tuple(self._symbols)

    def add(self, symbol: str) -> str:
        """
        Append a symbol to the end of the watch-list.

        Returns:
            str: The normalized symbol that was added

        Raises:
            WatchListError: If the symbol is empty, malformed or already present
        """
        symbol = self._normalize(symbol)
        if not symbol:
            raise WatchListError("Symbol must not be empty")
        if not SYMBOL_PATTERN.match(symbol):
            raise WatchListError(f"Invalid symbol '{symbol}': use 1-15 letters or digits")
        if symbol in self._symbols:
            raise WatchListError(f"{symbol} is already in the watch-list")
        self._symbols.append(symbol)
        return symbol

    def remove(self, symbol: str) -> str:
        """
        Remove a symbol from the watch-list.

        Raises:
            WatchListError: If the symbol is not present or is the last one
        """
        symbol = self._normalize(symbol)
        if symbol not in self._symbols:
            raise WatchListError(f"{symbol} is not in the watch-list")
        if len(self._symbols) == 1:
            raise WatchListError("Cannot remove the last symbol from the watch-list")
        self._symbols.remove(symbol)
        return symbol

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._symbols))

    def __len__(self) -> int:
        return len(self._symbols)

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and self._normalize(symbol) in self._symbols


class DashboardSession:
    """
    Dashboard state plus the Poller that keeps it live.

    Example:
        >>> session = DashboardSession(MarketDataService())
        >>> await session.start()
        >>> await session.add_symbol("SOL")
        >>> await session.update_settings(currency=Currency.EUR)
        >>> await session.stop()
    """

    def __init__(
        self,
        service: MarketDataService,
        symbols: Optional[Iterable[str]] = None,
        currency: Optional[Currency] = None,
        exchange: Optional[Exchange] = None,
        event_bus: Optional[EventBus] = None,
        intervals: Optional[Mapping[Exchange, float]] = None
    ):
        from core.config import settings

        self.service = service
        self.watchlist = WatchList(symbols)
        self.currency = currency or settings.default_currency
        self.exchange = exchange or settings.default_exchange
        self.analysis: Optional[MarketAnalysis] = None
        self._settings_generation = 0
        self.bus = event_bus or default_bus
        self.poller = Poller(service.aggregator, on_snapshot=self._publish, intervals=intervals)
        self.logger = get_logger(__name__)

    # ============================================
    # State
    # ============================================

    @property
    def config(self) -> PollConfig:
        return PollConfig(currency=self.currency, exchange=self.exchange, symbols=self.watchlist.symbols)

    @property
    def snapshot(self) -> MarketSnapshot:
        """Latest live snapshot for the active configuration, else its placeholder."""
        latest = self.poller.latest
        if latest is not None and self.poller.config == self.config:
            return latest
        return self.placeholder()

    def placeholder(self) -> MarketSnapshot:
        return MarketSnapshot(
            currency=self.currency,
            exchange=self.exchange,
            symbols=list(self.watchlist.symbols),
            coins=self.service.get_initial_snapshot(self.currency, self.watchlist.symbols),
            generated_at=current_utc_datetime(),
            is_placeholder=True
        )

    @property
    def is_running(self) -> bool:
        return self.poller.state is PollerState.POLLING

    # ============================================
    # Lifecycle
    # ============================================

    async def start(self) -> None:
        """Start polling the current configuration."""
        if self.is_running:
            return
        self.logger.info(f"Starting dashboard session: {self.config.describe()}")
        self.poller.configure(self.config)
        await self._publish(self.placeholder())

    async def stop(self) -> None:
        await self.poller.stop()
        self.logger.info("Dashboard session stopped")

    # ============================================
    # Transitions
    # ============================================

    async def add_symbol(self, symbol: str) -> Tuple[str, ...]:
        added = self.watchlist.add(symbol)
        self.logger.info(f"Added {added} to watch-list")
        await self._rearm()
        return self.watchlist.symbols

    async def remove_symbol(self, symbol: str) -> Tuple[str, ...]:
        removed = self.watchlist.remove(symbol)
        self.logger.info(f"Removed {removed} from watch-list")
        await self._rearm()
        return self.watchlist.symbols

    async def update_settings(
        self,
        currency: Optional[Currency] = None,
        exchange: Optional[Exchange] = None
    ) -> PollConfig:
        """
        Change display currency and/or selected exchange.

        Any actual change clears the cached market analysis, which was computed
        for the previous prices.
        """
        changed = False
        if currency is not None and currency is not self.currency:
            self.currency = currency
            changed = True
        if exchange is not None and exchange is not self.exchange:
            self.exchange = exchange
            changed = True

        if changed:
            self.analysis = None
            self._settings_generation += 1
            self.logger.info(f"Dashboard settings changed: {self.currency.value}/{self.exchange.value}")
            await self._rearm()
        return self.config

    async def analyze(self) -> MarketAnalysis:
        """
        Analyze the coins currently displayed and cache the result.

        A result that arrives after the currency or exchange changed is
        returned to the caller but not cached.

        Raises:
            AnalysisError: If there are no live coins yet or the analyzer fails
        """
        snapshot = self.snapshot
        generation = self._settings_generation
        analysis = await self.service.analyze_market(snapshot.coins, snapshot.currency)

        if generation != self._settings_generation:
            self.logger.info(
                f"Discarding {snapshot.currency.value}/{snapshot.exchange.value} analysis, settings changed"
            )
            return analysis

        self.analysis = analysis
        return analysis

    # ============================================
    # Internal
    # ============================================

    async def _rearm(self) -> None:
        if not self.is_running:
            return
        self.poller.configure(self.config)
        await self._publish(self.placeholder())

    async def _publish(self, snapshot: MarketSnapshot) -> None:
        await self.bus.publish(SNAPSHOT_TOPIC, {
            "type": "snapshot",
            "data": snapshot.model_dump(mode="json", by_alias=True)
        })
