"""
Poller — Refresh Cadence and Stale-Cycle Protection

The Poller owns the repeating poll timer for the active configuration
(currency, exchange, watch-list) and publishes each settled cycle.

State machine:
    IDLE ──configure()──▶ POLLING ──configure(new)──▶ POLLING
                              │
                           stop()
                              ▼
                           STOPPED

While POLLING:
    - One cycle runs immediately, then the timer ticks at the exchange's interval
    - A tick is skipped while the previous cycle of the same configuration is
      still in flight, so a slow network never piles up concurrent cycles
    - Each cycle is tagged with the generation it was started in. configure()
      bumps the generation and cancels the timer; cycles of the old generation
      keep running (their HTTP requests are not aborted) but their results are
      discarded when they settle

All state is touched only from the event loop, so no lock is needed.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Dict, Mapping, Optional, Set

from core.aggregator import Aggregator
from core.logging import get_logger
from core.schemas import Exchange, MarketSnapshot, PollConfig
from core.utils.time import current_utc_datetime


SnapshotCallback = Callable[[MarketSnapshot], Awaitable[None]]


class PollerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    STOPPED = "stopped"


class Poller:
    """
    Drive the Aggregator on a timer for the active configuration.

    Attributes:
        state: Current PollerState
        config: Active PollConfig (None while IDLE)
        latest: Last snapshot applied for the active configuration

    Example:
        >>> poller = Poller(aggregator, on_snapshot=publish)
        >>> poller.configure(PollConfig(currency=Currency.USD, exchange=Exchange.BINANCE, symbols=("BTC",)))
        >>> ...
        >>> await poller.stop()
    """

    def __init__(
        self,
        aggregator: Aggregator,
        on_snapshot: Optional[SnapshotCallback] = None,
        intervals: Optional[Mapping[Exchange, float]] = None
    ):
        """
        Args:
            aggregator: Aggregator that runs one cycle
            on_snapshot: Async callback invoked with every applied snapshot
            intervals: Seconds between cycles per selected exchange
                       (defaults to the configured poll intervals)
        """
        if intervals is None:
            from core.config import settings
            intervals = {exchange: settings.poll_interval_for(exchange) for exchange in Exchange}

        self.aggregator = aggregator
        self.intervals: Dict[Exchange, float] = dict(intervals)
        self.state = PollerState.IDLE
        self.config: Optional[PollConfig] = None
        self.latest: Optional[MarketSnapshot] = None

        self._on_snapshot = on_snapshot
        self._generation = 0
        self._timer: Optional[asyncio.Task] = None
        self._in_flight: Optional[asyncio.Task] = None
        self._cycles: Set[asyncio.Task] = set()
        self.logger = get_logger(__name__)

    # ============================================
    # State Transitions
    # ============================================

    def configure(self, config: PollConfig) -> None:
        """
        Activate polling for a configuration, replacing the previous one.

        Re-configuring with the active configuration is a no-op. Must be called
        from within the running event loop.

        Raises:
            RuntimeError: If the poller has been stopped
        """
        if self.state is PollerState.STOPPED:
            raise RuntimeError("Poller has been stopped")
        if self.state is PollerState.POLLING and config == self.config:
            return

        self._cancel_timer()
        self._generation += 1
        self._in_flight = None
        self.config = config
        self.latest = None
        self.state = PollerState.POLLING

        interval = self.interval_for(config.exchange)
        self.logger.info(f"Polling {config.describe()} every {interval}s")
        self._timer = asyncio.create_task(
            self._run(config, self._generation, interval),
            name=f"poller-{self._generation}"
        )

    async def stop(self) -> None:
        """
        Stop polling and release the timer.

        In-flight cycles are cancelled as well; nothing is published after stop()
        returns.
        """
        if self.state is PollerState.STOPPED:
            return

        self.logger.info("Stopping poller...")
        self.state = PollerState.STOPPED
        self._generation += 1

        timer = self._cancel_timer()
        tasks = list(self._cycles)
        for task in tasks:
            task.cancel()
        if timer is not None:
            tasks.append(timer)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._in_flight = None
        self.logger.info("Poller stopped")

    def interval_for(self, exchange: Exchange) -> float:
        return self.intervals[exchange]

    @property
    def is_cycle_in_flight(self) -> bool:
        """True while a cycle of the active configuration has not settled."""
        return self._in_flight is not None and not self._in_flight.done()

    async def wait_settled(self) -> None:
        """Wait until every cycle started so far (stale ones included) has settled."""
        while self._cycles:
            await asyncio.gather(*list(self._cycles), return_exceptions=True)

    # ============================================
    # Timer and Cycles
    # ============================================

    def _cancel_timer(self) -> Optional[asyncio.Task]:
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done():
            timer.cancel()
        return timer

    async def _run(self, config: PollConfig, generation: int, interval: float) -> None:
        while True:
            self._tick(config, generation)
            await asyncio.sleep(interval)

    def _tick(self, config: PollConfig, generation: int) -> None:
        if self.is_cycle_in_flight:
            self.logger.debug(f"Skipping tick for {config.describe()}: previous cycle still in flight")
            return

        task = asyncio.create_task(self._cycle(config, generation), name=f"poll-cycle-{generation}")
        self._in_flight = task
        self._cycles.add(task)
        task.add_done_callback(self._cycles.discard)

    async def _cycle(self, config: PollConfig, generation: int) -> None:
        try:
            coins = await self.aggregator.aggregate(list(config.symbols), config.currency, config.exchange)
        except Exception:
            self.logger.exception(f"Poll cycle failed for {config.describe()}")
            return

        if generation != self._generation:
            self.logger.debug(f"Discarding stale cycle for {config.describe()}")
            return

        snapshot = MarketSnapshot(
            currency=config.currency,
            exchange=config.exchange,
            symbols=list(config.symbols),
            coins=coins,
            generated_at=current_utc_datetime()
        )
        self.latest = snapshot

        if self._on_snapshot is not None:
            try:
                await self._on_snapshot(snapshot)
            except Exception as e:
                self.logger.error(f"Snapshot subscriber failed: {e}")
