"""
Exchange Manager — Central Registry for Exchange Adapters

This module provides a centralized manager for all exchange adapters.
The ExchangeManager acts as a registry and factory for adapter instances.

Design Benefits:
    - Single source of truth for available exchanges
    - Centralized lifecycle management (initialize/shutdown)
    - Type-safe access to adapters by Exchange enum
    - Tests can inject fake adapters instead of the real ones

Example Usage:
    manager = ExchangeManager()
    await manager.initialize_all()

    primary = manager.get_adapter(Exchange.BINANCE)
    secondary = manager.get_adapter(Exchange.BINANCE.fallback)  # Kraken

    await manager.shutdown_all()
"""

from typing import Dict, List, Mapping, Optional

from core.exchange_interface import ExchangeAdapter
from core.logging import logger
from core.schemas import Exchange


class ExchangeManager:
    """
    Central Manager for Exchange Adapters

    Attributes:
        adapters: Dictionary mapping Exchange values to adapter instances
                  Example: {Exchange.BINANCE: BinanceAdapter(), Exchange.KRAKEN: KrakenAdapter()}

    Example:
        >>> manager = ExchangeManager()
        >>> await manager.initialize_all()
        >>> kraken = manager.get_adapter("kraken")
        >>> print(manager.list_exchanges())
        ['binance', 'kraken']
    """

    def __init__(self, adapters: Optional[Mapping[Exchange, ExchangeAdapter]] = None):
        """
        Initialize the Exchange Manager and register all adapters.

        Args:
            adapters: Optional pre-built adapters (used by tests). When omitted,
                      the Binance and Kraken adapters are created.

        Note:
            Adapters are created but not initialized here.
            Call initialize_all() to open their HTTP sessions.
        """
        if adapters is None:
            # Import here to avoid circular imports
            # Each exchange module imports from core, so we can't import at module level
            from exchanges.binance import BinanceAdapter
            from exchanges.kraken import KrakenAdapter

            adapters = {
                Exchange.BINANCE: BinanceAdapter(),
                Exchange.KRAKEN: KrakenAdapter(),
            }

        self.adapters: Dict[Exchange, ExchangeAdapter] = dict(adapters)

        logger.info(
            f"ExchangeManager initialized with {len(self.adapters)} exchange(s): "
            f"{', '.join(self.list_exchanges())}"
        )

    # ============================================
    # Adapter Retrieval Methods
    # ============================================

    def get_adapter(self, exchange) -> ExchangeAdapter:
        """
        Get an adapter by Exchange value or name.

        Args:
            exchange: Exchange enum value or case-insensitive name ("binance", "KRAKEN")

        Returns:
            ExchangeAdapter: The requested adapter

        Raises:
            ValueError: If the exchange is not supported
        """
        key = self._coerce(exchange)

        if key is None or key not in self.adapters:
            available = ", ".join(self.list_exchanges())
            logger.error(f"Exchange '{exchange}' not found. Available: {available}")
            raise ValueError(
                f"Exchange '{exchange}' is not supported. "
                f"Available exchanges: {available}"
            )

        return self.adapters[key]

    def has_adapter(self, exchange) -> bool:
        """Check if an exchange is registered."""
        key = self._coerce(exchange)
        return key is not None and key in self.adapters

    def list_exchanges(self) -> List[str]:
        """Get a list of all registered exchange names."""
        return [adapter.name for adapter in self.adapters.values()]

    @staticmethod
    def _coerce(exchange) -> Optional[Exchange]:
        if isinstance(exchange, Exchange):
            return exchange
        try:
            return Exchange(str(exchange).upper())
        except ValueError:
            return None

    # ============================================
    # Lifecycle Management
    # ============================================

    async def initialize_all(self) -> None:
        """
        Initialize all registered adapters.

        A failing adapter is logged and skipped; the others still initialize.
        """
        logger.info("Initializing all exchanges...")

        for exchange, adapter in self.adapters.items():
            try:
                logger.debug(f"Initializing {adapter.name}...")
                await adapter.initialize()
                logger.info(f"✓ {exchange.label} initialized successfully")
            except Exception as e:
                logger.error(f"✗ Failed to initialize {adapter.name}: {e}")

        logger.info("All exchanges initialized")

    async def shutdown_all(self) -> None:
        """
        Shutdown all adapters gracefully.

        This should be called when the application is shutting down.
        """
        logger.info("Shutting down all exchanges...")

        for exchange, adapter in self.adapters.items():
            try:
                logger.debug(f"Shutting down {adapter.name}...")
                await adapter.shutdown()
                logger.info(f"✓ {exchange.label} shut down successfully")
            except Exception as e:
                logger.error(f"✗ Error shutting down {adapter.name}: {e}")

        logger.info("All exchanges shut down")

    # ============================================
    # Health Check Methods
    # ============================================

    async def health_check_all(self) -> Dict[str, bool]:
        """
        Check health status of all exchanges.

        Returns:
            Dict[str, bool]: Exchange names mapped to health status

        Example:
            >>> health = await manager.health_check_all()
            {'binance': True, 'kraken': True}
        """
        logger.debug("Running health check on all exchanges...")

        health_status = {}
        for adapter in self.adapters.values():
            try:
                is_healthy = await adapter.health_check()
                health_status[adapter.name] = is_healthy
                logger.debug(f"{adapter.name}: {'healthy' if is_healthy else 'unhealthy'}")
            except Exception as e:
                logger.error(f"Health check failed for {adapter.name}: {e}")
                health_status[adapter.name] = False

        return health_status

    # ============================================
    # Capability Queries
    # ============================================

    def get_exchange_capabilities(self, exchange) -> Dict[str, bool]:
        """
        Get the capabilities of a specific exchange.

        Raises:
            ValueError: If exchange is not found
        """
        return self.get_adapter(exchange).capabilities.copy()

    # ============================================
    # Utility Methods
    # ============================================

    def __repr__(self) -> str:
        """String representation of the manager."""
        return f"<ExchangeManager(exchanges={self.list_exchanges()})>"

    def __len__(self) -> int:
        """Number of registered exchanges."""
        return len(self.adapters)
