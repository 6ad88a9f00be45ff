"""
Core Package

Contains the exchange-agnostic core logic including:
- ExchangeAdapter: Abstract base class defining the contract for all exchanges
- ExchangeManager: Registry that manages the exchange adapters
- SymbolResolver: Maps ticker symbols to exchange-specific trading pairs
- Aggregator / Poller: One poll cycle with exchange fallback, and its refresh cadence
- Schemas: Pydantic models for normalized data structures (CoinSnapshot, MarketSnapshot, etc.)

This layer ensures all exchanges follow the same interface, making the system modular and scalable.
"""
