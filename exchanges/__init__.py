"""
Exchange Adapters Package

This package contains individual exchange adapter modules.
Each exchange (Binance, Kraken) has its own subfolder with:
- api_client.py: REST API logic and normalization to our schemas
- __init__.py: Adapter class implementing ExchangeAdapter

The modular design allows adding new exchanges without modifying the Aggregator.
"""
