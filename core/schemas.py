"""
Normalized Data Schemas

This module defines the Pydantic models for all market data the dashboard works with.
These schemas provide a unified, exchange-agnostic data format.

Key Principle:
    Regardless of which exchange the data comes from (Binance or Kraken), it gets
    normalized into these standardized schemas. The UI and API consumers never see
    exchange-specific field names or pair identifiers.

Models:
    - Currency / Exchange: Enumerated configuration values owned by the UI
    - PricePoint: One (time, price) sample of a coin's short-term history
    - CoinSnapshot: One symbol's current market state
    - TradingPair: Exchange-specific pair identifier resolved for a symbol
    - PollConfig: The (currency, exchange, watch-list) tuple a poll cycle is bound to
    - MarketSnapshot: The full set of coins produced by one poll cycle
    - MarketAnalysis: AI-generated market sentiment summary

Field names are snake_case in Python; JSON output uses the camelCase aliases
the dashboard frontend expects (currentPrice, change24h, keyLevels).
"""

import math
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================
# Configuration Enums
# ============================================

class Currency(str, Enum):
    """Display currency for all prices in a snapshot."""

    USD = "USD"
    EUR = "EUR"


class Exchange(str, Enum):
    """
    Exchange a poll cycle reads from.

    The exchange the user selects is the primary one for a cycle. The other
    one is used as the secondary exchange when a symbol cannot be served by
    the primary.
    """

    BINANCE = "BINANCE"
    KRAKEN = "KRAKEN"

    @property
    def fallback(self) -> "Exchange":
        """The secondary exchange used when this one cannot serve a symbol."""
        return Exchange.KRAKEN if self is Exchange.BINANCE else Exchange.BINANCE

    @property
    def label(self) -> str:
        return self.value.capitalize()


# ============================================
# Coin Data
# ============================================

class PricePoint(BaseModel):
    """
    One sample of a coin's recent price history (sparkline point).

    Attributes:
        time: Sample time in UTC (candle open time)
        price: Price in the display currency (candle close)
    """

    model_config = ConfigDict(frozen=True)

    time: datetime = Field(..., description="Sample time in UTC")
    price: float = Field(..., gt=0, allow_inf_nan=False, description="Price in the display currency")


class CoinSnapshot(BaseModel):
    """
    Current market state of one symbol.

    A CoinSnapshot is rebuilt wholesale on every poll cycle and never mutated
    afterwards (the model is frozen).

    Attributes:
        id: Stable UI key (lowercase symbol), unique within a snapshot
        symbol: Canonical uppercase ticker, the join key with the watch-list
        name: Display name (falls back to the symbol when unknown)
        current_price: Price in the display currency (0 only for placeholders)
        change_24h: Signed 24h percentage change
        history: Chronological price samples for the sparkline (may be empty)
        color: Presentation color derived deterministically from the symbol
        exchange: Exchange that served the data (None for placeholders)

    Example:
        >>> coin = CoinSnapshot(
        ...     id="btc",
        ...     symbol="BTC",
        ...     name="Bitcoin",
        ...     current_price=64250.5,
        ...     change_24h=-1.25,
        ...     color="#F7931A",
        ...     exchange=Exchange.BINANCE,
        ... )
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "btc",
                "symbol": "BTC",
                "name": "Bitcoin",
                "currentPrice": 64250.5,
                "change24h": -1.25,
                "history": [{"time": "2024-01-01T12:00:00Z", "price": 64100.0}],
                "color": "#F7931A",
                "exchange": "BINANCE"
            }
        }
    )

    id: str = Field(..., min_length=1, description="Stable lowercase identifier")
    symbol: str = Field(..., min_length=1, description="Canonical uppercase ticker")
    name: str = Field(..., min_length=1, description="Display name")
    current_price: float = Field(
        ...,
        ge=0,
        allow_inf_nan=False,
        alias="currentPrice",
        description="Price in the display currency"
    )
    change_24h: float = Field(
        default=0.0,
        allow_inf_nan=False,
        alias="change24h",
        description="24h change in percent"
    )
    history: List[PricePoint] = Field(default_factory=list, description="Chronological sparkline samples")
    color: str = Field(..., pattern=r"^#[0-9A-Fa-f]{6}$", description="Hex color derived from the symbol")
    exchange: Optional[Exchange] = Field(default=None, description="Exchange that served this entry")

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        """Ensure symbol is uppercase"""
        return v.upper()

    @field_validator('id')
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Ensure id is lowercase"""
        return v.lower()

    @property
    def is_live(self) -> bool:
        """True for entries fetched from an exchange (not placeholders)."""
        return self.exchange is not None and self.current_price > 0 and math.isfinite(self.current_price)


class TradingPair(BaseModel):
    """
    Exchange-specific trading pair resolved for a symbol and currency.

    Example:
        >>> TradingPair(exchange=Exchange.KRAKEN, symbol="BTC", currency=Currency.EUR, pair_id="XBTEUR")
    """

    model_config = ConfigDict(frozen=True)

    exchange: Exchange
    symbol: str = Field(..., description="Canonical uppercase ticker")
    currency: Currency
    pair_id: str = Field(..., min_length=2, description="Identifier the exchange API expects")

    def __str__(self) -> str:
        return f"{self.exchange.value}:{self.pair_id}"


# ============================================
# Poll Cycle Models
# ============================================

class PollConfig(BaseModel):
    """
    The configuration a poll cycle is bound to.

    Two configs are equal when currency, exchange and watch-list (including
    its order) are equal.
    """

    model_config = ConfigDict(frozen=True)

    currency: Currency
    exchange: Exchange
    symbols: Tuple[str, ...]

    def describe(self) -> str:
        return f"{self.exchange.value}/{self.currency.value} [{', '.join(self.symbols)}]"


class MarketSnapshot(BaseModel):
    """
    The full result of one poll cycle, as published to the UI.

    Attributes:
        currency: Display currency of every price in `coins`
        exchange: Primary exchange selected for the cycle
        symbols: The requested watch-list, in order
        coins: Successful entries, in watch-list order
        generated_at: When the cycle settled (UTC)
        is_placeholder: True for the zero-network initial snapshot
    """

    model_config = ConfigDict(frozen=True)

    currency: Currency
    exchange: Exchange
    symbols: List[str]
    coins: List[CoinSnapshot]
    generated_at: datetime
    is_placeholder: bool = False


# ============================================
# Market Analysis
# ============================================

class MarketAnalysis(BaseModel):
    """
    AI-generated market sentiment for the displayed coins.

    Attributes:
        sentiment: Overall market mood
        summary: Short executive summary
        key_levels: Support/resistance levels worth watching
    """

    model_config = ConfigDict(populate_by_name=True)

    sentiment: Literal["bullish", "bearish", "neutral"]
    summary: str
    key_levels: str = Field(..., alias="keyLevels")

    @field_validator('sentiment', mode='before')
    @classmethod
    def normalize_sentiment(cls, v):
        """Accept any casing from the model output"""
        return v.strip().lower() if isinstance(v, str) else v
