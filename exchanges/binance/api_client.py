"""
Binance REST API Client

This module provides an async HTTP client for the Binance spot REST API.
It handles:
- HTTP requests with a bounded timeout
- Classification of failures into our FetchError kinds
- Rate limit bookkeeping (used request weight, Retry-After)
- Data normalization to our schemas

API Documentation:
    https://developers.binance.com/docs/binance-spot-api-docs/rest-api

Rate Limits:
    - Weight-based system (each endpoint has a weight)
    - 6000 weight per minute per IP; /ticker/24hr for one symbol costs 2
    - HTTP 429 means slow down, HTTP 418 means the IP is temporarily banned

    The client does not retry: the poll cadence is the retry, and a rate limited
    pair is served by the secondary exchange for that cycle.

Usage:
    async with BinanceAPIClient() as client:
        coin = await client.get_ticker(pair)
        history = await client.get_history(pair, interval="1h", limit=24)
"""

import asyncio
import json
import time
from typing import Any, Dict, List, Optional

import aiohttp

from core.coins import coin_color, coin_name
from core.errors import FetchError, MalformedError, NotFoundError, RateLimitedError, TransientError
from core.logging import get_logger, log_api_request, log_api_response
from core.schemas import CoinSnapshot, Exchange, PricePoint, TradingPair
from core.utils.numbers import parse_decimal, parse_price
from core.utils.time import to_utc_datetime


# Binance error code for an unknown trading pair
INVALID_SYMBOL_CODE = -1121

KLINE_INTERVALS = {
    1: "1m",
    5: "5m",
    15: "15m",
    30: "30m",
    60: "1h",
    240: "4h",
    1440: "1d",
}


class BinanceAPIClient:
    """
    Async HTTP client for the Binance spot REST API

    Attributes:
        base_url: Binance API base URL
        timeout: Per-request timeout in seconds
        session: aiohttp ClientSession for HTTP requests
        used_weight: Last reported X-MBX-USED-WEIGHT-1M header value

    Example:
        >>> async with BinanceAPIClient() as client:
        ...     coin = await client.get_ticker(pair)
        ...     print(f"{coin.symbol}: {coin.current_price}")

    Notes:
        - Uses context manager for automatic session cleanup
        - No API key needed, only public endpoints are used
    """

    name = "binance"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        """
        Initialize the Binance API client.

        Args:
            base_url: API base URL (defaults to settings.binance_base_url)
            timeout: Per-request timeout in seconds (defaults to settings.request_timeout)
        """
        from core.config import settings

        self.base_url = (base_url or settings.binance_base_url).rstrip("/")
        self.timeout = timeout or settings.request_timeout
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None
        self.used_weight: Optional[int] = None

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        """
        Enter async context - creates HTTP session.

        Returns:
            Self for use in async with statement
        """
        self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        self.logger.debug("BinanceAPIClient session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """
        Exit async context - closes HTTP session.
        """
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("BinanceAPIClient session closed")

    # ============================================
    # HTTP Request Handler
    # ============================================

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None, pair_id: Optional[str] = None) -> Any:
        """
        Make GET request to Binance API and classify failures.

        Args:
            path: API endpoint path (e.g., "/api/v3/ticker/24hr")
            params: Optional query parameters
            pair_id: Pair the request is for (error context only)

        Returns:
            Decoded JSON response

        Raises:
            RuntimeError: If the session was never opened (programming error)
            NotFoundError: HTTP 404, or 400 with code -1121 (invalid symbol)
            RateLimitedError: HTTP 429 or 418
            TransientError: Timeout, connection error, HTTP 5xx or any other 4xx
            MalformedError: Body is not valid JSON
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        url = f"{self.base_url}{path}"
        log_api_request(self.name, path, params)
        started = time.monotonic()

        try:
            async with self.session.get(
                url,
                params=params,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as resp:
                log_api_response(self.name, path, resp.status, time.monotonic() - started)
                self._record_weight(resp.headers)

                if resp.status == 200:
                    try:
                        return await resp.json(content_type=None)
                    except ValueError as e:
                        raise MalformedError(f"invalid JSON body on {path}: {e}", self.name, pair_id)

                if resp.status in (429, 418):
                    retry_after = self._retry_after(resp.headers)
                    self.logger.warning(
                        f"Rate limited (HTTP {resp.status}) on {path}"
                        + (f", retry after {retry_after:.0f}s" if retry_after else "")
                    )
                    raise RateLimitedError(f"HTTP {resp.status}", self.name, pair_id, retry_after=retry_after)

                if resp.status >= 500:
                    raise TransientError(f"HTTP {resp.status}", self.name, pair_id)

                text = await resp.text()
                raise self._client_error(resp.status, text, path, pair_id)

        except asyncio.TimeoutError:
            raise TransientError(f"timeout after {self.timeout}s on {path}", self.name, pair_id)
        except aiohttp.ClientError as e:
            raise TransientError(f"request failed on {path}: {e}", self.name, pair_id)

    def _client_error(self, status: int, text: str, path: str, pair_id: Optional[str]) -> FetchError:
        """
        Map a 4xx response to a FetchError with Binance's error message.

        Only an unknown pair is NotFound. Other rejections (403 WAF, 451
        restricted location) are treated as transient.
        """
        code, msg = None, text
        try:
            body = json.loads(text)
            code, msg = body.get("code"), body.get("msg", text)
        except (ValueError, AttributeError):
            pass

        if status == 404 or code == INVALID_SYMBOL_CODE:
            return NotFoundError(f"unknown pair ({msg})", self.name, pair_id)

        self.logger.error(f"HTTP {status} on {path}: {text}")
        return TransientError(f"request rejected with HTTP {status} ({msg})", self.name, pair_id)

    def _record_weight(self, headers) -> None:
        weight = headers.get("X-MBX-USED-WEIGHT-1M")
        if weight and weight.isdigit():
            self.used_weight = int(weight)
            self.logger.debug(f"Binance used weight (1m): {self.used_weight}")

    @staticmethod
    def _retry_after(headers) -> Optional[float]:
        value = headers.get("Retry-After")
        try:
            return float(value) if value is not None else None
        except ValueError:
            return None

    # ============================================
    # API Methods
    # ============================================

    async def get_ticker(self, pair: TradingPair) -> CoinSnapshot:
        """
        Fetch 24h ticker statistics for one pair.

        Args:
            pair: Binance trading pair (e.g., pair_id "BTCUSDT")

        Returns:
            CoinSnapshot with empty history

        Binance Endpoint:
            GET /api/v3/ticker/24hr?symbol=BTCUSDT

        Response Format:
            {
              "symbol": "BTCUSDT",
              "priceChange": "-94.99999800",
              "priceChangePercent": "-95.960",
              "lastPrice": "4.00000200",
              "openPrice": "99.00000000",
              ...
            }
        """
        data = await self._get("/api/v3/ticker/24hr", {"symbol": pair.pair_id}, pair_id=pair.pair_id)

        if not isinstance(data, dict):
            raise MalformedError(f"expected object, got {type(data).__name__}", self.name, pair.pair_id)

        price = parse_price(data.get("lastPrice"), "lastPrice", self.name, pair.pair_id)
        change = parse_decimal(data.get("priceChangePercent"), "priceChangePercent", self.name, pair.pair_id)

        coin = CoinSnapshot(
            id=pair.symbol.lower(),
            symbol=pair.symbol,
            name=coin_name(pair.symbol),
            current_price=float(price),
            change_24h=float(change),
            color=coin_color(pair.symbol),
            exchange=Exchange.BINANCE
        )

        self.logger.debug(f"Ticker {pair.pair_id}: {coin.current_price} ({coin.change_24h:+.2f}%)")
        return coin

    async def get_history(self, pair: TradingPair, interval: str = "1h", limit: int = 24) -> List[PricePoint]:
        """
        Fetch recent candle closes for one pair.

        Args:
            pair: Binance trading pair
            interval: Kline interval (e.g., "1h")
            limit: Number of candles (max 1000)

        Returns:
            List of PricePoint sorted oldest first

        Binance Endpoint:
            GET /api/v3/klines?symbol=BTCUSDT&interval=1h&limit=24

        Response Format:
            [
              [
                1499040000000,      // Open time
                "0.01634790",       // Open
                "0.80000000",       // High
                "0.01575800",       // Low
                "0.01577100",       // Close
                "148976.11427815",  // Volume
                1499644799999,      // Close time
                ...
              ]
            ]
        """
        if limit <= 0:
            return []

        params = {"symbol": pair.pair_id, "interval": interval, "limit": min(limit, 1000)}
        data = await self._get("/api/v3/klines", params, pair_id=pair.pair_id)

        if not isinstance(data, list):
            raise MalformedError(f"expected kline array, got {type(data).__name__}", self.name, pair.pair_id)

        history = []
        for row in data:
            if not isinstance(row, list) or len(row) < 5 or not isinstance(row[0], (int, float)):
                raise MalformedError(f"invalid kline row: {row!r}", self.name, pair.pair_id)
            close = parse_price(row[4], "close", self.name, pair.pair_id)
            try:
                opened_at = to_utc_datetime(row[0])
            except ValueError as e:
                raise MalformedError(f"invalid kline open time: {e}", self.name, pair.pair_id)
            history.append(PricePoint(time=opened_at, price=float(close)))

        history.sort(key=lambda point: point.time)
        return history[-limit:]

    async def ping(self) -> bool:
        """
        Test connectivity to the REST API.

        Binance Endpoint:
            GET /api/v3/ping
        """
        await self._get("/api/v3/ping")
        return True
