"""
Kraken REST API Client

This module provides an async HTTP client for the Kraken spot REST API.
It handles:
- HTTP requests with a bounded timeout
- Kraken's in-body error reporting ({"error": [...], "result": {...}})
- Classification of failures into our FetchError kinds
- Data normalization to our schemas

API Documentation:
    https://docs.kraken.com/api/docs/rest-api/get-ticker-information

Rate Limits:
    - Public endpoints are limited per IP; every pair costs one request here
    - Rate limit hits come back as HTTP 200 with "EAPI:Rate limit exceeded"
      or "EGeneral:Too many requests" in the error array

Response Quirks:
    - Result keys are Kraken's internal pair names, which differ from the
      requested pair ("XBTUSD" comes back as "XXBTZUSD"), so the single
      entry of the result object is used regardless of its key
    - The ticker has no 24h percentage field; it is derived from the last
      trade price (c[0]) and today's opening price (o)

Usage:
    async with KrakenAPIClient() as client:
        coin = await client.get_ticker(pair)
        history = await client.get_history(pair, interval=60, limit=24)
"""

import asyncio
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

import aiohttp

from core.coins import coin_color, coin_name
from core.errors import FetchError, MalformedError, NotFoundError, RateLimitedError, TransientError
from core.logging import get_logger, log_api_request, log_api_response
from core.schemas import CoinSnapshot, Exchange, PricePoint, TradingPair
from core.utils.numbers import parse_price
from core.utils.time import to_utc_datetime


NOT_FOUND_ERRORS = ("EQuery:Unknown asset pair",)
RATE_LIMIT_ERRORS = ("EAPI:Rate limit exceeded", "EGeneral:Too many requests")
TRANSIENT_ERROR_PREFIXES = ("EService:", "EGeneral:Temporary lockout")


class KrakenAPIClient:
    """
    Async HTTP client for the Kraken spot REST API

    Attributes:
        base_url: Kraken API base URL
        timeout: Per-request timeout in seconds
        session: aiohttp ClientSession for HTTP requests

    Example:
        >>> async with KrakenAPIClient() as client:
        ...     coin = await client.get_ticker(pair)
    """

    name = "kraken"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        """
        Initialize the Kraken API client.

        Args:
            base_url: API base URL (defaults to settings.kraken_base_url)
            timeout: Per-request timeout in seconds (defaults to settings.request_timeout)
        """
        from core.config import settings

        self.base_url = (base_url or settings.kraken_base_url).rstrip("/")
        self.timeout = timeout or settings.request_timeout
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        self.logger.debug("KrakenAPIClient session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("KrakenAPIClient session closed")

    # ============================================
    # HTTP Request Handler
    # ============================================

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None, pair_id: Optional[str] = None) -> Any:
        """
        Make GET request to Kraken API and return the "result" member.

        Args:
            path: API endpoint path (e.g., "/0/public/Ticker")
            params: Optional query parameters
            pair_id: Pair the request is for (error context only)

        Returns:
            The "result" member of the response envelope

        Raises:
            RuntimeError: If the session was never opened (programming error)
            NotFoundError: Unknown asset pair
            RateLimitedError: HTTP 429 or a Kraken rate limit error
            TransientError: Timeout, connection error, HTTP 5xx or EService errors
            MalformedError: Body is not a valid Kraken envelope
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

                if resp.status == 429:
                    self.logger.warning(f"Rate limited (HTTP 429) on {path}")
                    raise RateLimitedError("HTTP 429", self.name, pair_id)
                if resp.status >= 500:
                    raise TransientError(f"HTTP {resp.status}", self.name, pair_id)
                if resp.status == 404:
                    raise NotFoundError("HTTP 404", self.name, pair_id)
                if resp.status != 200:
                    text = await resp.text()
                    self.logger.error(f"HTTP {resp.status} on {path}: {text}")
                    raise TransientError(f"HTTP {resp.status}", self.name, pair_id)

                try:
                    body = await resp.json(content_type=None)
                except ValueError as e:
                    raise MalformedError(f"invalid JSON body on {path}: {e}", self.name, pair_id)

        except asyncio.TimeoutError:
            raise TransientError(f"timeout after {self.timeout}s on {path}", self.name, pair_id)
        except aiohttp.ClientError as e:
            raise TransientError(f"request failed on {path}: {e}", self.name, pair_id)

        return self._unwrap(body, path, pair_id)

    def _unwrap(self, body: Any, path: str, pair_id: Optional[str]) -> Any:
        """Check the Kraken error array and return the result member."""
        if not isinstance(body, dict):
            raise MalformedError(f"expected envelope object on {path}", self.name, pair_id)

        errors = body.get("error") or []
        if errors:
            raise self._classify(errors, pair_id)

        if "result" not in body:
            raise MalformedError(f"missing 'result' on {path}", self.name, pair_id)
        return body["result"]

    def _classify(self, errors: List[str], pair_id: Optional[str]) -> FetchError:
        message = "; ".join(str(e) for e in errors)
        if any(e in NOT_FOUND_ERRORS for e in errors):
            return NotFoundError(message, self.name, pair_id)
        if any(e in RATE_LIMIT_ERRORS for e in errors):
            self.logger.warning(f"Kraken rate limit hit: {message}")
            return RateLimitedError(message, self.name, pair_id)
        if any(str(e).startswith(TRANSIENT_ERROR_PREFIXES) for e in errors):
            return TransientError(message, self.name, pair_id)
        return MalformedError(f"unexpected error response: {message}", self.name, pair_id)

    def _single_entry(self, result: Any, pair_id: str) -> Any:
        """Return the one pair entry of a result object (ignoring the "last" cursor)."""
        if not isinstance(result, dict):
            raise MalformedError("expected result object", self.name, pair_id)
        entries = [value for key, value in result.items() if key != "last"]
        if not entries:
            raise NotFoundError("empty result", self.name, pair_id)
        if len(entries) > 1:
            raise MalformedError(f"expected one pair, got {len(entries)}", self.name, pair_id)
        return entries[0]

    # ============================================
    # API Methods
    # ============================================

    async def get_ticker(self, pair: TradingPair) -> CoinSnapshot:
        """
        Fetch ticker information for one pair.

        Args:
            pair: Kraken trading pair (e.g., pair_id "XBTUSD")

        Returns:
            CoinSnapshot with empty history

        Kraken Endpoint:
            GET /0/public/Ticker?pair=XBTUSD

        Response Format:
            {
              "error": [],
              "result": {
                "XXBTZUSD": {
                  "a": ["30300.10000", "1", "1.000"],   // ask
                  "b": ["30300.00000", "1", "1.000"],   // bid
                  "c": ["30303.20000", "0.00067643"],  // last trade [price, volume]
                  "o": "30502.80000",                   // today's opening price
                  ...
                }
              }
            }
        """
        result = await self._get("/0/public/Ticker", {"pair": pair.pair_id}, pair_id=pair.pair_id)
        ticker = self._single_entry(result, pair.pair_id)

        if not isinstance(ticker, dict):
            raise MalformedError("ticker entry is not an object", self.name, pair.pair_id)

        last_trade = ticker.get("c")
        if not isinstance(last_trade, list) or not last_trade:
            raise MalformedError("missing field 'c'", self.name, pair.pair_id)

        price = parse_price(last_trade[0], "c[0]", self.name, pair.pair_id)
        opening = parse_price(ticker.get("o"), "o", self.name, pair.pair_id)
        change = (price - opening) / opening * Decimal(100)

        coin = CoinSnapshot(
            id=pair.symbol.lower(),
            symbol=pair.symbol,
            name=coin_name(pair.symbol),
            current_price=float(price),
            change_24h=float(round(change, 4)),
            color=coin_color(pair.symbol),
            exchange=Exchange.KRAKEN
        )

        self.logger.debug(f"Ticker {pair.pair_id}: {coin.current_price} ({coin.change_24h:+.2f}%)")
        return coin

    async def get_history(self, pair: TradingPair, interval: int = 60, limit: int = 24) -> List[PricePoint]:
        """
        Fetch recent candle closes for one pair.

        Args:
            pair: Kraken trading pair
            interval: Candle size in minutes (1, 5, 15, 30, 60, 240, 1440, ...)
            limit: Number of most recent candles to keep

        Returns:
            List of PricePoint sorted oldest first

        Kraken Endpoint:
            GET /0/public/OHLC?pair=XBTUSD&interval=60

        Response Format:
            {
              "error": [],
              "result": {
                "XXBTZUSD": [
                  [1688671200, "30306.1", "30306.2", "30305.7", "30305.7", "30306.1", "3.39243896", 23],
                  ...                  // [time, open, high, low, close, vwap, volume, count]
                ],
                "last": 1688672160
              }
            }

        Notes:
            - Kraken returns up to 720 candles; only the last `limit` are kept
        """
        if limit <= 0:
            return []

        params = {"pair": pair.pair_id, "interval": interval}
        result = await self._get("/0/public/OHLC", params, pair_id=pair.pair_id)
        rows = self._single_entry(result, pair.pair_id)

        if not isinstance(rows, list):
            raise MalformedError("OHLC entry is not an array", self.name, pair.pair_id)

        history = []
        for row in rows[-limit:]:
            if not isinstance(row, list) or len(row) < 5 or not isinstance(row[0], (int, float)):
                raise MalformedError(f"invalid OHLC row: {row!r}", self.name, pair.pair_id)
            close = parse_price(row[4], "close", self.name, pair.pair_id)
            try:
                opened_at = to_utc_datetime(row[0])
            except ValueError as e:
                raise MalformedError(f"invalid OHLC time: {e}", self.name, pair.pair_id)
            history.append(PricePoint(time=opened_at, price=float(close)))

        history.sort(key=lambda point: point.time)
        return history

    async def get_system_status(self) -> str:
        """
        Fetch the trading system status ("online", "maintenance", ...).

        Kraken Endpoint:
            GET /0/public/SystemStatus
        """
        result = await self._get("/0/public/SystemStatus")
        if not isinstance(result, dict) or "status" not in result:
            raise MalformedError("missing 'status' in system status", self.name)
        return result["status"]
