"""
Shared fixtures for unit tests.

FakeAdapter stands in for a real exchange adapter: prices, failures and delays
are configured per symbol, and every call is recorded. FakeSession stands in
for an aiohttp ClientSession and serves one canned response per request.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest

from core.coins import coin_color, coin_name
from core.errors import NotFoundError
from core.exchange_interface import ExchangeAdapter
from core.exchange_manager import ExchangeManager
from core.schemas import CoinSnapshot, Exchange, PricePoint


class FakeAdapter(ExchangeAdapter):
    """Configurable in-memory adapter."""

    def __init__(
        self,
        exchange,
        prices=None,
        errors=None,
        delays=None,
        history_errors=None,
        supports_history=True
    ):
        self.exchange = exchange
        self.name = exchange.value.lower()
        self.capabilities = {"ticker": True, "history": supports_history}
        self.prices = prices or {}
        self.errors = errors or {}
        self.delays = delays or {}
        self.history_errors = history_errors or {}
        self.calls = []
        self.history_calls = []
        self.active = 0
        self.max_active = 0

    async def fetch_one(self, pair):
        self.calls.append(pair)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(pair.symbol, 0))
        finally:
            self.active -= 1

        if pair.symbol in self.errors:
            raise self.errors[pair.symbol]
        if pair.symbol not in self.prices:
            raise NotFoundError("unknown pair", self.name, pair.pair_id)

        return CoinSnapshot(
            id=pair.symbol.lower(),
            symbol=pair.symbol,
            name=coin_name(pair.symbol),
            current_price=self.prices[pair.symbol],
            change_24h=1.5,
            color=coin_color(pair.symbol),
            exchange=self.exchange
        )

    async def fetch_history(self, pair):
        self.history_calls.append(pair)
        if pair.symbol in self.history_errors:
            raise self.history_errors[pair.symbol]
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        price = self.prices[pair.symbol]
        return [
            PricePoint(time=start + timedelta(hours=i), price=price + i)
            for i in range(3)
        ]


@pytest.fixture
def fake_adapter():
    """Factory for FakeAdapter instances."""
    return FakeAdapter


@pytest.fixture
def binance():
    return FakeAdapter(Exchange.BINANCE)


@pytest.fixture
def kraken():
    return FakeAdapter(Exchange.KRAKEN)


@pytest.fixture
def manager(binance, kraken):
    return ExchangeManager({Exchange.BINANCE: binance, Exchange.KRAKEN: kraken})


class FakeResponse:
    """Canned aiohttp response, used as the `async with session.get(...)` target."""

    def __init__(self, status=200, body=None, text=None, headers=None, error=None):
        self.status = status
        self.headers = headers or {}
        self._text = text if text is not None else json.dumps(body)
        self._error = error

    async def __aenter__(self):
        if self._error is not None:
            raise self._error
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    async def json(self, content_type="application/json"):
        return json.loads(self._text)

    async def text(self):
        return self._text


class FakeSession:
    """Records GET requests and answers each with the same FakeResponse."""

    def __init__(self, response):
        self.response = response
        self.requests = []

    def get(self, url, params=None, timeout=None):
        self.requests.append((url, params))
        return self.response


@pytest.fixture
def fake_session():
    """Factory: fake_session(status=..., body=... | text=... | error=...)."""
    def build(**kwargs):
        return FakeSession(FakeResponse(**kwargs))
    return build
