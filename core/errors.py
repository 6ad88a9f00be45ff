"""
Error Taxonomy

Exceptions raised by the exchange adapters and the collaborators around them.

Fetch errors (raised by ExchangeAdapter.fetch_one / fetch_history):
    - NotFoundError: the pair is delisted or never existed on the exchange
    - RateLimitedError: the exchange asked us to slow down (HTTP 429/418, Kraken EAPI)
    - TransientError: timeout, connection failure or 5xx
    - MalformedError: the body could not be parsed into our schema

None of these reach the UI: the Aggregator turns them into a secondary-exchange
fallback or drops the symbol. An unsupported pair is not an error at all; the
SymbolResolver returns None for it.
"""

from enum import Enum
from typing import Optional


class FetchErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    MALFORMED = "malformed"


class FetchError(Exception):
    """
    Base class for all exchange fetch failures.

    Attributes:
        kind: Which failure class this is
        exchange: Exchange name the failure came from (e.g., "kraken")
        pair_id: Exchange pair identifier the request was for
    """

    kind: FetchErrorKind

    def __init__(self, message: str, exchange: Optional[str] = None, pair_id: Optional[str] = None):
        super().__init__(message)
        self.exchange = exchange
        self.pair_id = pair_id

    def __str__(self) -> str:
        prefix = f"[{self.exchange} {self.pair_id}] " if self.exchange else ""
        return f"{prefix}{self.kind.value}: {self.args[0]}"


class NotFoundError(FetchError):
    kind = FetchErrorKind.NOT_FOUND


class RateLimitedError(FetchError):
    kind = FetchErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str,
        exchange: Optional[str] = None,
        pair_id: Optional[str] = None,
        retry_after: Optional[float] = None
    ):
        super().__init__(message, exchange, pair_id)
        self.retry_after = retry_after


class TransientError(FetchError):
    kind = FetchErrorKind.TRANSIENT


class MalformedError(FetchError):
    kind = FetchErrorKind.MALFORMED


class AnalysisError(Exception):
    """The market analysis service could not produce a result."""


class WatchListError(ValueError):
    """An invalid watch-list mutation (duplicate, unknown or last symbol)."""
