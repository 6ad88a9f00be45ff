"""
Placeholder Snapshot

Builds the zero-network snapshot the dashboard renders before the first poll
cycle settles. Entries follow the same schema, order and de-duplication rules as
a live snapshot, so consumers need no special case for the "not yet loaded"
state: price and change are zero, history is empty and exchange is None.
"""

from typing import Iterable, List

from core.coins import coin_color, coin_name
from core.schemas import CoinSnapshot, Currency


def initial_snapshot(currency: Currency, symbols: Iterable[str]) -> List[CoinSnapshot]:
    """
    Deterministic placeholder entries for a watch-list.

    Symbols are trimmed and uppercased; blanks and repeats are skipped, keeping
    the first occurrence. Calling twice with equal arguments yields equal lists.

    Args:
        currency: Display currency (the placeholder carries no prices, but the
                  signature matches a live cycle)
        symbols: Watch-list in display order

    Returns:
        List[CoinSnapshot]: One zero-valued entry per unique symbol
    """
    if not isinstance(currency, Currency):
        raise TypeError(f"currency must be a Currency, got {currency!r}")

    coins = []
    seen = set()
    for raw in symbols:
        symbol = raw.strip().upper()
        if not symbol or symbol in seen:
            continue
        seen.add(symbol)
        coins.append(CoinSnapshot(
            id=symbol.lower(),
            symbol=symbol,
            name=coin_name(symbol),
            current_price=0.0,
            change_24h=0.0,
            history=[],
            color=coin_color(symbol),
            exchange=None
        ))
    return coins
