"""
Symbol Resolver

Maps an abstract ticker symbol (e.g., "BTC") to the pair identifier a given
exchange expects for a given display currency (e.g., "BTCUSDT" on Binance,
"XBTEUR" on Kraken).

The mapping is pure and deterministic; it never touches the network. When an
exchange has no known pair for a symbol/currency combination the resolver
returns None ("unsupported") instead of guessing, and the Aggregator moves on
to the other exchange.

Exchange conventions:
    Binance:
        - USD prices come from USDT-quoted pairs (BTC -> BTCUSDT)
        - EUR pairs exist only for a subset of bases (BTC -> BTCEUR)
    Kraken:
        - Uses its own base codes for a few assets (BTC -> XBT, DOGE -> XDG)
        - USD and EUR quotes are both native (BTC/EUR -> XBTEUR)
"""

import re
from typing import Dict, FrozenSet, Optional

from core.schemas import Currency, Exchange, TradingPair


SYMBOL_PATTERN = re.compile(r"^[A-Z0-9]{1,15}$")

BINANCE_QUOTES: Dict[Currency, str] = {
    Currency.USD: "USDT",
    Currency.EUR: "EUR",
}

# Bases Binance lists against EUR on the spot market
BINANCE_EUR_BASES: FrozenSet[str] = frozenset({
    "ADA", "AVAX", "BNB", "BTC", "DOGE", "DOT", "ETH", "LINK", "LTC",
    "NEAR", "PEPE", "SHIB", "SOL", "TRX", "USDC", "USDT", "XRP",
})

KRAKEN_QUOTES: Dict[Currency, str] = {
    Currency.USD: "USD",
    Currency.EUR: "EUR",
}

KRAKEN_BASE_ALIASES: Dict[str, str] = {
    "BTC": "XBT",
    "DOGE": "XDG",
}


class SymbolResolver:
    """
    Resolve ticker symbols to exchange-specific trading pairs.

    Example:
        >>> resolver = SymbolResolver()
        >>> resolver.resolve("BTC", Currency.EUR, Exchange.KRAKEN).pair_id
        'XBTEUR'
        >>> resolver.resolve("ZZZ", Currency.EUR, Exchange.BINANCE) is None
        True
    """

    def __init__(
        self,
        binance_eur_bases: FrozenSet[str] = BINANCE_EUR_BASES,
        kraken_aliases: Optional[Dict[str, str]] = None
    ):
        self.binance_eur_bases = binance_eur_bases
        self.kraken_aliases = dict(KRAKEN_BASE_ALIASES if kraken_aliases is None else kraken_aliases)

    def resolve(self, symbol: str, currency: Currency, exchange: Exchange) -> Optional[TradingPair]:
        """
        Resolve a symbol for one exchange and currency.

        Args:
            symbol: Uppercase ticker (e.g., "ETH")
            currency: Display currency
            exchange: Exchange to resolve against

        Returns:
            TradingPair, or None when the exchange has no known pair
        """
        if not SYMBOL_PATTERN.match(symbol):
            return None

        if exchange is Exchange.BINANCE:
            pair_id = self._resolve_binance(symbol, currency)
        else:
            pair_id = self._resolve_kraken(symbol, currency)

        if pair_id is None:
            return None
        return TradingPair(exchange=exchange, symbol=symbol, currency=currency, pair_id=pair_id)

    def _resolve_binance(self, symbol: str, currency: Currency) -> Optional[str]:
        quote = BINANCE_QUOTES[currency]
        if symbol in (quote, currency.value):
            return None
        if currency is Currency.EUR and symbol not in self.binance_eur_bases:
            return None
        return f"{symbol}{quote}"

    def _resolve_kraken(self, symbol: str, currency: Currency) -> Optional[str]:
        quote = KRAKEN_QUOTES[currency]
        if symbol == quote:
            return None
        base = self.kraken_aliases.get(symbol, symbol)
        return f"{base}{quote}"
