"""
Coin Metadata

Display names and presentation colors for ticker symbols.

Colors must be stable per symbol so that re-fetching a snapshot never makes the
UI flicker. Well-known coins use their brand color; every other symbol gets a
color derived from a hash of the symbol (hashlib, not the salted built-in
hash()), so the same symbol maps to the same color in every process.
"""

import colorsys
import hashlib
from typing import Dict


COIN_NAMES: Dict[str, str] = {
    "BTC": "Bitcoin",
    "ETH": "Ethereum",
    "XRP": "XRP",
    "SOL": "Solana",
    "ADA": "Cardano",
    "DOT": "Polkadot",
    "DOGE": "Dogecoin",
    "BNB": "BNB",
    "LTC": "Litecoin",
    "LINK": "Chainlink",
    "AVAX": "Avalanche",
    "MATIC": "Polygon",
    "POL": "Polygon",
    "TRX": "TRON",
    "SHIB": "Shiba Inu",
    "ATOM": "Cosmos",
    "XLM": "Stellar",
    "UNI": "Uniswap",
    "BCH": "Bitcoin Cash",
    "USDT": "Tether",
    "USDC": "USD Coin",
}

BRAND_COLORS: Dict[str, str] = {
    "BTC": "#F7931A",
    "ETH": "#627EEA",
    "XRP": "#23292F",
    "SOL": "#14F195",
    "ADA": "#0033AD",
    "DOT": "#E6007A",
    "DOGE": "#C2A633",
    "BNB": "#F3BA2F",
    "LTC": "#345D9D",
    "LINK": "#2A5ADA",
    "AVAX": "#E84142",
    "USDT": "#26A17B",
    "USDC": "#2775CA",
}


def coin_name(symbol: str) -> str:
    """Display name for a symbol, or the symbol itself when unknown."""
    return COIN_NAMES.get(symbol.upper(), symbol.upper())


def coin_color(symbol: str) -> str:
    """
    Deterministic hex color for a symbol.

    Example:
        >>> coin_color("BTC")
        '#F7931A'
        >>> coin_color("PEPE") == coin_color("pepe")
        True
    """
    symbol = symbol.upper()
    if symbol in BRAND_COLORS:
        return BRAND_COLORS[symbol]

    digest = hashlib.sha256(symbol.encode("utf-8")).digest()
    hue = digest[0] / 255.0
    # Keep saturation/lightness in a band that reads well on a dark background
    saturation = 0.55 + (digest[1] / 255.0) * 0.3
    lightness = 0.5 + (digest[2] / 255.0) * 0.1
    r, g, b = colorsys.hls_to_rgb(hue, lightness, saturation)
    return "#{:02X}{:02X}{:02X}".format(round(r * 255), round(g * 255), round(b * 255))
