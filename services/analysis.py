"""
Market Analysis Service (Gemini)

Asks Google's Gemini model for a short market sentiment read of the coins the
dashboard currently displays, and parses the answer into a MarketAnalysis.

The request goes through the public REST endpoint (`models/{model}:generateContent`)
with JSON response mode, so no SDK is needed. Any failure (missing API key, HTTP
error, connection error, unparseable answer) raises AnalysisError; the dashboard
keeps working without an analysis.
"""

import json
import re
from typing import List, Optional

import httpx
from pydantic import ValidationError

from core.errors import AnalysisError
from core.logging import get_logger
from core.schemas import CoinSnapshot, Currency, MarketAnalysis


RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "sentiment": {"type": "STRING", "enum": ["bullish", "bearish", "neutral"]},
        "summary": {"type": "STRING"},
        "keyLevels": {"type": "STRING"}
    },
    "required": ["sentiment", "summary", "keyLevels"]
}


def build_prompt(coins: List[CoinSnapshot], currency: Currency) -> str:
    """
    Build the analysis prompt for a set of coins.

    Example:
        >>> build_prompt([btc], Currency.USD)
        'You are a concise crypto market analyst. ... BTC (Bitcoin): 64250.5 USD, 24h -1.25% ...'
    """
    lines = [
        f"- {coin.symbol} ({coin.name}): {coin.current_price:g} {currency.value}, "
        f"24h {coin.change_24h:+.2f}%"
        for coin in coins
    ]
    return (
        "You are a concise crypto market analyst. Based on the following live prices, "
        "give the overall market sentiment (bullish, bearish or neutral), a summary of at "
        "most three sentences, and the key support/resistance levels worth watching.\n"
        f"Prices are in {currency.value}.\n"
        + "\n".join(lines)
        + "\nAnswer with a JSON object with the fields sentiment, summary and keyLevels."
    )


def parse_analysis(text: str) -> MarketAnalysis:
    """
    Parse the model's answer into a MarketAnalysis.

    Tolerates markdown code fences and extra text around the JSON object.

    Raises:
        AnalysisError: If no valid analysis object can be extracted
    """
    cleaned = text.replace("```json", "").replace("```", "").strip()
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError:
        match = re.search(r"\{[\s\S]*\}", cleaned)
        if not match:
            raise AnalysisError(f"Could not parse JSON from analysis response: {cleaned[:200]}")
        try:
            payload = json.loads(match.group())
        except json.JSONDecodeError as e:
            raise AnalysisError(f"Could not parse JSON from analysis response: {e}") from e

    if not isinstance(payload, dict):
        raise AnalysisError(f"Expected a JSON object, got {type(payload).__name__}")

    try:
        return MarketAnalysis.model_validate(payload)
    except ValidationError as e:
        raise AnalysisError(f"Invalid analysis payload: {e.error_count()} validation error(s)") from e


class GeminiAnalyzer:
    """
    Gemini-backed market analyzer.

    Example:
        >>> analyzer = GeminiAnalyzer(api_key="...")
        >>> analysis = await analyzer.analyze(coins, Currency.USD)
        >>> analysis.sentiment
        'bullish'
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        from core.config import settings

        self.api_key = settings.gemini_api_key if api_key is None else api_key
        self.model = model or settings.gemini_model
        self.base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self.timeout = timeout or settings.analysis_timeout
        self._transport = transport
        self.logger = get_logger(__name__)

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def analyze(self, coins: List[CoinSnapshot], currency: Currency) -> MarketAnalysis:
        """
        Request a sentiment analysis for the given coins.

        Raises:
            AnalysisError: On missing API key, HTTP/connection errors or an unusable answer
        """
        if not self.enabled:
            raise AnalysisError("Market analysis is disabled: GEMINI_API_KEY is not configured")
        if not coins:
            raise AnalysisError("No coins to analyze")

        url = f"{self.base_url}/models/{self.model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": build_prompt(coins, currency)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA
            }
        }

        self.logger.info(f"Requesting market analysis for {len(coins)} coins ({currency.value}, {self.model})")
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    url,
                    params={"key": self.api_key},
                    json=body,
                    timeout=self.timeout
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            self.logger.error(f"Gemini API error: {e.response.status_code} - {e.response.text[:200]}")
            raise AnalysisError(f"Analysis service returned HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            self.logger.error(f"Gemini API connection error: {e}")
            raise AnalysisError(f"Failed to connect to analysis service: {e}") from e
        except ValueError as e:
            raise AnalysisError(f"Analysis service returned invalid JSON: {e}") from e

        analysis = parse_analysis(self._extract_text(data))
        self.logger.info(f"Market analysis received: {analysis.sentiment}")
        return analysis

    @staticmethod
    def _extract_text(data: dict) -> str:
        try:
            parts = data["candidates"][0]["content"]["parts"]
            return "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError) as e:
            raise AnalysisError("Analysis response contained no candidates") from e
