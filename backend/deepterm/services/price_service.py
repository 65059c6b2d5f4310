"""Current price lookup for alert evaluation."""

import logging
from typing import Optional

import httpx

from deepterm.core.config import settings

logger = logging.getLogger(__name__)


class PriceService:
    """Best-effort quote lookup: FMP first, Yahoo Finance as fallback."""

    FMP_BASE_URL = "https://financialmodelingprep.com/api/v3"
    YAHOO_BASE_URL = "https://query1.finance.yahoo.com/v8/finance/chart"

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self.fmp_api_key = settings.FMP_API_KEY or None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=settings.PRICE_HTTP_TIMEOUT,
            headers={
                "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
                "Accept": "application/json",
            },
        )

    async def close(self):
        """Close HTTP client."""
        await self.http_client.aclose()

    async def get_current_price(self, symbol: str) -> Optional[float]:
        """
        Return the last trade price for `symbol`, or None if no provider has it.

        Never raises: provider failures are logged and the next provider is
        tried. There is exactly one fallback and no retry.
        """
        if self.fmp_api_key:
            try:
                price = await self._fetch_from_fmp(symbol)
                if price:
                    return price
            except Exception as e:
                logger.warning(f"FMP quote failed for {symbol}: {e}, trying Yahoo Finance...")

        try:
            price = await self._fetch_from_yahoo(symbol)
            if price:
                return price
        except Exception as e:
            logger.warning(f"Yahoo Finance quote failed for {symbol}: {e}")

        logger.error(f"No price available for {symbol}")
        return None

    async def _fetch_from_fmp(self, symbol: str) -> Optional[float]:
        response = await self.http_client.get(
            f"{self.FMP_BASE_URL}/quote-short/{symbol}",
            params={"apikey": self.fmp_api_key},
        )
        response.raise_for_status()
        data = response.json()

        if isinstance(data, list) and data:
            price = data[0].get("price")
            if price:
                return float(price)
        return None

    async def _fetch_from_yahoo(self, symbol: str) -> Optional[float]:
        response = await self.http_client.get(
            f"{self.YAHOO_BASE_URL}/{symbol}",
            params={
                "interval": "1m",
                "range": "1d",
            },
        )
        response.raise_for_status()
        data = response.json()

        results = (data.get("chart") or {}).get("result") or [{}]
        meta = results[0].get("meta") or {}
        price = meta.get("regularMarketPrice")
        if price:
            return float(price)
        return None
