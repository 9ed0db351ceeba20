"""HTTP client for the third-party cryptocurrency listings API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)

LATEST_LISTINGS_PATH = "/cryptocurrency/listings/latest"
QUOTES_PATH = "/cryptocurrency/quotes/latest"
METADATA_PATH = "/cryptocurrency/info"


class MarketDataUnavailable(RuntimeError):
    """Raised when the market-data provider cannot be reached or rejects a call."""


class InvalidMarketQuery(MarketDataUnavailable):
    """The provider rejected the request parameters, e.g. an unknown symbol."""


class MarketDataClient:
    """Thin wrapper over a CoinMarketCap-compatible REST API."""

    def __init__(self, client: httpx.Client, *, convert: str = "USD") -> None:
        self._client = client
        self._convert = convert.upper()

    @classmethod
    def from_settings(cls, settings: Settings) -> "MarketDataClient":
        """Build a client with base URL, API key header, and timeout from settings."""
        client = httpx.Client(
            base_url=settings.market_data_base_url,
            headers={
                "X-CMC_PRO_API_KEY": settings.market_data_api_key,
                "Accept": "application/json",
            },
            timeout=settings.market_data_timeout_seconds,
        )
        return cls(client, convert=settings.market_data_convert)

    @property
    def convert(self) -> str:
        return self._convert

    def latest_listings(self, limit: int = 20, start: int = 1) -> dict[str, Any]:
        return self._get(
            LATEST_LISTINGS_PATH,
            {"limit": limit, "start": start, "convert": self._convert},
        )

    def quotes(self, symbols: list[str]) -> dict[str, Any]:
        return self._get(
            QUOTES_PATH,
            {"symbol": ",".join(s.upper() for s in symbols), "convert": self._convert},
        )

    def metadata(self, symbol: str) -> dict[str, Any]:
        return self._get(METADATA_PATH, {"symbol": symbol.upper()})

    def close(self) -> None:
        self._client.close()

    def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            if _is_rejected_query(exc.response):
                logger.info("market data request %s rejected: %s", path, exc.response.text)
                raise InvalidMarketQuery(f"market data request rejected: {path}") from exc
            logger.error(
                "market data request %s failed with status %s",
                path,
                exc.response.status_code,
            )
            raise MarketDataUnavailable(f"market data request failed: {path}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("market data request %s failed: %s", path, exc)
            raise MarketDataUnavailable(f"market data request failed: {path}") from exc


def _is_rejected_query(response: httpx.Response) -> bool:
    """Return ``True`` for a 400 whose body carries the provider's own 400 error code."""
    if response.status_code != httpx.codes.BAD_REQUEST:
        return False
    try:
        body = response.json()
    except ValueError:
        return False
    status = body.get("status") if isinstance(body, dict) else None
    return isinstance(status, dict) and status.get("error_code") == 400
