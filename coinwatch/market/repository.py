"""Read-only cryptocurrency lookups backed by :class:`MarketDataClient`."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from .client import InvalidMarketQuery, MarketDataClient


@dataclass(frozen=True, slots=True)
class CryptoRecord:
    """A single cryptocurrency with its latest quote in the convert currency."""

    id: int
    name: str
    symbol: str
    slug: str
    rank: int | None = None
    price: float | None = None
    market_cap: float | None = None
    volume_24h: float | None = None
    percent_change_24h: float | None = None
    last_updated: datetime | None = None
    logo: str | None = None
    description: str | None = None
    website: str | None = None


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def record_from_payload(item: dict[str, Any], convert: str) -> CryptoRecord:
    quote = (item.get("quote") or {}).get(convert) or {}
    return CryptoRecord(
        id=int(item["id"]),
        name=item["name"],
        symbol=item["symbol"],
        slug=item.get("slug", ""),
        rank=item.get("cmc_rank"),
        price=quote.get("price"),
        market_cap=quote.get("market_cap"),
        volume_24h=quote.get("volume_24h"),
        percent_change_24h=quote.get("percent_change_24h"),
        last_updated=_parse_timestamp(quote.get("last_updated") or item.get("last_updated")),
    )


class CryptocurrencyRepository:
    """Filters provider listings into single-record lookups."""

    def __init__(self, client: MarketDataClient) -> None:
        self._client = client

    def list_all(self) -> list[CryptoRecord]:
        payload = self._client.latest_listings()
        return [record_from_payload(item, self._client.convert) for item in payload.get("data", [])]

    def find_by_name(self, name: str) -> CryptoRecord | None:
        wanted = name.strip().lower()
        for record in self.list_all():
            if record.name.lower() == wanted:
                return record
        return None

    def find_by_id(self, crypto_id: str) -> CryptoRecord | None:
        wanted = crypto_id.strip()
        for record in self.list_all():
            if str(record.id) == wanted:
                return record
        return None

    def find_by_symbol(self, symbol: str) -> CryptoRecord | None:
        """Combine the live quote and provider metadata for ``symbol``.

        ``None`` when either lookup has no match, including when the provider
        rejects the symbol outright.
        """
        wanted = symbol.strip().upper()
        try:
            quote = _entry_for(self._client.quotes([wanted]), wanted)
            info = _entry_for(self._client.metadata(wanted), wanted)
        except InvalidMarketQuery:
            return None
        if not quote or not info:
            return None

        website = (info.get("urls") or {}).get("website") or []
        return replace(
            record_from_payload(quote, self._client.convert),
            logo=info.get("logo"),
            description=info.get("description"),
            website=website[0] if website else None,
        )


def _entry_for(payload: dict[str, Any], symbol: str) -> dict[str, Any] | None:
    entry = (payload.get("data") or {}).get(symbol)
    # v2 endpoints return a list of matches per symbol
    if isinstance(entry, list):
        entry = entry[0] if entry else None
    return entry or None
