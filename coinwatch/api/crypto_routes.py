"""HTTP routes proxying cryptocurrency prices from the market-data provider."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from ..market.client import MarketDataUnavailable
from ..market.repository import CryptocurrencyRepository, CryptoRecord

router = APIRouter(prefix="/v1/cryptocurrencies", tags=["cryptocurrencies"])


class CryptocurrencyResponse(BaseModel):
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

    @classmethod
    def from_record(cls, record: CryptoRecord) -> "CryptocurrencyResponse":
        return cls(
            id=record.id,
            name=record.name,
            symbol=record.symbol,
            slug=record.slug,
            rank=record.rank,
            price=record.price,
            market_cap=record.market_cap,
            volume_24h=record.volume_24h,
            percent_change_24h=record.percent_change_24h,
            last_updated=record.last_updated,
            logo=record.logo,
            description=record.description,
            website=record.website,
        )


def get_crypto_repository(request: Request) -> CryptocurrencyRepository:
    repository: CryptocurrencyRepository = request.app.state.crypto_repository
    return repository


@router.get("", response_model=list[CryptocurrencyResponse])
def list_cryptocurrencies(
    repository: CryptocurrencyRepository = Depends(get_crypto_repository),
) -> list[CryptocurrencyResponse]:
    """List the latest listings from the provider."""
    try:
        records = repository.list_all()
    except MarketDataUnavailable as exc:
        raise _unavailable(exc) from exc
    return [CryptocurrencyResponse.from_record(record) for record in records]


@router.get("/name/{name}", response_model=CryptocurrencyResponse)
def get_cryptocurrency_by_name(
    name: str,
    repository: CryptocurrencyRepository = Depends(get_crypto_repository),
) -> CryptocurrencyResponse:
    try:
        record = repository.find_by_name(name)
    except MarketDataUnavailable as exc:
        raise _unavailable(exc) from exc
    return _found_or_404(record)


@router.get("/symbol/{symbol}", response_model=CryptocurrencyResponse)
def get_cryptocurrency_by_symbol(
    symbol: str,
    repository: CryptocurrencyRepository = Depends(get_crypto_repository),
) -> CryptocurrencyResponse:
    try:
        record = repository.find_by_symbol(symbol)
    except MarketDataUnavailable as exc:
        raise _unavailable(exc) from exc
    return _found_or_404(record)


@router.get("/{crypto_id}", response_model=CryptocurrencyResponse)
def get_cryptocurrency(
    crypto_id: str,
    repository: CryptocurrencyRepository = Depends(get_crypto_repository),
) -> CryptocurrencyResponse:
    try:
        record = repository.find_by_id(crypto_id)
    except MarketDataUnavailable as exc:
        raise _unavailable(exc) from exc
    return _found_or_404(record)


def _found_or_404(record: CryptoRecord | None) -> CryptocurrencyResponse:
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="cryptocurrency not found")
    return CryptocurrencyResponse.from_record(record)


def _unavailable(exc: MarketDataUnavailable) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
