"""Tests for the market-data client, repository, and cryptocurrency routes."""

from __future__ import annotations

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from coinwatch.api import crypto_routes
from coinwatch.market.client import InvalidMarketQuery, MarketDataClient, MarketDataUnavailable
from coinwatch.market.repository import CryptocurrencyRepository

LISTINGS = {
    "status": {"error_code": 0},
    "data": [
        {
            "id": 1,
            "name": "Bitcoin",
            "symbol": "BTC",
            "slug": "bitcoin",
            "cmc_rank": 1,
            "last_updated": "2024-03-01T12:00:00.000Z",
            "quote": {
                "USD": {
                    "price": 62000.5,
                    "market_cap": 1.2e12,
                    "volume_24h": 3.1e10,
                    "percent_change_24h": 2.5,
                    "last_updated": "2024-03-01T12:00:00.000Z",
                }
            },
        },
        {
            "id": 1027,
            "name": "Ethereum",
            "symbol": "ETH",
            "slug": "ethereum",
            "cmc_rank": 2,
            "quote": {"USD": {"price": 3400.0}},
        },
    ],
}


METADATA = {
    "BTC": {
        "id": 1,
        "symbol": "BTC",
        "logo": "https://s2.coinmarketcap.com/static/img/coins/64x64/1.png",
        "description": "Bitcoin is a decentralized cryptocurrency.",
        "urls": {"website": ["https://bitcoin.org/"]},
    },
    "ETH": {"id": 1027, "symbol": "ETH", "logo": None, "urls": {"website": []}},
}

UNKNOWN_SYMBOL = {
    "status": {"error_code": 400, "error_message": "Invalid value for \"symbol\": \"NOPE\""},
}


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.endswith("/cryptocurrency/listings/latest"):
        return httpx.Response(200, json=LISTINGS)
    if path.endswith("/cryptocurrency/quotes/latest"):
        symbol = request.url.params["symbol"]
        matches = [item for item in LISTINGS["data"] if item["symbol"] == symbol]
        if not matches:
            return httpx.Response(400, json=UNKNOWN_SYMBOL)
        return httpx.Response(200, json={"data": {m["symbol"]: m for m in matches}})
    if path.endswith("/cryptocurrency/info"):
        symbol = request.url.params["symbol"]
        if symbol not in METADATA:
            return httpx.Response(400, json=UNKNOWN_SYMBOL)
        return httpx.Response(200, json={"data": {symbol: METADATA[symbol]}})
    return httpx.Response(404)


@pytest.fixture
def requests_seen() -> list[httpx.Request]:
    return []


@pytest.fixture
def market_repository(requests_seen) -> CryptocurrencyRepository:
    def handler(request: httpx.Request) -> httpx.Response:
        requests_seen.append(request)
        return _handler(request)

    client = httpx.Client(
        base_url="https://market.test/v1",
        transport=httpx.MockTransport(handler),
    )
    return CryptocurrencyRepository(MarketDataClient(client, convert="usd"))


def test_list_all_maps_quotes(market_repository, requests_seen):
    records = market_repository.list_all()

    assert [r.symbol for r in records] == ["BTC", "ETH"]
    assert records[0].price == 62000.5
    assert records[0].rank == 1
    assert records[0].last_updated is not None
    assert records[1].market_cap is None
    assert requests_seen[0].url.params["convert"] == "USD"
    assert requests_seen[0].url.params["limit"] == "20"


def test_find_by_name_is_case_insensitive(market_repository):
    assert market_repository.find_by_name("bitcoin").id == 1
    assert market_repository.find_by_name("dogecoin") is None


def test_find_by_id_compares_numeric_ids(market_repository):
    assert market_repository.find_by_id("1027").symbol == "ETH"
    assert market_repository.find_by_id("999") is None


def test_find_by_symbol_merges_quote_and_metadata(market_repository, requests_seen):
    record = market_repository.find_by_symbol("btc")

    assert record is not None
    assert record.name == "Bitcoin"
    assert record.price == 62000.5
    assert record.logo == METADATA["BTC"]["logo"]
    assert record.description == "Bitcoin is a decentralized cryptocurrency."
    assert record.website == "https://bitcoin.org/"
    assert [r.url.path.rsplit("/", 2)[-2:] for r in requests_seen] == [
        ["quotes", "latest"],
        ["cryptocurrency", "info"],
    ]
    assert all(r.url.params["symbol"] == "BTC" for r in requests_seen)


def test_find_by_symbol_without_optional_metadata(market_repository):
    record = market_repository.find_by_symbol("eth")

    assert record is not None
    assert record.logo is None
    assert record.website is None


def test_find_by_symbol_rejected_by_provider_is_absent(market_repository):
    assert market_repository.find_by_symbol("nope") is None


def test_client_reports_rejected_symbol():
    client = MarketDataClient(
        httpx.Client(base_url="https://market.test/v1", transport=httpx.MockTransport(_handler))
    )

    with pytest.raises(InvalidMarketQuery):
        client.quotes(["nope"])
    with pytest.raises(InvalidMarketQuery):
        client.metadata("nope")


def test_find_by_symbol_requires_metadata():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/cryptocurrency/info"):
            return httpx.Response(200, json={"data": {}})
        return _handler(request)

    client = httpx.Client(base_url="https://market.test/v1", transport=httpx.MockTransport(handler))
    repository = CryptocurrencyRepository(MarketDataClient(client))

    assert repository.find_by_symbol("BTC") is None


def test_bad_request_without_provider_code_is_an_outage():
    client = httpx.Client(
        base_url="https://market.test/v1",
        transport=httpx.MockTransport(lambda request: httpx.Response(400, text="bad gateway config")),
    )
    repository = CryptocurrencyRepository(MarketDataClient(client))

    with pytest.raises(MarketDataUnavailable):
        repository.find_by_symbol("BTC")


def test_provider_errors_are_wrapped():
    client = httpx.Client(
        base_url="https://market.test/v1",
        transport=httpx.MockTransport(lambda request: httpx.Response(401, json={})),
    )
    repository = CryptocurrencyRepository(MarketDataClient(client))

    with pytest.raises(MarketDataUnavailable):
        repository.list_all()


@pytest.fixture
def crypto_client(market_repository):
    app = FastAPI()
    app.include_router(crypto_routes.router)
    app.state.crypto_repository = market_repository
    with TestClient(app) as client:
        yield client


def test_crypto_routes(crypto_client):
    listing = crypto_client.get("/v1/cryptocurrencies")
    assert listing.status_code == 200
    assert len(listing.json()) == 2

    assert crypto_client.get("/v1/cryptocurrencies/name/Ethereum").json()["id"] == 1027
    assert crypto_client.get("/v1/cryptocurrencies/symbol/btc").json()["name"] == "Bitcoin"
    assert crypto_client.get("/v1/cryptocurrencies/1").json()["symbol"] == "BTC"
    assert crypto_client.get("/v1/cryptocurrencies/42").status_code == 404
    assert crypto_client.get("/v1/cryptocurrencies/name/nope").status_code == 404


def test_unknown_symbol_route_is_404(crypto_client):
    response = crypto_client.get("/v1/cryptocurrencies/symbol/NOPE")

    assert response.status_code == 404
    assert response.json()["detail"] == "cryptocurrency not found"


def test_symbol_route_includes_metadata(crypto_client):
    body = crypto_client.get("/v1/cryptocurrencies/symbol/BTC").json()

    assert body["website"] == "https://bitcoin.org/"
    assert body["logo"] == METADATA["BTC"]["logo"]


def test_crypto_routes_report_provider_outage():
    client = httpx.Client(
        base_url="https://market.test/v1",
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )
    app = FastAPI()
    app.include_router(crypto_routes.router)
    app.state.crypto_repository = CryptocurrencyRepository(MarketDataClient(client))

    with TestClient(app) as test_client:
        response = test_client.get("/v1/cryptocurrencies")

    assert response.status_code == 502
