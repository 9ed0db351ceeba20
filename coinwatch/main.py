"""FastAPI application wiring for the coinwatch service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from psycopg_pool import ConnectionPool

from .api.crypto_routes import router as crypto_router
from .api.routes import router as users_router
from .config import get_settings
from .domain.service import AccountService
from .market.client import MarketDataClient
from .market.repository import CryptocurrencyRepository
from .repository import AccountRepository

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise shared resources (Postgres pool, market-data client) for the app lifecycle."""
    pool = ConnectionPool(settings.database_url, open=False)
    pool.open()
    repository = AccountRepository(pool)
    repository.ensure_schema()
    market_client = MarketDataClient.from_settings(settings)

    app.state.pool = pool
    app.state.account_service = AccountService(
        repository,
        enforce_unique_names=settings.enforce_unique_names,
    )
    app.state.crypto_repository = CryptocurrencyRepository(market_client)
    try:
        yield
    finally:
        market_client.close()
        pool.close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


app.include_router(users_router)
app.include_router(crypto_router)


# Prometheus metrics endpoint for Prometheus scrapes
try:
    from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
except ImportError:  # pragma: no cover - metrics are optional in dev
    pass


def run() -> None:
    """Console entry point serving the app with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=settings.http_host, port=settings.http_port)
