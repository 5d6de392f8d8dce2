"""Main module for the stock price tracker service."""
import logging
import os
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

import uvicorn
from fastapi import FastAPI

from stock_tracker.cache import RedisCacheStore
from stock_tracker.config import get_settings
from stock_tracker.db import PriceStore, SymbolRegistry
from stock_tracker.db.sessions import create_db_engine, init_db, ping
from stock_tracker.errors import ErrorMapper, TrackerError, tracker_error_handler
from stock_tracker.providers import FinnhubProvider
from stock_tracker.routers import health_router, stocks_router
from stock_tracker.services import StockService, SymbolService, TrackingScheduler
from stock_tracker.services.health import HealthService

logger = logging.getLogger(__name__)

Lifespan = Callable[[FastAPI], AbstractAsyncContextManager[None]]


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncIterator[None]:
    """Create stores, provider and services at startup; stop jobs and close clients on shutdown."""
    settings = get_settings()
    configure_logging(settings.log_level)

    engine = create_db_engine(settings.database_url, echo=settings.sql_echo)
    init_db(engine)
    cache = RedisCacheStore(settings.redis_url)
    provider = FinnhubProvider.from_settings(settings)

    prices = PriceStore(engine)
    symbols = SymbolService(
        SymbolRegistry(engine),
        cache,
        provider,
        default_interval_ms=settings.check_interval_ms,
    )
    scheduler = TrackingScheduler(symbols, provider, prices)

    fastapi_app.state.stock_service = StockService(
        prices,
        symbols,
        scheduler,
        cache,
        summary_ttl_seconds=settings.cache_ttl_seconds,
    )
    fastapi_app.state.health_service = HealthService(
        lambda: ping(engine), cache.health_check, provider.health_check
    )
    logger.info("Stock tracker started")

    yield

    await scheduler.shutdown()
    for closeable in (provider, cache):
        try:
            await closeable.close()
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Error closing %s: %s", type(closeable).__name__, exc)
    engine.dispose()
    logger.info("Stock tracker stopped")


def create_app(
    lifespan_handler: Lifespan | None = None,
    *,
    api_prefix: str = "/api/v1",
) -> FastAPI:
    """Build the FastAPI app with routers and the domain error handler."""
    app_ = FastAPI(
        title="Stock Price Tracker",
        description="Periodic price tracking with moving average calculation",
        version="0.1.0",
        lifespan=lifespan_handler,
    )
    app_.state.error_mapper = ErrorMapper()
    app_.add_exception_handler(TrackerError, tracker_error_handler)
    app_.include_router(stocks_router, prefix=api_prefix)
    app_.include_router(health_router, prefix=api_prefix)

    @app_.get("/")
    def root():
        """Return liveness status."""
        return {"status": "ok"}

    return app_


app = create_app(lifespan, api_prefix=os.getenv("API_PREFIX", "/api/v1"))


def run():
    """Run the server (uvicorn). Use for `poetry run start`."""
    settings = get_settings()
    uvicorn.run("stock_tracker.main:app", host=settings.host, port=settings.port)


def run_dev():
    """Run the development server with auto-reload."""
    uvicorn.run("stock_tracker.main:app", host="0.0.0.0", port=8000, reload=True)
