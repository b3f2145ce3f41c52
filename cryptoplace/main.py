# cryptoplace/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI

from cryptoplace.api.health import router as health_router
from cryptoplace.api.market import router as market_router
from cryptoplace.config.logging_config import configure_logging
from cryptoplace.config.settings import Settings, get_settings
from cryptoplace.services.coin_store import CoinStore
from cryptoplace.services.coingecko import CoinGeckoClient
from cryptoplace.services.currency import CurrencySelector

logger = logging.getLogger("cryptoplace.app")


def create_app(settings: Optional[Settings] = None, source: Any = None) -> FastAPI:
    """
    Build the API. ``source`` replaces the CoinGecko client (tests pass fakes);
    the store and its currency selector are created per app, never global.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        market_source = source if source is not None else CoinGeckoClient(settings)
        selector = CurrencySelector(settings.DEFAULT_CURRENCY)
        store = CoinStore(market_source, selector)

        app.state.source = market_source
        app.state.store = store

        if settings.FETCH_ON_STARTUP:
            await store.start()

        logger.info("cryptoplace started | currency=%s", selector.current.code)
        try:
            yield
        finally:
            await store.wait_idle()
            if source is None:
                await market_source.close()
            logger.info("cryptoplace stopped")

    app = FastAPI(title="Cryptoplace Market API", lifespan=lifespan)

    # Routers
    app.include_router(health_router)
    app.include_router(market_router)

    @app.get("/")
    def root() -> dict[str, str]:
        return {"message": "Largest Crypto Marketplace"}

    return app


app = create_app()
