# crypto_tracker/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI

from crypto_tracker.api.health import router as health_router
from crypto_tracker.api.tracker import router as tracker_router
from crypto_tracker.config.settings import get_settings
from crypto_tracker.services.coingecko import CoinGeckoSource
from crypto_tracker.services.rendering import SnapshotSink
from crypto_tracker.services.tracker import MarketTracker

logger = logging.getLogger("crypto_tracker")

app = FastAPI(title="Crypto Price Tracker")

# Routers
app.include_router(health_router)
app.include_router(tracker_router)


@app.get("/")
def root() -> dict[str, str]:
    return {"message": "Crypto Price Tracker"}


@app.on_event("startup")
async def on_startup() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
    )

    tracker = MarketTracker(
        CoinGeckoSource.from_settings(settings),
        SnapshotSink(),
        poll_seconds=settings.POLL_SECONDS,
    )
    app.state.tracker = tracker

    # first fetch; polling starts only if it succeeds
    await tracker.init(start_polling=settings.POLL_ENABLED)
    if not settings.POLL_ENABLED:
        logger.info("polling disabled (TRACKER_POLL_ENABLED=false)")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    tracker = getattr(app.state, "tracker", None)
    if tracker is not None:
        await tracker.shutdown()
    app.state.tracker = None
