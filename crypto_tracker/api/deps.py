from __future__ import annotations

from fastapi import HTTPException, Request

from crypto_tracker.services.tracker import MarketTracker


def get_tracker(request: Request) -> MarketTracker:
    tracker = getattr(request.app.state, "tracker", None)
    if tracker is None:
        raise HTTPException(status_code=503, detail="Tracker not initialized")
    return tracker
