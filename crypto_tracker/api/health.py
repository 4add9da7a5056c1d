# crypto_tracker/api/health.py
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request, Response

router = APIRouter(tags=["health"])

APP_STARTED_AT = time.time()


def _now_meta() -> Dict[str, Any]:
    now_ts = time.time()
    now_dt = datetime.fromtimestamp(now_ts, tz=timezone.utc)
    return {
        "now_unix": int(now_ts),
        "now_iso": now_dt.isoformat().replace("+00:00", "Z"),
        "uptime_s": int(now_ts - APP_STARTED_AT),
    }


@router.get("/health")
async def health() -> Dict[str, Any]:
    return {"ok": True, **_now_meta()}


@router.get("/ready")
async def ready(request: Request, response: Response) -> Dict[str, Any]:
    """
    Ready when the tracker exists, has data, and its poller is running.
    """
    tracker = getattr(request.app.state, "tracker", None)
    if tracker is None:
        response.status_code = 503
        return {"ok": False, "error": "tracker not initialized", **_now_meta()}

    st = tracker.state
    poller = tracker.scheduler.info()
    ok = bool(poller["running"]) and bool(st.data_set)
    if not ok:
        response.status_code = 503

    return {
        "ok": ok,
        "coins": len(st.data_set),
        "last_updated": st.last_updated.isoformat() if st.last_updated else None,
        "error": st.error,
        "poller": poller,
        **_now_meta(),
    }
