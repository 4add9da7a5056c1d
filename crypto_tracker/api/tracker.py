# crypto_tracker/api/tracker.py
from __future__ import annotations

from typing import Any, Iterable

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from crypto_tracker.api.deps import get_tracker
from crypto_tracker.schemas.market import SearchRequest, TrackerView, VisibilityRequest
from crypto_tracker.services.errors import MarketDataError
from crypto_tracker.services.tracker import MarketTracker

router = APIRouter(prefix="/tracker", tags=["tracker"])


_BODY_FIELDS = frozenset(SearchRequest.model_fields) | frozenset(VisibilityRequest.model_fields)


def _error_response(
    *,
    code: str,
    message: str,
    status_code: int = 400,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        payload["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=payload)


def _offending_query_params(params: Iterable[str]) -> list[str]:
    return sorted(p for p in params if p in _BODY_FIELDS)


def _use_json_body(request: Request) -> JSONResponse | None:
    offending = _offending_query_params(request.query_params.keys())
    if not offending:
        return None
    return _error_response(
        code="use_json_body",
        message="Send these fields in the JSON body, not the query string.",
        details={"query_params": offending},
    )


@router.get("", response_model=TrackerView)
async def get_tracker_view(tracker: MarketTracker = Depends(get_tracker)):
    return tracker.view()


@router.post("/search", response_model=TrackerView)
async def search(
    request: Request,
    payload: SearchRequest,
    tracker: MarketTracker = Depends(get_tracker),
):
    """
    Filter the table by name or symbol.
    Example body: {"term": "btc"}
    """
    rejected = _use_json_body(request)
    if rejected is not None:
        return rejected

    tracker.search(payload.term)
    return tracker.view()


@router.post("/refresh", response_model=TrackerView)
async def refresh(tracker: MarketTracker = Depends(get_tracker)):
    try:
        await tracker.fetch()
    except MarketDataError as exc:
        raise HTTPException(status_code=502, detail="Unable to reach CoinGecko") from exc
    return tracker.view()


@router.post("/visibility")
async def visibility(
    request: Request,
    payload: VisibilityRequest,
    tracker: MarketTracker = Depends(get_tracker),
):
    """
    Hidden stops polling; visible restarts it and fetches right away.
    Example body: {"state": "visible"}
    """
    rejected = _use_json_body(request)
    if rejected is not None:
        return rejected

    await tracker.handle_visibility(payload.state == "visible")
    return {
        "state": payload.state,
        "polling": tracker.scheduler.running,
        "view": tracker.view().model_dump(),
    }
