from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from crypto_tracker.jobs.poller import DEFAULT_POLL_SECONDS, PollScheduler
from crypto_tracker.schemas.market import CoinRecord, CoinRow, TrackerView
from crypto_tracker.services.coingecko import MarketDataSource
from crypto_tracker.services.errors import MarketDataError
from crypto_tracker.services.formatting import format_timestamp
from crypto_tracker.services.rendering import (
    EMPTY_TABLE_MESSAGE,
    ViewSink,
    build_rows,
    build_summary_view,
)
from crypto_tracker.services.search import apply_filter, normalize_term
from crypto_tracker.services.state import TrackerState
from crypto_tracker.services.summary import compute_summary

logger = logging.getLogger("crypto_tracker.tracker")

FETCH_ERROR_MESSAGE = "Failed to fetch cryptocurrency data. Retrying..."
INIT_ERROR_MESSAGE = "Failed to initialize application. Please refresh the page."


class MarketTracker:
    """
    Owns the tracker state and wires source, filter, summary and sink together.

    The poll scheduler calls ``refresh`` on every tick; user input goes through
    ``search`` and ``handle_visibility``.
    """

    def __init__(
        self,
        source: MarketDataSource,
        sink: ViewSink,
        *,
        poll_seconds: float = DEFAULT_POLL_SECONDS,
        state: Optional[TrackerState] = None,
    ) -> None:
        self.source = source
        self.sink = sink
        self.state = state or TrackerState()
        self.rows: List[CoinRow] = []
        self.scheduler = PollScheduler(self.refresh, poll_seconds)

    async def init(self, start_polling: bool = True) -> bool:
        """First fetch, then polling. Polling is not started if the first fetch fails."""
        try:
            await self.fetch()
        except MarketDataError:
            self.state.error = INIT_ERROR_MESSAGE
            logger.error("Initialization failed; polling not started")
            return False

        if start_polling:
            self.scheduler.start()
        return True

    async def fetch(self) -> Optional[List[CoinRecord]]:
        """
        Fetch the market list and apply it.

        Returns ``None`` without touching state when the scheduler was stopped or
        restarted while the request was in flight.
        """
        generation = self.scheduler.generation
        try:
            data = await self.source.fetch_markets()
        except MarketDataError as exc:
            if generation != self.scheduler.generation:
                logger.info("Discarding failed fetch from stale generation %s", generation)
                return None
            logger.error("Error fetching crypto data: %s", exc)
            self.state.error = FETCH_ERROR_MESSAGE
            self.state.loading = False
            raise

        if generation != self.scheduler.generation:
            logger.info(
                "Discarding fetch from stale generation %s (current %s)",
                generation,
                self.scheduler.generation,
            )
            return None

        self._apply(data)
        logger.info("Fetched %d coins", len(data))
        return data

    async def refresh(self) -> None:
        await self.fetch()

    def search(self, term: str | None) -> List[CoinRecord]:
        st = self.state
        st.search_term = normalize_term(term)
        st.filtered_set = apply_filter(st.data_set, st.search_term)
        self._render_rows()
        return st.filtered_set

    async def handle_visibility(self, visible: bool) -> None:
        await self.scheduler.set_visibility(visible)

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()
        aclose = getattr(self.source, "aclose", None)
        if aclose is not None:
            await aclose()

    def view(self) -> TrackerView:
        st = self.state
        summary = build_summary_view(st.summary) if st.summary is not None else None
        return TrackerView(
            rows=self.rows,
            summary=summary,
            search_term=st.search_term,
            last_updated=format_timestamp(st.last_updated) if st.last_updated else None,
            error=st.error,
            loading=st.loading,
            message=None if st.filtered_set else EMPTY_TABLE_MESSAGE,
        )

    # ----------------------------
    # internals
    # ----------------------------
    def _apply(self, data: List[CoinRecord]) -> None:
        st = self.state
        st.data_set = data
        st.filtered_set = apply_filter(data, st.search_term)
        self._render_rows()

        summary = compute_summary(data)
        if summary is not None:
            st.summary = summary
            self.sink.render_summary(build_summary_view(summary))

        st.last_updated = datetime.now()
        st.error = None
        st.loading = False

    def _render_rows(self) -> None:
        self.rows = build_rows(self.state.filtered_set, self.state.price_history)
        self.sink.render(self.rows)
