from __future__ import annotations

import asyncio
from typing import List

import pytest

from crypto_tracker.schemas.market import CoinRecord, CoinRow, SummaryView
from crypto_tracker.services.coingecko import MarketDataSource
from crypto_tracker.services.errors import NetworkError, ParseError
from crypto_tracker.services.rendering import ViewSink
from crypto_tracker.services.tracker import (
    FETCH_ERROR_MESSAGE,
    INIT_ERROR_MESSAGE,
    MarketTracker,
)


def _coin(coin_id: str, price: float = 1.0, change: float | None = 0.0, symbol: str | None = None) -> CoinRecord:
    return CoinRecord(
        id=coin_id,
        name=coin_id.title(),
        symbol=symbol or coin_id[:3],
        current_price=price,
        price_change_percentage_24h=change,
    )


class _FakeSource(MarketDataSource):
    """Returns queued results in order; exceptions in the queue are raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0
        self.gate: asyncio.Event | None = None

    async def fetch_markets(self) -> List[CoinRecord]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class _RecordingSink(ViewSink):
    def __init__(self):
        self.renders: list[list[CoinRow]] = []
        self.summaries: list[SummaryView] = []

    def render(self, rows):
        self.renders.append(rows)

    def render_summary(self, summary):
        self.summaries.append(summary)


def _make(*results) -> tuple[MarketTracker, _FakeSource, _RecordingSink]:
    source = _FakeSource(*results)
    sink = _RecordingSink()
    return MarketTracker(source, sink, poll_seconds=3600), source, sink


MARKET = [
    _coin("bitcoin", 67000.0, 1.5, "btc"),
    _coin("ethereum", 3500.0, -2.0, "eth"),
    _coin("tether", 1.0, 0.01, "usdt"),
]


@pytest.mark.asyncio
async def test_successful_fetch_updates_state_and_renders():
    tracker, _, sink = _make(MARKET)
    assert tracker.state.loading is True

    data = await tracker.fetch()

    st = tracker.state
    assert data is MARKET
    assert st.data_set is MARKET
    assert st.filtered_set is MARKET
    assert st.last_updated is not None
    assert st.error is None
    assert st.loading is False
    assert [r.id for r in sink.renders[-1]] == ["bitcoin", "ethereum", "tether"]
    assert sink.summaries[-1].top_gainer.name == "Bitcoin"
    assert sink.summaries[-1].top_loser.name == "Ethereum"
    assert sink.summaries[-1].count == 3


@pytest.mark.asyncio
async def test_failed_fetch_leaves_state_and_sets_error():
    tracker, source, sink = _make(MARKET)
    await tracker.fetch()
    history_before = dict(tracker.state.price_history)
    renders_before = len(sink.renders)

    source.results = [NetworkError("down")]
    with pytest.raises(NetworkError):
        await tracker.fetch()

    st = tracker.state
    assert st.data_set is MARKET
    assert st.error == FETCH_ERROR_MESSAGE
    assert st.price_history == history_before
    assert len(sink.renders) == renders_before

    source.results = [MARKET]
    await tracker.fetch()
    assert tracker.state.error is None


@pytest.mark.asyncio
async def test_parse_error_is_handled_like_network_error():
    tracker, _, _ = _make(ParseError("garbage"))
    with pytest.raises(ParseError):
        await tracker.fetch()
    assert tracker.state.error == FETCH_ERROR_MESSAGE
    assert tracker.state.loading is False


@pytest.mark.asyncio
async def test_fetch_reapplies_active_search_but_summary_uses_full_set():
    tracker, source, sink = _make(MARKET)
    await tracker.fetch()

    filtered = tracker.search("  ETH ")
    assert [c.id for c in filtered] == ["ethereum"]
    assert tracker.state.search_term == "eth"

    source.results = [[_coin("ethereum", 3600.0, 1.0, "eth"), _coin("solana", 150.0, 9.0, "sol")]]
    await tracker.fetch()

    assert [c.id for c in tracker.state.filtered_set] == ["ethereum"]
    assert [r.id for r in sink.renders[-1]] == ["ethereum"]
    assert sink.summaries[-1].count == 2
    assert sink.summaries[-1].top_gainer.name == "Solana"


@pytest.mark.asyncio
async def test_clearing_search_restores_full_set():
    tracker, _, _ = _make(MARKET)
    await tracker.fetch()
    tracker.search("btc")
    tracker.search("")
    assert tracker.state.filtered_set is tracker.state.data_set


@pytest.mark.asyncio
async def test_empty_fetch_keeps_previous_summary():
    tracker, source, sink = _make(MARKET)
    await tracker.fetch()
    summary_before = tracker.state.summary

    source.results = [[]]
    await tracker.fetch()

    assert tracker.state.data_set == []
    assert tracker.state.summary is summary_before
    assert len(sink.summaries) == 1
    assert tracker.view().message == "No cryptocurrencies found"


@pytest.mark.asyncio
async def test_price_change_between_fetches_flags_row():
    tracker, source, sink = _make([_coin("bitcoin", 100.0)])
    await tracker.fetch()
    assert sink.renders[-1][0].price_updated is False

    source.results = [[_coin("bitcoin", 105.0)]]
    await tracker.fetch()
    assert sink.renders[-1][0].price_updated is True
    assert tracker.state.price_history["bitcoin"] == 105.0


@pytest.mark.asyncio
async def test_search_render_updates_price_history():
    tracker, source, _ = _make([_coin("bitcoin", 100.0, symbol="btc"), _coin("ethereum", 10.0, symbol="eth")])
    await tracker.fetch()
    tracker.search("btc")

    source.results = [[_coin("bitcoin", 100.0, symbol="btc"), _coin("ethereum", 11.0, symbol="eth")]]
    await tracker.fetch()
    # ethereum was not rendered, so its history still holds the first price
    assert tracker.state.price_history["ethereum"] == 10.0


@pytest.mark.asyncio
async def test_in_flight_fetch_is_discarded_after_stop():
    tracker, source, sink = _make(MARKET)
    tracker.scheduler.start()
    source.gate = asyncio.Event()

    task = asyncio.create_task(tracker.fetch())
    await asyncio.sleep(0)
    assert source.calls == 1

    tracker.scheduler.stop()
    source.gate.set()
    result = await task

    assert result is None
    assert tracker.state.data_set == []
    assert tracker.state.loading is True
    assert sink.renders == []
    await tracker.shutdown()


@pytest.mark.asyncio
async def test_in_flight_failure_is_discarded_after_stop():
    tracker, source, _ = _make(NetworkError("late"))
    tracker.scheduler.start()
    source.gate = asyncio.Event()

    task = asyncio.create_task(tracker.fetch())
    await asyncio.sleep(0)
    tracker.scheduler.stop()
    source.gate.set()

    assert await task is None
    assert tracker.state.error is None
    await tracker.shutdown()


@pytest.mark.asyncio
async def test_init_success_starts_polling():
    tracker, _, _ = _make(MARKET)
    assert await tracker.init() is True
    assert tracker.scheduler.running is True
    await tracker.shutdown()
    assert tracker.scheduler.running is False


@pytest.mark.asyncio
async def test_init_failure_does_not_start_polling():
    tracker, _, _ = _make(NetworkError("offline"))
    assert await tracker.init() is False
    assert tracker.state.error == INIT_ERROR_MESSAGE
    assert tracker.state.loading is False
    assert tracker.scheduler.running is False


@pytest.mark.asyncio
async def test_visibility_hidden_then_visible_fetches_immediately():
    tracker, source, _ = _make(MARKET)
    await tracker.init()
    assert source.calls == 1

    await tracker.handle_visibility(False)
    assert tracker.scheduler.running is False

    await tracker.handle_visibility(True)
    assert tracker.scheduler.running is True
    assert source.calls == 2
    assert tracker.state.data_set is MARKET
    await tracker.shutdown()


@pytest.mark.asyncio
async def test_view_reflects_state():
    tracker, _, _ = _make(MARKET)
    view = tracker.view()
    assert view.loading is True
    assert view.rows == []
    assert view.summary is None

    await tracker.fetch()
    view = tracker.view()
    assert view.loading is False
    assert len(view.rows) == 3
    assert view.summary.count == 3
    assert view.last_updated is not None
    assert view.message is None


@pytest.mark.asyncio
async def test_non_finite_change_still_completes_the_fetch():
    tracker, _, sink = _make([_coin("moon", 1.0, float("inf")), _coin("bitcoin", 2.0, 1.0)])
    await tracker.fetch()

    st = tracker.state
    assert st.loading is False
    assert st.error is None
    assert st.last_updated is not None
    assert sink.summaries[-1].top_gainer.change == "▲ 0.00%"
    assert sink.renders[-1][0].change == "▲ 0.00%"
