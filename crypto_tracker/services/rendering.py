from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from crypto_tracker.schemas.market import (
    CoinRecord,
    CoinRow,
    MarketSummary,
    MoverView,
    SummaryView,
)
from crypto_tracker.services.formatting import (
    format_change,
    format_currency,
    format_large_number,
    is_missing,
    to_fixed,
)

EMPTY_TABLE_MESSAGE = "No cryptocurrencies found"


class ViewSink(ABC):
    """Where the tracker hands over fully computed view models."""

    @abstractmethod
    def render(self, rows: List[CoinRow]) -> None:
        pass

    @abstractmethod
    def render_summary(self, summary: SummaryView) -> None:
        pass


class SnapshotSink(ViewSink):
    """Keeps the latest rendered rows and summary in memory for the HTTP layer."""

    def __init__(self) -> None:
        self.rows: List[CoinRow] = []
        self.summary: Optional[SummaryView] = None
        self.render_count = 0

    def render(self, rows: List[CoinRow]) -> None:
        self.rows = rows
        self.render_count += 1

    def render_summary(self, summary: SummaryView) -> None:
        self.summary = summary


def build_rows(
    filtered_set: List[CoinRecord],
    price_history: Dict[str, Optional[float]],
) -> List[CoinRow]:
    """
    Turn the filtered set into table rows.

    Updates ``price_history`` in place for every rendered coin. A row is flagged
    ``price_updated`` when a non-zero price was seen on the previous render and
    the current price differs from it.
    """
    rows: List[CoinRow] = []
    for index, coin in enumerate(filtered_set):
        previous = price_history.get(coin.id)
        price_updated = bool(previous) and previous != coin.current_price
        price_history[coin.id] = coin.current_price

        change, direction = format_change(coin.price_change_percentage_24h)
        rows.append(
            CoinRow(
                id=coin.id,
                rank=coin.market_cap_rank or index + 1,
                name=coin.name,
                symbol=coin.symbol,
                image=coin.image,
                price=format_currency(coin.current_price),
                price_updated=price_updated,
                change=change,
                direction=direction,
                market_cap=format_large_number(coin.market_cap),
                volume=format_large_number(coin.total_volume),
            )
        )
    return rows


def _finite_change(coin: CoinRecord) -> float:
    return 0.0 if is_missing(coin.price_change_percentage_24h) else coin.change_24h


def build_summary_view(summary: MarketSummary) -> SummaryView:
    gainer = summary.top_gainer
    loser = summary.top_loser
    return SummaryView(
        top_gainer=MoverView(name=gainer.name, change=f"▲ {to_fixed(_finite_change(gainer), 2)}%"),
        top_loser=MoverView(name=loser.name, change=f"▼ {to_fixed(abs(_finite_change(loser)), 2)}%"),
        count=summary.count,
    )
