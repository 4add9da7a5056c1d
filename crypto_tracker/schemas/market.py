"""Pydantic models for market records and the view models built from them."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class CoinRecord(BaseModel):
    """One entry of the CoinGecko ``/coins/markets`` payload."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    symbol: str
    name: str
    image: Optional[str] = None
    current_price: Optional[float] = None
    price_change_percentage_24h: Optional[float] = None
    market_cap: Optional[float] = None
    total_volume: Optional[float] = None
    market_cap_rank: Optional[int] = None

    @property
    def change_24h(self) -> float:
        return self.price_change_percentage_24h or 0.0


class MarketSummary(BaseModel):
    """Top mover statistics over the full fetched data set."""

    top_gainer: CoinRecord
    top_loser: CoinRecord
    count: int = Field(ge=1)


class CoinRow(BaseModel):
    """A single table row, ready for display."""

    id: str
    rank: int
    name: str
    symbol: str
    image: Optional[str] = None
    price: str
    price_updated: bool = False
    change: str
    direction: Literal["positive", "negative"]
    market_cap: str
    volume: str


class MoverView(BaseModel):
    name: str
    change: str


class SummaryView(BaseModel):
    top_gainer: MoverView
    top_loser: MoverView
    count: int


class TrackerView(BaseModel):
    """Everything a client needs to draw the tracker page."""

    rows: List[CoinRow]
    summary: Optional[SummaryView] = None
    search_term: str = ""
    last_updated: Optional[str] = None
    error: Optional[str] = None
    loading: bool = False
    message: Optional[str] = None


class SearchRequest(BaseModel):
    term: str = ""


class VisibilityRequest(BaseModel):
    state: Literal["hidden", "visible"]
