from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from crypto_tracker.schemas.market import CoinRecord, MarketSummary


@dataclass
class TrackerState:
    """
    The tracker's only mutable state.

    ``data_set`` is replaced wholesale on every successful fetch. ``filtered_set``
    is derived from it and the search term, and is the same list object when the
    term is empty. ``price_history`` maps coin id to the price shown by the
    previous render and is never pruned.
    """

    data_set: List[CoinRecord] = field(default_factory=list)
    filtered_set: List[CoinRecord] = field(default_factory=list)
    search_term: str = ""
    price_history: Dict[str, Optional[float]] = field(default_factory=dict)
    summary: Optional[MarketSummary] = None
    last_updated: Optional[datetime] = None
    error: Optional[str] = None
    loading: bool = True
