from __future__ import annotations

from typing import List, Optional

from crypto_tracker.schemas.market import CoinRecord, MarketSummary


def rank_by_change(data_set: List[CoinRecord]) -> List[CoinRecord]:
    # sorted() is stable: equal changes keep their market-cap order
    return sorted(data_set, key=lambda coin: coin.change_24h, reverse=True)


def compute_summary(data_set: List[CoinRecord]) -> Optional[MarketSummary]:
    """Top gainer, top loser and count over the full data set; ``None`` when empty."""
    if not data_set:
        return None

    ranked = rank_by_change(data_set)
    return MarketSummary(
        top_gainer=ranked[0],
        top_loser=ranked[-1],
        count=len(data_set),
    )
