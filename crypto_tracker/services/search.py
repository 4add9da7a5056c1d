from __future__ import annotations

from typing import List

from crypto_tracker.schemas.market import CoinRecord


def normalize_term(term: str | None) -> str:
    return (term or "").strip().lower()


def apply_filter(data_set: List[CoinRecord], term: str | None) -> List[CoinRecord]:
    """
    Case-insensitive substring match on name or symbol.
    An empty term returns ``data_set`` itself, not a copy.
    """
    needle = normalize_term(term)
    if not needle:
        return data_set

    return [
        coin
        for coin in data_set
        if needle in coin.name.lower() or needle in coin.symbol.lower()
    ]
