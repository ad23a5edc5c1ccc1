"""Percent price change over a lookback window, read from market history."""

from __future__ import annotations

from typing import Iterable, Sequence

from market.hours import now_ms as _current_ms
from models.market import MarketState, PricePoint

_MS_PER_MINUTE = 60 * 1000


def price_trend(
    history: Sequence[PricePoint],
    lookback_minutes: float = 60,
    now_ms: int | None = None,
) -> float:
    """Percent change from the price at ``now - lookback`` to the latest price.

    Scans backward for the newest point at or before the cutoff. If every
    point is newer than the cutoff, the oldest point is the baseline. Fewer
    than two points means no trend (0.0).
    """
    if len(history) < 2:
        return 0.0
    if now_ms is None:
        now_ms = _current_ms()
    cutoff = now_ms - lookback_minutes * _MS_PER_MINUTE

    old_price = history[0].price
    for point in reversed(history):
        if point.timestamp <= cutoff:
            old_price = point.price
            break

    if old_price <= 0:
        return 0.0
    current = history[-1].price
    return (current - old_price) / old_price * 100


def trends_for(
    market: MarketState,
    tickers: Iterable[str],
    lookback_minutes: float = 60,
    now_ms: int | None = None,
) -> dict[str, float]:
    """``price_trend`` for each ticker in *tickers*."""
    if now_ms is None:
        now_ms = _current_ms()
    return {
        t: price_trend(market.price_history.get(t, []), lookback_minutes, now_ms)
        for t in tickers
    }
