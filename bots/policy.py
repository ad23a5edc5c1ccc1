"""Bot decision policy: universe restriction, trends, personality dispatch.

``decide`` is the single entry point the scheduler calls. It produces at most
one order per invocation and never touches the store.
"""

from __future__ import annotations

import logging
import random
from typing import Iterable, Mapping

from bots.base import DecisionContext, RandomSource
from bots.registry import get_policy
from bots.trends import trends_for
from market.hours import now_ms as _current_ms
from models.account import Account, BotPersonality
from models.config import DEFAULT_CREWS
from models.market import MarketState
from models.order import Order

logger = logging.getLogger(__name__)

_default_rng = random.Random()


def tradable_universe(
    account: Account,
    market: MarketState,
    ticker_universe: Iterable[str],
    crews: Mapping[str, list[str]] | None = None,
) -> list[str]:
    """Tickers this account may trade: quoted, and within its crew if it has one.

    A crew id missing from *crews* leaves the universe unrestricted.
    """
    available = [t for t in ticker_universe if market.prices.get(t, 0.0) > 0]
    if not account.bot_crew:
        return available

    crews = DEFAULT_CREWS if crews is None else crews
    members = crews.get(account.bot_crew)
    if members is None:
        logger.debug("Unknown crew '%s'; using the full universe.", account.bot_crew)
        return available
    allowed = set(members)
    return [t for t in available if t in allowed]


def decide(
    account: Account,
    market: MarketState,
    ticker_universe: Iterable[str],
    is_boosted_day: bool = False,
    rng: RandomSource | None = None,
    now_ms: int | None = None,
    crews: Mapping[str, list[str]] | None = None,
    lookback_minutes: float = 60,
) -> Order:
    """Return the order *account* places this round (possibly HOLD).

    ``rng`` defaults to a process-wide ``random.Random``; pass a seeded one
    for reproducible decisions.
    """
    tickers = tradable_universe(account, market, ticker_universe, crews)
    if not tickers:
        return Order.hold()

    if now_ms is None:
        now_ms = _current_ms()
    ctx = DecisionContext(
        account=account,
        market=market,
        tickers=tickers,
        is_boosted_day=is_boosted_day,
        rng=rng if rng is not None else _default_rng,
        now_ms=now_ms,
        trends=trends_for(market, tickers, lookback_minutes, now_ms),
    )

    personality = account.bot_personality or BotPersonality.BALANCED
    return get_policy(personality).decide(ctx)
