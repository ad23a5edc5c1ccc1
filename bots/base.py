"""Base class and shared decision context for bot personalities.

Every personality implements ``PersonalityPolicy.decide`` over the same
``DecisionContext`` so the dispatcher in ``bots.policy`` can invoke them
interchangeably. Policies are stateless: everything they remember lives in
the account and market documents.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Protocol, Sequence, TypeVar

from bots.trends import trends_for
from models.account import Account
from models.market import MarketState
from models.order import Order

T = TypeVar("T")


class RandomSource(Protocol):
    """The draws a policy may make. ``random.Random`` satisfies this."""

    def random(self) -> float: ...

    def uniform(self, a: float, b: float) -> float: ...

    def choice(self, seq: Sequence[T]) -> T: ...


@dataclass
class DecisionContext:
    """Everything one personality needs to produce an order.

    ``tickers`` is the bot's tradable universe (already crew-restricted and
    limited to quoted tickers); ``trends`` holds the default-lookback trend
    for each of them.
    """

    account: Account
    market: MarketState
    tickers: list[str]
    is_boosted_day: bool
    rng: RandomSource
    now_ms: int
    trends: dict[str, float] = field(default_factory=dict)

    @property
    def cash(self) -> float:
        return float(self.account.cash)

    def price(self, ticker: str) -> float:
        return self.market.prices.get(ticker, 0.0)

    def held(self) -> list[str]:
        """Tradable tickers the account holds a positive position in."""
        universe = set(self.tickers)
        return [t for t in self.account.held_tickers() if t in universe]

    def trends_over(self, lookback_minutes: float) -> dict[str, float]:
        """Trend of every tradable ticker over a non-default lookback."""
        return trends_for(self.market, self.tickers, lookback_minutes, self.now_ms)

    # ------------------------------------------------------------------
    # Sizing
    # ------------------------------------------------------------------

    def buy_shares(self, ticker: str, fraction: float, cap: int) -> int:
        """Shares to buy spending about *fraction* of cash, at most *cap*.

        Returns 0 when cash does not cover a single share.
        """
        price = self.price(ticker)
        if price <= 0 or self.cash < price:
            return 0
        max_shares = math.floor(self.cash * fraction / price)
        return min(cap, max(1, max_shares))

    def sell_shares(self, ticker: str, fraction: float) -> int:
        """``ceil(held * fraction)``, kept within ``[1, held]``."""
        held = self.account.shares_of(ticker)
        if held <= 0:
            return 0
        return max(1, min(held, math.ceil(held * fraction)))

    def buy(self, ticker: str, fraction: float, cap: int) -> Order:
        shares = self.buy_shares(ticker, fraction, cap)
        if shares <= 0:
            return Order.hold()
        return Order.buy(ticker, shares)

    def sell(self, ticker: str, fraction: float, cap: int | None = None) -> Order:
        shares = self.sell_shares(ticker, fraction)
        if cap is not None:
            shares = min(cap, shares)
        if shares <= 0:
            return Order.hold()
        return Order.sell(ticker, shares)


class PersonalityPolicy(ABC):
    """Common interface for the bot personalities."""

    @abstractmethod
    def decide(self, ctx: DecisionContext) -> Order:
        """Return at most one order for this invocation (HOLD if nothing fires)."""
