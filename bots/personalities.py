"""Built-in bot personalities.

Trend thresholds are percent changes (``1.0`` means +1%). Each policy makes
its random draws in a fixed order so a seeded ``random.Random`` reproduces a
decision exactly.
"""

from __future__ import annotations

from bots.base import DecisionContext, PersonalityPolicy
from bots.registry import register
from models.account import BotPersonality
from models.order import Order

TOP_N = 10


def _top(tickers: list[str], trends: dict[str, float], descending: bool) -> list[str]:
    ranked = sorted(tickers, key=lambda t: trends[t], reverse=descending)
    return ranked[:TOP_N]


@register(BotPersonality.MARKET_FOLLOWER)
class MarketFollower(PersonalityPolicy):
    """Amplifies whatever the market is already doing.

    Reads a long window (12h, or 6h on boosted days), dumps falling positions
    and otherwise buys: 40% from the top risers, 30% from anything that moved,
    30% from the whole universe.
    """

    FALL_THRESHOLD = -0.5
    RISE_THRESHOLD = 0.5
    MAX_BUY = 15

    def decide(self, ctx: DecisionContext) -> Order:
        lookback = 360 if ctx.is_boosted_day else 720
        aggression = 1.5 if ctx.is_boosted_day else 1.0
        short = ctx.trends_over(lookback)

        falling = sorted(
            (t for t in ctx.held() if short[t] < self.FALL_THRESHOLD),
            key=lambda t: short[t],
        )
        if falling and ctx.rng.random() > 0.2:
            fraction = min(0.9, ctx.rng.uniform(0.4, 0.7) * aggression)
            return ctx.sell(falling[0], fraction)

        if ctx.cash > 30:
            risers = _top([t for t in ctx.tickers if short[t] > self.RISE_THRESHOLD], short, descending=True)
            movers = [t for t in ctx.tickers if short[t] != 0]

            bucket = ctx.rng.random()
            if bucket < 0.4 and risers:
                candidates = risers
            elif bucket < 0.7 and movers:
                candidates = movers
            else:
                candidates = ctx.tickers
            ticker = ctx.rng.choice(candidates)
            fraction = min(0.6, ctx.rng.uniform(0.25, 0.5) * aggression)
            return ctx.buy(ticker, fraction, self.MAX_BUY)

        return Order.hold()


@register(BotPersonality.MOMENTUM)
class Momentum(PersonalityPolicy):
    """Buys what is rising, sells what is falling."""

    THRESHOLD = 1.0
    MAX_BUY = 10

    def decide(self, ctx: DecisionContext) -> Order:
        falling = [t for t in ctx.held() if ctx.trends[t] < -self.THRESHOLD]
        if falling and ctx.rng.random() > 0.3:
            ticker = ctx.rng.choice(falling)
            return ctx.sell(ticker, ctx.rng.uniform(0.3, 0.7))

        risers = _top([t for t in ctx.tickers if ctx.trends[t] > self.THRESHOLD], ctx.trends, descending=True)
        if risers and ctx.cash > 50:
            ticker = ctx.rng.choice(risers)
            return ctx.buy(ticker, ctx.rng.uniform(0.2, 0.5), self.MAX_BUY)

        return Order.hold()


@register(BotPersonality.CONTRARIAN)
class Contrarian(PersonalityPolicy):
    """Takes profit on peaks and buys the dips."""

    THRESHOLD = 1.5
    MAX_BUY = 15

    def decide(self, ctx: DecisionContext) -> Order:
        peaks = [t for t in ctx.held() if ctx.trends[t] > self.THRESHOLD]
        if peaks and ctx.rng.random() > 0.4:
            ticker = ctx.rng.choice(peaks)
            return ctx.sell(ticker, ctx.rng.uniform(0.4, 0.8))

        dips = _top([t for t in ctx.tickers if ctx.trends[t] < -self.THRESHOLD], ctx.trends, descending=False)
        if dips and ctx.cash > 50:
            ticker = ctx.rng.choice(dips)
            return ctx.buy(ticker, ctx.rng.uniform(0.3, 0.6), self.MAX_BUY)

        return Order.hold()


@register(BotPersonality.HODLER)
class Hodler(PersonalityPolicy):
    """Mostly idle; rarely trims a large position, otherwise buys small."""

    IDLE_PROBABILITY = 0.9
    TRIM_PROBABILITY = 0.2
    TRIM_MIN_SHARES = 10
    TRIM_FRACTION = 0.2
    MAX_BUY = 8

    def decide(self, ctx: DecisionContext) -> Order:
        if ctx.rng.random() < self.IDLE_PROBABILITY:
            return Order.hold()

        large = [t for t in ctx.held() if ctx.account.shares_of(t) > self.TRIM_MIN_SHARES]
        if large and ctx.rng.random() < self.TRIM_PROBABILITY:
            ticker = ctx.rng.choice(large)
            return ctx.sell(ticker, self.TRIM_FRACTION)

        if ctx.cash > 100:
            ticker = ctx.rng.choice(ctx.tickers)
            return ctx.buy(ticker, ctx.rng.uniform(0.15, 0.3), self.MAX_BUY)

        return Order.hold()


@register(BotPersonality.DAYTRADER)
class Daytrader(PersonalityPolicy):
    """Frequent small round trips."""

    MAX_SHARES = 5

    def decide(self, ctx: DecisionContext) -> Order:
        held = ctx.held()
        if held and ctx.rng.random() > 0.5:
            ticker = ctx.rng.choice(held)
            return ctx.sell(ticker, ctx.rng.uniform(0.5, 1.0), cap=self.MAX_SHARES)

        if ctx.cash > 30:
            ticker = ctx.rng.choice(ctx.tickers)
            return ctx.buy(ticker, 0.1, self.MAX_SHARES)

        return Order.hold()


@register(BotPersonality.RANDOM)
class RandomTrader(PersonalityPolicy):
    """Random side, ticker and size, bounded only by what it can afford."""

    MAX_BUY = 12

    def decide(self, ctx: DecisionContext) -> Order:
        held = ctx.held()
        if held and ctx.rng.random() > 0.6:
            ticker = ctx.rng.choice(held)
            return ctx.sell(ticker, ctx.rng.random())

        if ctx.cash > 50:
            ticker = ctx.rng.choice(ctx.tickers)
            return ctx.buy(ticker, ctx.rng.uniform(0.0, 0.5), self.MAX_BUY)

        return Order.hold()


@register(BotPersonality.PANIC)
class Panic(PersonalityPolicy):
    """Dumps the worst falling holding immediately; buys only occasionally."""

    THRESHOLD = 1.0
    MAX_BUY = 6

    def decide(self, ctx: DecisionContext) -> Order:
        falling = sorted(
            (t for t in ctx.held() if ctx.trends[t] < -self.THRESHOLD),
            key=lambda t: ctx.trends[t],
        )
        if falling:
            return ctx.sell(falling[0], ctx.rng.uniform(0.5, 0.9))

        if ctx.cash > 80 and ctx.rng.random() > 0.7:
            ticker = ctx.rng.choice(ctx.tickers)
            return ctx.buy(ticker, 0.15, self.MAX_BUY)

        return Order.hold()


@register(BotPersonality.SWING, BotPersonality.BALANCED)
class Balanced(PersonalityPolicy):
    """Moderate, randomly biased buying and selling."""

    MAX_BUY = 10

    def decide(self, ctx: DecisionContext) -> Order:
        held = ctx.held()
        if held and ctx.rng.random() > 0.55:
            ticker = ctx.rng.choice(held)
            return ctx.sell(ticker, ctx.rng.uniform(0.3, 0.6))

        if ctx.cash > 70:
            ticker = ctx.rng.choice(ctx.tickers)
            return ctx.buy(ticker, ctx.rng.uniform(0.2, 0.4), self.MAX_BUY)

        return Order.hold()
