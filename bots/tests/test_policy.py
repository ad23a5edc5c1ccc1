"""Tests for the bot decision policy and the built-in personalities.

Branch tests drive policies with ``ScriptedRandom`` so every gate, sizing
fraction and ticker pick is explicit; property tests use seeded
``random.Random`` instances.
"""

import random

import pytest

from bots.personalities import Balanced
from bots.policy import decide, tradable_universe
from bots.registry import get_policy, registered_personalities
from models.account import Account, BotPersonality
from models.market import MarketState, PricePoint
from models.order import Order, OrderAction

MINUTE = 60_000
NOW = 1_750_000_000_000


class ScriptedRandom:
    """Deterministic stand-in for ``random.Random``.

    ``random()`` pops the next scripted draw; ``uniform`` maps a draw onto
    its range; ``choice`` always picks index ``pick`` (clamped).
    """

    def __init__(self, draws=(), pick=0):
        self._draws = list(draws)
        self.pick = pick

    def random(self):
        if not self._draws:
            raise AssertionError("Policy made more random draws than scripted.")
        return self._draws.pop(0)

    def uniform(self, a, b):
        return a + (b - a) * self.random()

    def choice(self, seq):
        return seq[min(self.pick, len(seq) - 1)]

    @property
    def exhausted(self):
        return not self._draws


def _market(quotes: dict) -> MarketState:
    """Build a market from ``{ticker: (current_price, pct_change)}``.

    The baseline point is 800 minutes old, so both the default and the long
    market-follower lookbacks see the same percent change.
    """
    prices, history = {}, {}
    for ticker, (price, pct) in quotes.items():
        base = price / (1 + pct / 100)
        prices[ticker] = price
        history[ticker] = [
            PricePoint(timestamp=NOW - 800 * MINUTE, price=base),
            PricePoint(timestamp=NOW, price=price),
        ]
    return MarketState(prices=prices, price_history=history)


def _bot(personality, cash=1000.0, holdings=None, crew=None) -> Account:
    return Account(
        display_name="bot",
        cash=cash,
        holdings=holdings or {},
        is_bot=True,
        bot_personality=personality,
        bot_crew=crew,
    )


def _decide(account, market, rng, boosted=False):
    return decide(account, market, market.tickers, boosted, rng=rng, now_ms=NOW)


# ---------------------------------------------------------------
# Registry and dispatch
# ---------------------------------------------------------------

class TestRegistry:
    def test_every_personality_has_a_policy(self):
        assert set(registered_personalities()) == set(BotPersonality)

    def test_swing_and_balanced_share_a_policy(self):
        assert isinstance(get_policy(BotPersonality.SWING), Balanced)
        assert isinstance(get_policy(BotPersonality.BALANCED), Balanced)

    def test_unknown_personality_tag_trades_balanced(self):
        account = Account.model_validate({"cash": 10, "bot_personality": "yolo"})
        assert account.bot_personality is BotPersonality.BALANCED

    def test_missing_personality_uses_balanced(self):
        account = _bot(None, cash=1000.0)
        market = _market({"A": (10.0, 0.0)})
        # Balanced: no holdings, so no sell gate; one draw for sizing.
        order = _decide(account, market, ScriptedRandom([0.0]))
        assert order == Order.buy("A", 10)


# ---------------------------------------------------------------
# Universe restriction
# ---------------------------------------------------------------

class TestUniverse:
    def test_crew_restricts_universe(self):
        market = _market({"JAKE": (10.0, 0.0), "ELI": (10.0, 0.0)})
        account = _bot(BotPersonality.RANDOM, crew="BIG_DEAL")
        assert tradable_universe(account, market, market.tickers) == ["JAKE"]

    def test_unknown_crew_uses_full_universe(self):
        market = _market({"JAKE": (10.0, 0.0), "ELI": (10.0, 0.0)})
        account = _bot(BotPersonality.RANDOM, crew="NOT_A_CREW")
        assert tradable_universe(account, market, market.tickers) == ["JAKE", "ELI"]

    def test_custom_crews(self):
        market = _market({"JAKE": (10.0, 0.0), "ELI": (10.0, 0.0)})
        account = _bot(BotPersonality.RANDOM, crew="MINE")
        assert tradable_universe(account, market, market.tickers, {"MINE": ["ELI"]}) == ["ELI"]

    def test_unquoted_tickers_are_excluded(self):
        market = MarketState(prices={"A": 10.0, "B": 0.0})
        assert tradable_universe(_bot(BotPersonality.RANDOM), market, ["A", "B", "C"]) == ["A"]

    @pytest.mark.parametrize("personality", list(BotPersonality))
    def test_empty_crew_intersection_always_holds(self, personality):
        market = _market({"JAKE": (10.0, 5.0), "ELI": (10.0, -5.0)})
        account = _bot(personality, holdings={"JAKE": 10}, crew="GOD_DOG")
        for seed in range(25):
            assert _decide(account, market, random.Random(seed)).is_hold


# ---------------------------------------------------------------
# Personalities
# ---------------------------------------------------------------

class TestMomentum:
    def test_sells_falling_holding(self):
        market = _market({"A": (95.0, -5.0), "B": (10.0, 0.0)})
        account = _bot(BotPersonality.MOMENTUM, holdings={"A": 10})
        rng = ScriptedRandom([0.9, 0.5])  # gate passes; fraction 0.5
        assert _decide(account, market, rng) == Order.sell("A", 5)
        assert rng.exhausted

    def test_gate_can_skip_sell_and_buy_riser(self):
        market = _market({"A": (95.0, -5.0), "B": (10.0, 10.0)})
        account = _bot(BotPersonality.MOMENTUM, holdings={"A": 10})
        rng = ScriptedRandom([0.1, 0.0])  # gate fails; fraction 0.2
        # floor(1000 * 0.2 / 10) = 20, capped at 10
        assert _decide(account, market, rng) == Order.buy("B", 10)

    def test_small_moves_hold(self):
        market = _market({"A": (10.0, 0.5), "B": (10.0, -0.5)})
        account = _bot(BotPersonality.MOMENTUM, holdings={"B": 4})
        assert _decide(account, market, ScriptedRandom([])).is_hold


class TestContrarian:
    def test_buys_the_dip(self):
        market = _market({"C": (20.0, -5.0), "D": (20.0, -2.0), "E": (20.0, 3.0)})
        account = _bot(BotPersonality.CONTRARIAN, cash=100.0)
        rng = ScriptedRandom([1.0])  # fraction 0.6
        # Top decliners ranked ascending: C first. floor(100 * 0.6 / 20) = 3
        assert _decide(account, market, rng) == Order.buy("C", 3)

    def test_takes_profit_on_peaks(self):
        market = _market({"E": (20.0, 3.0)})
        account = _bot(BotPersonality.CONTRARIAN, holdings={"E": 9})
        rng = ScriptedRandom([0.5, 0.0])  # gate > 0.4; fraction 0.4
        assert _decide(account, market, rng) == Order.sell("E", 4)


class TestHodler:
    def test_mostly_idle(self):
        market = _market({"A": (10.0, 0.0)})
        rng = ScriptedRandom([0.5])
        assert _decide(_bot(BotPersonality.HODLER), market, rng).is_hold
        assert rng.exhausted

    def test_rarely_trims_large_position(self):
        market = _market({"A": (10.0, 0.0)})
        account = _bot(BotPersonality.HODLER, holdings={"A": 20})
        rng = ScriptedRandom([0.95, 0.1])
        assert _decide(account, market, rng) == Order.sell("A", 4)

    def test_buys_small(self):
        market = _market({"A": (10.0, 0.0)})
        account = _bot(BotPersonality.HODLER, cash=1000.0, holdings={"A": 5})
        rng = ScriptedRandom([0.95, 0.0])  # fraction 0.15 -> 15 shares, capped at 8
        assert _decide(account, market, rng) == Order.buy("A", 8)

    def test_needs_cash_to_buy(self):
        market = _market({"A": (10.0, 0.0)})
        rng = ScriptedRandom([0.95])
        assert _decide(_bot(BotPersonality.HODLER, cash=100.0), market, rng).is_hold


class TestDaytrader:
    def test_sells_at_most_five(self):
        market = _market({"A": (10.0, 0.0)})
        account = _bot(BotPersonality.DAYTRADER, holdings={"A": 40})
        rng = ScriptedRandom([0.9, 0.0])
        assert _decide(account, market, rng) == Order.sell("A", 5)

    def test_buy_floors_at_one_share(self):
        market = _market({"A": (30.0, 0.0)})
        account = _bot(BotPersonality.DAYTRADER, cash=35.0)
        # floor(35 * 0.1 / 30) = 0 -> one share since cash covers it
        assert _decide(account, market, ScriptedRandom([])) == Order.buy("A", 1)

    def test_unaffordable_buy_holds(self):
        market = _market({"A": (40.0, 0.0)})
        account = _bot(BotPersonality.DAYTRADER, cash=31.0)
        assert _decide(account, market, ScriptedRandom([])).is_hold


class TestPanic:
    def test_sells_worst_faller_without_gate(self):
        market = _market({"A": (10.0, -2.0), "B": (10.0, -8.0)})
        account = _bot(BotPersonality.PANIC, holdings={"A": 10, "B": 10})
        rng = ScriptedRandom([0.0])  # only the sizing draw
        assert _decide(account, market, rng) == Order.sell("B", 5)

    def test_buy_fallback_is_gated(self):
        market = _market({"A": (10.0, 0.0)})
        account = _bot(BotPersonality.PANIC, cash=100.0)
        assert _decide(account, market, ScriptedRandom([0.5])).is_hold
        # 0.8 passes the gate; floor(100 * 0.15 / 10) = 1
        assert _decide(account, market, ScriptedRandom([0.8])) == Order.buy("A", 1)


class TestMarketFollower:
    def test_boosted_day_sells_more(self):
        market = _market({"A": (10.0, -5.0)})
        account = _bot(BotPersonality.MARKET_FOLLOWER, holdings={"A": 10})
        normal = _decide(account, market, ScriptedRandom([0.5, 0.5]), boosted=False)
        boosted = _decide(account, market, ScriptedRandom([0.5, 0.5]), boosted=True)
        assert normal == Order.sell("A", 6)  # ceil(10 * 0.55)
        assert boosted == Order.sell("A", 9)  # ceil(10 * 0.55 * 1.5)

    def test_buys_from_top_risers(self):
        market = _market({"A": (10.0, 1.0), "B": (10.0, 4.0), "C": (10.0, -3.0)})
        account = _bot(BotPersonality.MARKET_FOLLOWER, cash=1000.0)
        rng = ScriptedRandom([0.1, 0.0])  # riser bucket; cash fraction 0.25
        # Risers ranked descending: B first. floor(1000 * 0.25 / 10) = 25, capped at 15
        assert _decide(account, market, rng) == Order.buy("B", 15)

    def test_mover_bucket(self):
        market = _market({"A": (10.0, 0.0), "C": (10.0, -3.0)})
        account = _bot(BotPersonality.MARKET_FOLLOWER, cash=100.0)
        rng = ScriptedRandom([0.5, 0.0])
        # No risers; C is the only mover. floor(100 * 0.25 / 10) = 2
        assert _decide(account, market, rng) == Order.buy("C", 2)

    def test_too_little_cash_holds(self):
        market = _market({"A": (10.0, 3.0)})
        account = _bot(BotPersonality.MARKET_FOLLOWER, cash=30.0)
        assert _decide(account, market, ScriptedRandom([])).is_hold


class TestRandomTrader:
    def test_gate_passes_sells_random_fraction(self):
        market = _market({"A": (10.0, 0.0)})
        account = _bot(BotPersonality.RANDOM, holdings={"A": 10})
        rng = ScriptedRandom([0.7, 0.35])
        # ceil(10 * 0.35) = 4
        assert _decide(account, market, rng) == Order.sell("A", 4)
        assert rng.exhausted

    def test_gate_is_strict(self):
        market = _market({"A": (10.0, 0.0)})
        account = _bot(BotPersonality.RANDOM, cash=100.0, holdings={"A": 10})
        # 0.6 does not pass the sell gate; uniform(0, 0.5) = 0.2 -> floor(100 * 0.2 / 10) = 2
        assert _decide(account, market, ScriptedRandom([0.6, 0.4])) == Order.buy("A", 2)

    def test_buy_capped_at_twelve(self):
        market = _market({"A": (10.0, 0.0)})
        account = _bot(BotPersonality.RANDOM, cash=1000.0)
        # Nothing held, so no gate draw. floor(1000 * 0.5 / 10) = 50 -> 12
        assert _decide(account, market, ScriptedRandom([1.0])) == Order.buy("A", 12)

    def test_failed_gate_falls_through_to_buy(self):
        market = _market({"A": (10.0, 0.0)})
        account = _bot(BotPersonality.RANDOM, cash=1000.0, holdings={"A": 10})
        assert _decide(account, market, ScriptedRandom([0.5, 1.0])) == Order.buy("A", 12)

    def test_buy_needs_more_than_fifty_cash(self):
        market = _market({"A": (10.0, 0.0)})
        assert _decide(_bot(BotPersonality.RANDOM, cash=50.0), market, ScriptedRandom([])).is_hold
        held = _bot(BotPersonality.RANDOM, cash=50.0, holdings={"A": 3})
        assert _decide(held, market, ScriptedRandom([0.3])).is_hold


class TestBalanced:
    @pytest.mark.parametrize("personality", [BotPersonality.SWING, BotPersonality.BALANCED])
    def test_gate_passes_sells_between_thirty_and_sixty_percent(self, personality):
        market = _market({"A": (10.0, 0.0)})
        account = _bot(personality, holdings={"A": 4})
        # uniform(0.3, 0.6) at its low end: ceil(4 * 0.3) = 2
        assert _decide(account, market, ScriptedRandom([0.6, 0.0])) == Order.sell("A", 2)
        # and at its high end: ceil(4 * 0.6) = 3
        assert _decide(account, market, ScriptedRandom([0.6, 1.0])) == Order.sell("A", 3)

    @pytest.mark.parametrize("personality", [BotPersonality.SWING, BotPersonality.BALANCED])
    def test_failed_gate_buys_capped_at_ten(self, personality):
        market = _market({"A": (10.0, 0.0)})
        account = _bot(personality, cash=1000.0, holdings={"A": 4})
        # 0.55 does not pass the gate; floor(1000 * 0.4 / 10) = 40 -> 10
        assert _decide(account, market, ScriptedRandom([0.55, 1.0])) == Order.buy("A", 10)

    @pytest.mark.parametrize("personality", [BotPersonality.SWING, BotPersonality.BALANCED])
    def test_buy_below_cap(self, personality):
        market = _market({"A": (10.0, 0.0)})
        account = _bot(personality, cash=200.0)
        # uniform(0.2, 0.4) at its low end: floor(200 * 0.2 / 10) = 4
        assert _decide(account, market, ScriptedRandom([0.0])) == Order.buy("A", 4)

    @pytest.mark.parametrize("personality", [BotPersonality.SWING, BotPersonality.BALANCED])
    def test_buy_needs_more_than_seventy_cash(self, personality):
        market = _market({"A": (10.0, 0.0)})
        assert _decide(_bot(personality, cash=70.0), market, ScriptedRandom([])).is_hold


# ---------------------------------------------------------------
# Properties over seeded randomness
# ---------------------------------------------------------------

class TestOrderProperties:
    @pytest.mark.parametrize("personality", list(BotPersonality))
    def test_orders_are_affordable_and_covered(self, personality):
        market = _market({"A": (12.0, 4.0), "B": (55.0, -6.0), "C": (3.5, 0.2), "D": (80.0, 2.5)})
        account = _bot(personality, cash=400.0, holdings={"A": 7, "B": 13, "D": 1})
        for seed in range(200):
            order = _decide(account, market, random.Random(seed), boosted=seed % 2 == 0)
            if order.action is OrderAction.BUY:
                assert 1 <= order.shares
                assert order.shares * market.prices[order.ticker] <= account.cash
            elif order.action is OrderAction.SELL:
                assert 1 <= order.shares <= account.shares_of(order.ticker)

    def test_seeded_decisions_are_reproducible(self):
        market = _market({"A": (12.0, 4.0), "B": (55.0, -6.0)})
        account = _bot(BotPersonality.RANDOM, cash=400.0, holdings={"A": 7})
        first = [_decide(account, market, random.Random(seed)) for seed in range(20)]
        second = [_decide(account, market, random.Random(seed)) for seed in range(20)]
        assert first == second
