"""Square-root market-impact model.

``delta = price * base_impact * sqrt(shares / liquidity)``, clamped so that a
single order never moves the quote by more than ``max_price_change_percent``.
Larger orders therefore move price less per share than small ones.

Everything here is pure: identical inputs always produce identical outputs.
"""

from __future__ import annotations

import math

from models.config import EconomyConfig
from models.order import OrderAction

_DEFAULT_ECONOMY = EconomyConfig()


def price_impact(
    current_price: float,
    shares: float,
    liquidity: float | None = None,
    economy: EconomyConfig | None = None,
) -> float:
    """Return the (non-negative) price delta caused by trading *shares*.

    Raises ``ValueError`` for a non-positive price or liquidity, or a negative
    share count.
    """
    economy = economy or _DEFAULT_ECONOMY
    if liquidity is None:
        liquidity = economy.base_liquidity
    if current_price <= 0:
        raise ValueError(f"current_price must be positive, got {current_price}.")
    if liquidity <= 0:
        raise ValueError(f"liquidity must be positive, got {liquidity}.")
    if shares < 0:
        raise ValueError(f"shares must be non-negative, got {shares}.")

    delta = current_price * economy.base_impact * math.sqrt(shares / liquidity)
    return min(delta, current_price * economy.max_price_change_percent)


def apply_impact(
    current_price: float,
    delta: float,
    action: OrderAction,
    economy: EconomyConfig | None = None,
) -> float:
    """Move *current_price* by *delta* in the direction of *action*.

    The result is rounded to cents and floored at ``min_price``.
    """
    economy = economy or _DEFAULT_ECONOMY
    if action is OrderAction.BUY:
        moved = current_price + delta
    elif action is OrderAction.SELL:
        moved = current_price - delta
    else:
        raise ValueError(f"Cannot apply price impact for action {action.value}.")
    return max(economy.min_price, round(moved, 2))


def post_trade_price(
    current_price: float,
    shares: float,
    action: OrderAction,
    liquidity: float | None = None,
    economy: EconomyConfig | None = None,
) -> float:
    """Quote after a BUY or SELL of *shares* at *current_price*."""
    delta = price_impact(current_price, shares, liquidity=liquidity, economy=economy)
    return apply_impact(current_price, delta, action, economy=economy)
