"""Account (trader) models: cash, holdings, cost basis and trade log."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BeforeValidator, Field, PlainSerializer, field_validator

from models.document import StoredDocument


def _to_decimal(value: Any) -> Any:
    # Floats go through their repr so 0.1 stays Decimal("0.1").
    if isinstance(value, float):
        return Decimal(str(value))
    return value


# Exact in memory, a plain JSON number in stored documents.
Money = Annotated[
    Decimal,
    BeforeValidator(_to_decimal),
    PlainSerializer(float, return_type=float, when_used="json"),
]


class BotPersonality(str, Enum):
    """Closed set of trading policies a bot account can run."""

    MARKET_FOLLOWER = "market_follower"
    MOMENTUM = "momentum"
    CONTRARIAN = "contrarian"
    HODLER = "hodler"
    DAYTRADER = "daytrader"
    RANDOM = "random"
    PANIC = "panic"
    SWING = "swing"
    BALANCED = "balanced"

    @classmethod
    def _missing_(cls, value: object) -> BotPersonality | None:
        # Unrecognised tags trade with the balanced policy.
        if isinstance(value, str):
            return cls.BALANCED
        return None


class TradeRecord(StoredDocument):
    """One entry of an account's bounded transaction log."""

    type: Literal["BUY", "SELL"]
    ticker: str
    shares: int
    price_per_share: Money
    total_cost: Money | None = None  # BUY only
    total_revenue: Money | None = None  # SELL only
    cash_before: Money
    cash_after: Money
    portfolio_after: Money
    timestamp: int  # Epoch milliseconds


class Account(StoredDocument):
    """Per-trader record. Human and bot accounts share the same shape.

    ``cost_basis`` is informational; settlement never reads it to decide
    whether a trade is allowed.
    """

    display_name: str = ""
    cash: Money = Field(default=Decimal("0"), ge=0)
    holdings: dict[str, int] = Field(default_factory=dict)
    cost_basis: dict[str, Money] = Field(default_factory=dict)
    transaction_log: list[TradeRecord] = Field(default_factory=list)
    total_trades: int = Field(default=0, ge=0)
    portfolio_value: Money = Decimal("0")
    is_bot: bool = False
    bot_personality: BotPersonality | None = None
    bot_crew: str | None = None

    @field_validator("holdings", mode="before")
    @classmethod
    def _flatten_legacy_positions(cls, value: Any) -> Any:
        # Older documents store a position as {"shares": n}.
        if isinstance(value, dict):
            return {
                ticker: qty.get("shares", 0) if isinstance(qty, dict) else qty
                for ticker, qty in value.items()
            }
        return value

    def shares_of(self, ticker: str) -> int:
        return self.holdings.get(ticker, 0)

    def held_tickers(self) -> list[str]:
        """Tickers with a strictly positive position."""
        return [t for t, qty in self.holdings.items() if qty > 0]

    def holdings_value(self, prices: dict[str, float]) -> Decimal:
        return sum(
            (Decimal(str(prices.get(t, 0.0))) * qty for t, qty in self.holdings.items()),
            Decimal("0"),
        )
