"""Order and settlement-result models."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, model_validator

from models.account import TradeRecord


class OrderAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class Order(BaseModel):
    """Buy/sell/hold decided by a bot. HOLD carries no ticker or shares."""

    action: OrderAction
    ticker: str | None = None
    shares: int = 0

    @model_validator(mode="after")
    def _check_fields(self) -> Order:
        if self.action is OrderAction.HOLD:
            if self.ticker is not None or self.shares != 0:
                raise ValueError("HOLD orders carry no ticker or shares.")
        else:
            if not self.ticker:
                raise ValueError(f"{self.action.value} orders require a ticker.")
            if self.shares < 1:
                raise ValueError(
                    f"{self.action.value} orders require a positive share count, got {self.shares}."
                )
        return self

    @classmethod
    def hold(cls) -> Order:
        return cls(action=OrderAction.HOLD)

    @classmethod
    def buy(cls, ticker: str, shares: int) -> Order:
        return cls(action=OrderAction.BUY, ticker=ticker, shares=shares)

    @classmethod
    def sell(cls, ticker: str, shares: int) -> Order:
        return cls(action=OrderAction.SELL, ticker=ticker, shares=shares)

    @property
    def is_hold(self) -> bool:
        return self.action is OrderAction.HOLD


RejectReason = Literal[
    "hold",
    "market_halted",
    "account_not_found",
    "missing_price",
    "insufficient_funds",
    "insufficient_shares",
    "conflict",
]


class SettlementResult(BaseModel):
    """Outcome of one settlement attempt.

    Either both the account and the market advanced (``applied``) or neither
    did; ``reason`` explains a no-op.
    """

    applied: bool
    reason: RejectReason | None = None
    message: str = ""
    trade: TradeRecord | None = None
    new_price: float | None = None
