"""Shared market record models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from models.document import StoredDocument


class PricePoint(BaseModel):
    """One entry of a ticker's price history."""

    timestamp: int  # Epoch milliseconds
    price: float


class MarketState(StoredDocument):
    """The single shared market document: quotes, history and halt flag.

    Every trade rewrites ``prices[ticker]`` and appends the same price to
    ``price_history[ticker]``, so the last history point always matches the
    quote after a successful trade.
    """

    prices: dict[str, float] = Field(default_factory=dict)
    price_history: dict[str, list[PricePoint]] = Field(default_factory=dict)
    market_halted: bool = False

    @property
    def tickers(self) -> list[str]:
        """Quoted tickers, in document order."""
        return list(self.prices.keys())

    def last_timestamp(self, ticker: str) -> int | None:
        history = self.price_history.get(ticker)
        if not history:
            return None
        return history[-1].timestamp
