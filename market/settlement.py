"""Trade settlement: the atomic unit applying one order to account and market.

Each call to ``TradeSettlement.settle`` runs one store transaction that reads
the *latest committed* account and market documents, validates the order
against them, and writes both back together. A rejected order writes nothing,
so either both ledgers advance or neither does.

Pricing rules:

* BUY fills at the pre-impact quote; the impact only moves the price seen by
  later trades.
* SELL fills at the post-impact quote.

Money is held as ``Decimal``, so ``cash_before - cash_after == total_cost``
holds exactly for any stored amounts.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable

from market.errors import TransactionAbortedError
from market.hours import now_ms
from market.pricing import apply_impact, price_impact
from market.store import DocumentStore, Transaction
from models.account import Account, TradeRecord
from models.config import EconomyConfig, SettlementConfig
from models.market import MarketState, PricePoint
from models.order import Order, OrderAction, SettlementResult

logger = logging.getLogger(__name__)

MARKET_COLLECTION = "market"
MARKET_DOC_ID = "current"
ACCOUNTS_COLLECTION = "users"


class TradeSettlement:
    """Validates and settles orders against a ``DocumentStore``.

    One instance can be shared by any number of callers; all state lives in
    the store.
    """

    def __init__(
        self,
        store: DocumentStore,
        economy: EconomyConfig | None = None,
        config: SettlementConfig | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._economy = economy or EconomyConfig()
        self._config = config or SettlementConfig()
        self._clock = clock

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def settle(self, account_id: str, order: Order) -> SettlementResult:
        """Apply *order* for *account_id*, or leave everything untouched.

        Returns a ``SettlementResult``; expected rejections (insufficient
        funds or shares, halted market) are reported, never raised. Write
        conflicts are retried by the store and reported as ``conflict`` once
        the attempt budget is spent.
        """
        if order.is_hold:
            return SettlementResult(applied=False, reason="hold", message="Hold: nothing to settle.")

        try:
            result = self._store.run_transaction(
                lambda txn: self._settle_in_transaction(txn, account_id, order),
                max_attempts=self._config.max_attempts,
            )
        except TransactionAbortedError as exc:
            logger.warning(
                "Settlement of %s %d %s for %s failed: %s",
                order.action.value,
                order.shares,
                order.ticker,
                account_id,
                exc,
            )
            return SettlementResult(applied=False, reason="conflict", message=str(exc))

        if result.applied:
            logger.info(
                "Settled %s %d %s for %s @ %.2f (new price %.2f).",
                order.action.value,
                order.shares,
                order.ticker,
                account_id,
                result.trade.price_per_share if result.trade else 0.0,
                result.new_price or 0.0,
            )
        return result

    # ------------------------------------------------------------------
    # Transaction body
    # ------------------------------------------------------------------

    def _settle_in_transaction(
        self,
        txn: Transaction,
        account_id: str,
        order: Order,
    ) -> SettlementResult:
        market_raw = txn.get(MARKET_COLLECTION, MARKET_DOC_ID)
        account_raw = txn.get(ACCOUNTS_COLLECTION, account_id)

        if market_raw is None:
            logger.warning("No market document; cannot settle order for %s.", account_id)
            return SettlementResult(applied=False, reason="missing_price", message="Market document missing.")
        market = MarketState.model_validate(market_raw)

        if market.market_halted:
            return SettlementResult(applied=False, reason="market_halted", message="Market is halted.")

        if account_raw is None:
            logger.warning("Account %s not found; skipping order.", account_id)
            return SettlementResult(
                applied=False,
                reason="account_not_found",
                message=f"Account {account_id} not found.",
            )
        account = Account.model_validate(account_raw)

        ticker = order.ticker or ""
        current_price = market.prices.get(ticker)
        if not current_price:
            logger.warning("No current price for %s; skipping order for %s.", ticker, account_id)
            return SettlementResult(
                applied=False,
                reason="missing_price",
                message=f"No current price for {ticker}.",
            )

        if order.action is OrderAction.BUY:
            outcome = self._apply_buy(account, market, ticker, order.shares, current_price)
        else:
            outcome = self._apply_sell(account, market, ticker, order.shares, current_price)

        if not outcome.applied:
            logger.debug("%s for %s not settled: %s", order.action.value, account_id, outcome.message)
            return outcome

        txn.update(ACCOUNTS_COLLECTION, account_id, account.to_document())
        txn.update(MARKET_COLLECTION, MARKET_DOC_ID, market.to_document())
        return outcome

    def _apply_buy(
        self,
        account: Account,
        market: MarketState,
        ticker: str,
        shares: int,
        current_price: float,
    ) -> SettlementResult:
        total_cost = _dec(current_price) * shares
        if account.cash < total_cost:
            return SettlementResult(
                applied=False,
                reason="insufficient_funds",
                message=(
                    f"Insufficient cash to buy {shares} {ticker} at ${current_price:.2f} "
                    f"(cost ${total_cost:.2f}, available ${account.cash:.2f})."
                ),
            )

        delta = price_impact(current_price, shares, economy=self._economy)
        new_price = apply_impact(current_price, delta, OrderAction.BUY, economy=self._economy)

        cash_before = account.cash
        account.cash = cash_before - total_cost
        account.holdings[ticker] = account.shares_of(ticker) + shares
        account.cost_basis[ticker] = account.cost_basis.get(ticker, Decimal("0")) + total_cost

        # Valued at the pre-trade quotes.
        portfolio_after = _portfolio_value(account, market)

        trade = TradeRecord(
            type="BUY",
            ticker=ticker,
            shares=shares,
            price_per_share=_dec(current_price),
            total_cost=total_cost,
            cash_before=cash_before,
            cash_after=account.cash,
            portfolio_after=portfolio_after,
            timestamp=self._record_price(market, ticker, new_price),
        )
        self._record_trade(account, trade)
        return SettlementResult(applied=True, trade=trade, new_price=new_price)

    def _apply_sell(
        self,
        account: Account,
        market: MarketState,
        ticker: str,
        shares: int,
        current_price: float,
    ) -> SettlementResult:
        held = account.shares_of(ticker)
        if held < shares:
            return SettlementResult(
                applied=False,
                reason="insufficient_shares",
                message=f"Cannot sell {shares} shares of {ticker}; only {held} held.",
            )

        delta = price_impact(current_price, shares, economy=self._economy)
        new_price = apply_impact(current_price, delta, OrderAction.SELL, economy=self._economy)
        total_revenue = _dec(new_price) * shares

        cash_before = account.cash
        account.cash = cash_before + total_revenue
        remaining = max(0, held - shares)
        basis = account.cost_basis.get(ticker)
        if remaining == 0:
            account.holdings.pop(ticker, None)
            account.cost_basis.pop(ticker, None)
        else:
            account.holdings[ticker] = remaining
            if basis is not None:
                account.cost_basis[ticker] = _cents(basis * remaining / held)

        portfolio_after = _portfolio_value(account, market)

        trade = TradeRecord(
            type="SELL",
            ticker=ticker,
            shares=shares,
            price_per_share=_dec(new_price),
            total_revenue=total_revenue,
            cash_before=cash_before,
            cash_after=account.cash,
            portfolio_after=portfolio_after,
            timestamp=self._record_price(market, ticker, new_price),
        )
        self._record_trade(account, trade)
        return SettlementResult(applied=True, trade=trade, new_price=new_price)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _record_price(self, market: MarketState, ticker: str, new_price: float) -> int:
        """Set the quote and append a history point; return its timestamp."""
        timestamp = self._clock()
        last = market.last_timestamp(ticker)
        if last is not None and timestamp <= last:
            timestamp = last + 1

        market.prices[ticker] = new_price
        market.price_history.setdefault(ticker, []).append(
            PricePoint(timestamp=timestamp, price=new_price)
        )
        return timestamp

    def _record_trade(self, account: Account, trade: TradeRecord) -> None:
        account.portfolio_value = trade.portfolio_after
        account.total_trades += 1
        account.transaction_log.append(trade)
        limit = self._config.max_transaction_log
        if len(account.transaction_log) > limit:
            account.transaction_log = account.transaction_log[-limit:]


def _dec(value: float) -> Decimal:
    return Decimal(str(value))


def _cents(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _portfolio_value(account: Account, market: MarketState) -> Decimal:
    return _cents(account.cash + account.holdings_value(market.prices))

