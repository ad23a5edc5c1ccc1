"""Async bot scheduler: the periodic trading round.

Lifecycle of one round:
    1. Skip entirely during the weekly maintenance window or while the market
       is halted.
    2. Wait a random start jitter.
    3. Load every bot account and pick a random cohort (bigger on the boosted
       weekday).
    4. For each bot, one at a time:
        - Re-read the market and the account.
        - Ask the bot's personality for an order; HOLD ends its turn.
        - Settle the order in its own transaction.
        - Sleep a random delay before the next bot.

Trades are committed one by one, so a round cut short (timeout, process
exit) leaves every applied trade in place and the next round starts fresh.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from bots.policy import decide
from bots.round_logging import RoundLogger
from market.hours import is_boosted_day, is_maintenance_window, now_ms
from market.settlement import (
    ACCOUNTS_COLLECTION,
    MARKET_COLLECTION,
    MARKET_DOC_ID,
    TradeSettlement,
)
from market.store import DocumentStore
from models.account import Account
from models.config import BotTraderConfig
from models.market import MarketState
from models.report import BotTurnLog, RoundReport

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BotScheduler:
    """Drives scheduled bot rounds against a shared ``DocumentStore``."""

    def __init__(
        self,
        store: DocumentStore,
        config: BotTraderConfig | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
        round_logger: RoundLogger | None = None,
        settlement: TradeSettlement | None = None,
    ) -> None:
        self._store = store
        self._config = config or BotTraderConfig()
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._clock = clock
        self._round_logger = round_logger
        self._settlement = settlement or TradeSettlement(
            store,
            economy=self._config.economy,
            config=self._config.settlement,
            clock=lambda: now_ms(self._clock()),
        )
        self._round_count = 0
        self._current: RoundReport | None = None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def run_forever(
        self,
        max_rounds: int | None = None,
        after_round: Callable[[RoundReport | None], None] | None = None,
    ) -> None:
        """Run a round every ``interval_seconds`` until *max_rounds* is reached."""
        interval = self._config.scheduler.interval_seconds
        rounds = 0
        while max_rounds is None or rounds < max_rounds:
            t0 = time.monotonic()
            report = await self.run_scheduled()
            rounds += 1
            if after_round is not None:
                after_round(report)
            if max_rounds is not None and rounds >= max_rounds:
                break
            await self._sleep(max(0.0, interval - (time.monotonic() - t0)))

    async def run_scheduled(self, now: datetime | None = None) -> RoundReport | None:
        """Run one round bounded by ``max_runtime_seconds``.

        Returns the round report, which is marked ``stopped_reason="timeout"``
        if the bound was hit. Executed rounds are handed to the round logger.
        """
        limit = self._config.scheduler.max_runtime_seconds
        try:
            report = await asyncio.wait_for(self.run_round(now), timeout=limit)
        except asyncio.TimeoutError:
            report = self._current
            logger.warning("Bot round exceeded %.0fs; remaining bots skipped.", limit)
            if report is not None:
                report.stopped_reason = "timeout"

        if report is not None and report.skipped_reason is None and self._round_logger is not None:
            self._round_logger.write_round(report)
        return report

    async def run_round(self, now: datetime | None = None) -> RoundReport:
        """Execute one trading round and return its audit report."""
        now = now or self._clock()
        boosted = is_boosted_day(now, self._config.scheduler.boosted_weekday)
        self._round_count += 1
        report = RoundReport(
            round_id=f"round_{self._round_count:04d}_{now:%Y%m%dT%H%M%S}",
            started_at=now.isoformat(),
            boosted=boosted,
        )
        self._current = report
        t0 = time.monotonic()

        try:
            skip = self._halt_reason(now)
            if skip is not None:
                report.skipped_reason = skip
                logger.info("Skipping bot round %s: %s.", report.round_id, skip)
                return report

            await self._sleep(self._rng.uniform(*self._config.scheduler.start_jitter_seconds))

            bots = self._store.query(ACCOUNTS_COLLECTION, isBot=True)
            if not bots:
                report.skipped_reason = "no_bots"
                logger.info("No bots found.")
                return report

            cohort = self._select_cohort([bot_id for bot_id, _ in bots], boosted)
            report.cohort = cohort
            logger.info(
                "%d bot(s) will trade this round%s.",
                len(cohort),
                " (boosted)" if boosted else "",
            )

            for idx, bot_id in enumerate(cohort):
                if idx > 0:
                    await self._sleep(self._rng.uniform(*self._config.scheduler.bot_delay_seconds))

                market = self._load_market()
                if market is None or market.market_halted:
                    report.stopped_reason = "market_halted"
                    logger.info("Market halted mid-round; %d bot(s) skipped.", len(cohort) - idx)
                    break

                try:
                    turn = self._run_turn(bot_id, market, boosted)
                except Exception as exc:
                    msg = f"Bot '{bot_id}' failed: {exc}"
                    logger.exception(msg)
                    report.errors.append(msg)
                    turn = BotTurnLog(account_id=bot_id, error=str(exc))
                report.turns.append(turn)

        except Exception as exc:
            msg = f"Round '{report.round_id}' failed: {exc}"
            logger.exception(msg)
            report.errors.append(msg)
        finally:
            report.elapsed_seconds = time.monotonic() - t0

        logger.info(
            "Bot round %s complete: %d trade(s) applied, %d error(s).",
            report.round_id,
            report.trades_applied,
            len(report.errors),
        )
        return report

    # ------------------------------------------------------------------
    # Round steps
    # ------------------------------------------------------------------

    def _halt_reason(self, now: datetime) -> str | None:
        if is_maintenance_window(now, self._config.scheduler.maintenance_window):
            return "maintenance_window"
        market = self._load_market()
        if market is None:
            return "no_market"
        if market.market_halted:
            return "market_halted"
        return None

    def _select_cohort(self, bot_ids: list[str], boosted: bool) -> list[str]:
        """Shuffle-then-slice a random number of distinct bots."""
        sched = self._config.scheduler
        low, high = sched.boosted_cohort_size if boosted else sched.cohort_size
        count = self._rng.randint(low, high)
        shuffled = list(bot_ids)
        self._rng.shuffle(shuffled)
        return shuffled[:count]

    def _run_turn(self, bot_id: str, market: MarketState, boosted: bool) -> BotTurnLog:
        raw = self._store.get(ACCOUNTS_COLLECTION, bot_id)
        if raw is None:
            logger.warning("Bot %s disappeared before its turn.", bot_id)
            return BotTurnLog(account_id=bot_id, error="account not found")
        account = Account.model_validate(raw)
        name = account.display_name or bot_id

        order = decide(
            account,
            market,
            market.tickers,
            is_boosted_day=boosted,
            rng=self._rng,
            now_ms=now_ms(self._clock()),
            crews=self._config.crews,
            lookback_minutes=self._config.trend_lookback_minutes,
        )
        turn = BotTurnLog(
            account_id=bot_id,
            display_name=account.display_name,
            personality=account.bot_personality,
            order=order,
        )
        if order.is_hold:
            logger.info("%s decided to HOLD.", name)
            return turn

        logger.info(
            "%s (%s): %s %d %s",
            name,
            account.bot_personality.value if account.bot_personality else "balanced",
            order.action.value,
            order.shares,
            order.ticker,
        )
        turn.result = self._settlement.settle(bot_id, order)
        return turn

    def _load_market(self) -> MarketState | None:
        raw = self._store.get(MARKET_COLLECTION, MARKET_DOC_ID)
        if raw is None:
            return None
        return MarketState.model_validate(raw)
