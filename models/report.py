"""Round-level audit models for the bot scheduler.

- ``BotTurnLog``: one bot's decision and its settlement outcome.
- ``RoundReport``: one scheduled round, including why it was skipped.
"""

from __future__ import annotations

from pydantic import BaseModel

from models.account import BotPersonality
from models.order import Order, SettlementResult


class BotTurnLog(BaseModel):
    """Decision and settlement for a single bot within a round."""

    account_id: str
    display_name: str = ""
    personality: BotPersonality | None = None
    order: Order | None = None
    result: SettlementResult | None = None
    error: str | None = None


class RoundReport(BaseModel):
    """Audit trail of one scheduler round.

    ``skipped_reason`` is set when the round never selected a cohort (market
    halted, maintenance window, no bots); ``stopped_reason`` when it ended
    part-way through the cohort.
    """

    round_id: str
    started_at: str  # ISO8601, UTC
    boosted: bool = False
    skipped_reason: str | None = None
    stopped_reason: str | None = None
    cohort: list[str] = []
    turns: list[BotTurnLog] = []
    errors: list[str] = []
    elapsed_seconds: float = 0.0

    @property
    def trades_applied(self) -> int:
        return sum(1 for t in self.turns if t.result is not None and t.result.applied)
