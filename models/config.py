"""Economy and bot-trader configuration models, loaded from YAML.

These live in ``models/`` because they are shared data contracts: the pricing
engine, the settlement core and the bot scheduler all read the same numbers,
so any presentation layer that quotes a post-trade price must import them from
here as well.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

# ---------------------------------------------------------------------------
# Market-impact constants (must match across every caller)
# ---------------------------------------------------------------------------
BASE_IMPACT = 0.012
BASE_LIQUIDITY = 100.0
MIN_PRICE = 0.01
MAX_PRICE_CHANGE_PERCENT = 0.05

MAX_TRANSACTION_LOG = 100

# Crew rosters known to the bots. Tickers a crew lists but the market does not
# quote are ignored at decision time.
DEFAULT_CREWS: dict[str, list[str]] = {
    "ALLIED": ["BDNL", "LDNL", "VSCO", "ZACK", "JAY", "VIN", "AHN"],
    "BIG_DEAL": ["JAKE", "SWRD", "JSN", "BRAD", "LINE", "SINU", "LUAH"],
    "FIST_GANG": ["GAP", "ELIT", "JYNG", "TOM", "KWON", "DNCE", "GNTL", "MMA", "LIAR", "NOH"],
    "GOD_DOG": ["GDOG"],
    "SECRET_FRIENDS": ["GOO", "LOGN", "SAM", "ALEX", "SHMN"],
    "HOSTEL": ["ELI", "SLLY", "CHAE", "MAX", "DJO", "ZAMI", "RYAN"],
    "WTJC": ["TOM", "SRMK", "SGUI", "YCHL", "SERA", "MMA", "LIAR", "NOH"],
    "WORKERS": [
        "WRKR", "BANG", "CAPG", "JYNG", "NOMN", "NEKO", "DOOR", "JINJ",
        "DRMA", "HYOT", "OLDF", "SHKO", "HIKO", "DOC", "NO1",
    ],
    "YAMAZAKI": ["GUN", "SHNG", "SHRO", "SHKO", "HIKO", "SOMI"],
}


class EconomyConfig(BaseModel):
    """Parameters of the square-root price-impact model."""

    base_impact: float = Field(
        default=BASE_IMPACT,
        gt=0,
        description="Fractional price move per sqrt(shares / liquidity).",
    )
    base_liquidity: float = Field(
        default=BASE_LIQUIDITY,
        gt=0,
        description="Liquidity divisor (higher = harder to move price).",
    )
    min_price: float = Field(
        default=MIN_PRICE,
        gt=0,
        description="Price floor applied after every trade.",
    )
    max_price_change_percent: float = Field(
        default=MAX_PRICE_CHANGE_PERCENT,
        gt=0,
        le=1,
        description="Largest fractional move a single trade may cause.",
    )


class SettlementConfig(BaseModel):
    """Configuration for the transactional settlement core."""

    max_attempts: int = Field(
        default=5,
        ge=1,
        description="Transaction attempts before a write conflict is surfaced as a failure.",
    )
    max_transaction_log: int = Field(
        default=MAX_TRANSACTION_LOG,
        ge=1,
        description="Per-account trade log length; oldest entries are evicted first.",
    )


class MaintenanceWindow(BaseModel):
    """Weekly UTC window during which bots never trade."""

    weekday: int = Field(
        default=3,
        ge=0,
        le=6,
        description="Day of week as in datetime.weekday() (Monday=0). Default Thursday.",
    )
    start_minute: int = Field(
        default=13 * 60,
        ge=0,
        le=24 * 60,
        description="Window start, minutes after 00:00 UTC (inclusive).",
    )
    end_minute: int = Field(
        default=21 * 60,
        ge=0,
        le=24 * 60,
        description="Window end, minutes after 00:00 UTC (exclusive).",
    )

    @model_validator(mode="after")
    def _check_order(self) -> MaintenanceWindow:
        if self.end_minute < self.start_minute:
            raise ValueError(
                f"end_minute ({self.end_minute}) must not precede start_minute ({self.start_minute})."
            )
        return self


class SchedulerConfig(BaseModel):
    """Timing and cohort-size knobs for the scheduled bot round."""

    interval_seconds: float = Field(default=180.0, gt=0, description="Cadence between rounds.")
    max_runtime_seconds: float = Field(
        default=540.0,
        gt=0,
        description="Upper bound on one round; the host may kill the job after this.",
    )
    start_jitter_seconds: tuple[float, float] = Field(
        default=(0.0, 90.0),
        description="Random delay range before a round starts.",
    )
    bot_delay_seconds: tuple[float, float] = Field(
        default=(5.0, 45.0),
        description="Random delay range between consecutive bots.",
    )
    cohort_size: tuple[int, int] = Field(
        default=(1, 3),
        description="Inclusive range of bots trading in a normal round.",
    )
    boosted_cohort_size: tuple[int, int] = Field(
        default=(3, 5),
        description="Inclusive range of bots trading on the boosted weekday.",
    )
    boosted_weekday: int | None = Field(
        default=3,
        ge=0,
        le=6,
        description="Weekly content-release day (datetime.weekday()); None disables boosting.",
    )
    maintenance_window: MaintenanceWindow | None = Field(
        default_factory=MaintenanceWindow,
        description="Weekly halt; None disables it.",
    )

    @model_validator(mode="after")
    def _check_ranges(self) -> SchedulerConfig:
        for name in ("start_jitter_seconds", "bot_delay_seconds", "cohort_size", "boosted_cohort_size"):
            low, high = getattr(self, name)
            if low < 0 or high < low:
                raise ValueError(f"{name} must be a non-negative (low, high) range, got ({low}, {high}).")
        return self


class BotTraderConfig(BaseModel):
    """Top-level configuration for the bot trader, loaded from YAML."""

    economy: EconomyConfig = Field(default_factory=EconomyConfig)
    settlement: SettlementConfig = Field(default_factory=SettlementConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    trend_lookback_minutes: float = Field(
        default=60.0,
        gt=0,
        description="Default lookback for the per-ticker trend every personality reads.",
    )
    crews: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_CREWS.items()},
        description="Crew id -> member tickers.",
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> BotTraderConfig:
        """Load and validate a ``BotTraderConfig`` from a YAML file.

        Raises ``FileNotFoundError`` if the file does not exist and
        ``ValueError`` if the content is not a valid YAML mapping.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with path.open(encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ValueError(
                f"Expected a YAML mapping in {path}, got {type(raw).__name__}."
            )

        return cls(**raw)
