"""Bot-run output logging: persists RoundReports and a run summary.

The output directory structure is::

    {output_dir}/{run_name}/
    ├── config.yaml
    ├── rounds/
    │   ├── round_0001_20250612T140300.json
    │   └── ...
    └── summary.json
"""

from __future__ import annotations

import itertools
import json
import logging
import shutil
from pathlib import Path
from typing import Any

from models.report import RoundReport

logger = logging.getLogger(__name__)


def run_name_from_config_path(config_path: str | Path) -> str:
    """``config/weekly.yaml`` -> ``weekly``."""
    return Path(config_path).stem


class RoundLogger:
    """Manages on-disk output for a bot-trader run.

    Call ``init_run`` once at the start, ``write_round`` after each executed
    round, and ``finalize`` at the very end.
    """

    def __init__(self, output_dir: str | Path, run_name: str) -> None:
        self._run_dir = _unique_run_dir(Path(output_dir), run_name)
        self._rounds_dir = self._run_dir / "rounds"
        self._reports: list[RoundReport] = []
        self._errors: list[str] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init_run(self, config_yaml_path: str | Path | None = None) -> None:
        """Create ``rounds/`` and keep a copy of the config beside it."""
        self._rounds_dir.mkdir(parents=True, exist_ok=True)
        if config_yaml_path is not None:
            dest = self._run_dir / "config.yaml"
            shutil.copy2(config_yaml_path, dest)
            logger.info("Config saved to %s", dest)

    def write_round(self, report: RoundReport) -> None:
        """Persist one round's report."""
        self._rounds_dir.mkdir(parents=True, exist_ok=True)
        _write_json(self._rounds_dir / f"{report.round_id}.json", report.model_dump(mode="json"))
        self._reports.append(report)
        logger.debug("Wrote round report %s", report.round_id)

    def record_error(self, message: str) -> None:
        """Append a run-level error message."""
        self._errors.append(message)
        logger.error("Bot trader error: %s", message)

    def finalize(self) -> dict[str, Any]:
        """Write ``summary.json`` and return the summary."""
        summary = self.build_summary()
        self._run_dir.mkdir(parents=True, exist_ok=True)
        _write_json(self._run_dir / "summary.json", summary)
        logger.info("Run summary written to %s", self._run_dir)
        return summary

    def build_summary(self) -> dict[str, Any]:
        """Lightweight aggregate of every round written so far."""
        per_bot: dict[str, int] = {}
        for report in self._reports:
            for turn in report.turns:
                if turn.result is not None and turn.result.applied:
                    per_bot[turn.account_id] = per_bot.get(turn.account_id, 0) + 1
        return {
            "run_name": self._run_dir.name,
            "rounds": len(self._reports),
            "timed_out_rounds": sum(1 for r in self._reports if r.stopped_reason == "timeout"),
            "trades_applied": sum(r.trades_applied for r in self._reports),
            "trades_per_bot": per_bot,
            "errors": self._errors + [e for r in self._reports for e in r.errors],
        }

    @property
    def run_dir(self) -> Path:
        return self._run_dir


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _unique_run_dir(output_dir: Path, run_name: str) -> Path:
    """First of ``run_name``, ``run_name_001``, ``run_name_002``... not yet on disk."""
    names = itertools.chain([run_name], (f"{run_name}_{n:03d}" for n in itertools.count(1)))
    return next(output_dir / name for name in names if not (output_dir / name).exists())


def _write_json(path: Path, data: Any) -> None:
    with path.open("w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2, default=str)
        fh.write("\n")
