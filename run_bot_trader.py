#!/usr/bin/env python3
"""Host entrypoint for the scheduled bot trader.

Usage::

    python run_bot_trader.py --config config/example.yaml --state data/example_state.json --once
    python run_bot_trader.py --config config/example.yaml --state data/state.json --rounds 20

The state file is read into an in-memory document store, bots trade against
it, and the updated documents are written back after every round. Round
reports land under ``--output-dir`` in a directory named after the config file.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import sys

from bots.round_logging import RoundLogger, run_name_from_config_path
from bots.scheduler import BotScheduler
from market.state_io import load_state, save_state
from models.config import BotTraderConfig


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run scheduled bot trading rounds against a market state file.",
    )
    parser.add_argument(
        "--config",
        required=True,
        type=str,
        help="Path to the YAML configuration file.",
    )
    parser.add_argument(
        "--state",
        required=True,
        type=str,
        help="Path to the JSON market/account state file (updated in place).",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single round and exit.",
    )
    parser.add_argument(
        "--rounds",
        default=None,
        type=int,
        help="Stop after this many rounds (default: run until interrupted).",
    )
    parser.add_argument(
        "--seed",
        default=None,
        type=int,
        help="Seed for the bots' random source (default: nondeterministic).",
    )
    parser.add_argument(
        "--no-delay",
        action="store_true",
        help="Skip start jitter, between-bot and between-round sleeps.",
    )
    parser.add_argument(
        "--output-dir",
        default="results",
        type=str,
        help="Directory where round reports will be written (default: results/).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO).",
    )
    return parser.parse_args()


def _setup_logging(level: str) -> None:
    """Configure root logger with a clean format."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


async def _no_sleep(_seconds: float) -> None:
    return None


async def _main() -> None:
    args = _parse_args()
    _setup_logging(args.log_level)

    logger = logging.getLogger(__name__)
    logger.info("Loading config from '%s'...", args.config)
    config = BotTraderConfig.from_yaml(args.config)
    store = load_state(args.state)

    round_logger = RoundLogger(args.output_dir, run_name_from_config_path(args.config))
    round_logger.init_run(args.config)

    scheduler = BotScheduler(
        store,
        config,
        rng=random.Random(args.seed),
        sleep=_no_sleep if args.no_delay else asyncio.sleep,
        round_logger=round_logger,
    )

    try:
        await scheduler.run_forever(
            max_rounds=1 if args.once else args.rounds,
            after_round=lambda _report: save_state(store, args.state),
        )
    except Exception as exc:
        round_logger.record_error(f"Bot trader stopped: {exc}")
        raise
    finally:
        save_state(store, args.state)
        summary = round_logger.finalize()
        logger.info(
            "Done: %d round(s), %d trade(s) applied.",
            summary["rounds"],
            summary["trades_applied"],
        )


if __name__ == "__main__":
    asyncio.run(_main())
