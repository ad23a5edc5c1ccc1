"""Loading and saving market/account state files.

A state file is a single JSON object::

    {
      "market": {"prices": {...}, "priceHistory": {...}, "marketHalted": false},
      "users": {
        "bot_001": {"displayName": "...", "cash": 1000, "isBot": true, ...},
        ...
      }
    }

Documents are validated against ``MarketState`` / ``Account`` on load so a
malformed file fails before any bot trades against it. Snake_case keys are
accepted on load; the store and the saved file use the camelCase keys.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from market.errors import StateFileError
from market.settlement import ACCOUNTS_COLLECTION, MARKET_COLLECTION, MARKET_DOC_ID
from market.store import InMemoryDocumentStore
from models.account import Account
from models.market import MarketState

logger = logging.getLogger(__name__)


def load_state(path: str | Path) -> InMemoryDocumentStore:
    """Read a state file into a fresh ``InMemoryDocumentStore``.

    Raises ``FileNotFoundError`` if *path* does not exist and
    ``StateFileError`` if its content is not a valid state object.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"State file not found: {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise StateFileError(f"Invalid JSON in {path}: {exc}") from exc

    store = state_from_dict(raw, source=str(path))
    logger.info(
        "Loaded state from %s: %d account(s).",
        path,
        len(raw.get(ACCOUNTS_COLLECTION, {})),
    )
    return store


def state_from_dict(raw: Any, source: str = "<dict>") -> InMemoryDocumentStore:
    """Build a store from an already-parsed state object."""
    if not isinstance(raw, dict):
        raise StateFileError(f"Expected a JSON object in {source}, got {type(raw).__name__}.")
    if MARKET_COLLECTION not in raw:
        raise StateFileError(f"State in {source} has no '{MARKET_COLLECTION}' document.")

    users = raw.get(ACCOUNTS_COLLECTION, {})
    if not isinstance(users, dict):
        raise StateFileError(f"'{ACCOUNTS_COLLECTION}' in {source} must map account ids to documents.")

    store = InMemoryDocumentStore()
    try:
        market = MarketState.model_validate(raw[MARKET_COLLECTION])
        store.set(MARKET_COLLECTION, MARKET_DOC_ID, market.to_document())
        for account_id, doc in users.items():
            account = Account.model_validate(doc)
            store.set(ACCOUNTS_COLLECTION, account_id, account.to_document())
    except ValidationError as exc:
        raise StateFileError(f"Invalid document in {source}: {exc}") from exc
    return store


def save_state(store: InMemoryDocumentStore, path: str | Path) -> None:
    """Write the market and account documents of *store* back to *path*."""
    path = Path(path)
    collections = store.collections()
    payload = {
        MARKET_COLLECTION: collections.get(MARKET_COLLECTION, {}).get(MARKET_DOC_ID, {}),
        ACCOUNTS_COLLECTION: collections.get(ACCOUNTS_COLLECTION, {}),
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
    logger.info("Saved state to %s", path)
