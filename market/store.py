"""Document store with optimistic, all-or-nothing transactions.

Documents are plain dicts addressed by ``(collection, doc_id)``. Each commit
bumps a per-document version. A transaction records the version of every
document it reads and buffers its writes; at commit time the store re-checks
those versions under a lock and, if any changed, discards the buffer and runs
the transaction function again.

Typical use::

    def _work(txn):
        account = txn.get("users", "bot_1")
        account["cash"] -= 10
        txn.update("users", "bot_1", account)

    store.run_transaction(_work)
"""

from __future__ import annotations

import copy
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, TypeVar

from market.errors import TransactionAbortedError, TransactionConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DocKey = tuple[str, str]


class Transaction:
    """Read/write view handed to a transaction function for one attempt."""

    def __init__(self, store: InMemoryDocumentStore, attempt: int) -> None:
        self._store = store
        self.attempt = attempt
        self._read_versions: dict[DocKey, int] = {}
        self._writes: dict[DocKey, dict[str, Any]] = {}

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Read a document, returning a private copy (or ``None`` if absent)."""
        key = (collection, doc_id)
        if key in self._writes:
            return copy.deepcopy(self._writes[key])
        data, version = self._store._read(collection, doc_id)
        self._read_versions.setdefault(key, version)
        return data

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Buffer a full replacement of a document until commit."""
        self._writes[(collection, doc_id)] = copy.deepcopy(data)


class DocumentStore(ABC):
    """Interface the settlement core and scheduler depend on."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Return a copy of the document, or ``None``."""

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Replace (or create) a document outside any transaction."""

    @abstractmethod
    def query(self, collection: str, **equals: Any) -> list[tuple[str, dict[str, Any]]]:
        """Return ``(doc_id, data)`` pairs whose fields equal *equals*."""

    @abstractmethod
    def run_transaction(self, fn: Callable[[Transaction], T], max_attempts: int = 5) -> T:
        """Run *fn* atomically, retrying on write conflicts.

        Raises ``TransactionAbortedError`` when every attempt conflicts.
        Exceptions raised by *fn* propagate and nothing is written.
        """


class InMemoryDocumentStore(DocumentStore):
    """Thread-safe in-process implementation of ``DocumentStore``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._docs: dict[DocKey, dict[str, Any]] = {}
        self._versions: dict[DocKey, int] = {}

    # ------------------------------------------------------------------
    # Plain reads and writes
    # ------------------------------------------------------------------

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        data, _ = self._read(collection, doc_id)
        return data

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        key = (collection, doc_id)
        with self._lock:
            self._docs[key] = copy.deepcopy(data)
            self._versions[key] = self._versions.get(key, 0) + 1

    def query(self, collection: str, **equals: Any) -> list[tuple[str, dict[str, Any]]]:
        with self._lock:
            matches = [
                (doc_id, copy.deepcopy(data))
                for (coll, doc_id), data in self._docs.items()
                if coll == collection
                and all(data.get(field) == value for field, value in equals.items())
            ]
        return matches

    def collections(self) -> dict[str, dict[str, dict[str, Any]]]:
        """Deep copy of every document, grouped by collection."""
        out: dict[str, dict[str, dict[str, Any]]] = {}
        with self._lock:
            for (coll, doc_id), data in self._docs.items():
                out.setdefault(coll, {})[doc_id] = copy.deepcopy(data)
        return out

    def version(self, collection: str, doc_id: str) -> int:
        with self._lock:
            return self._versions.get((collection, doc_id), 0)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def run_transaction(self, fn: Callable[[Transaction], T], max_attempts: int = 5) -> T:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}.")

        last_conflict: TransactionConflictError | None = None
        for attempt in range(1, max_attempts + 1):
            txn = Transaction(self, attempt)
            result = fn(txn)
            try:
                self._commit(txn)
            except TransactionConflictError as exc:
                last_conflict = exc
                logger.debug("Attempt %d/%d conflicted: %s", attempt, max_attempts, exc)
                continue
            return result

        raise TransactionAbortedError(max_attempts, last_conflict)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read(self, collection: str, doc_id: str) -> tuple[dict[str, Any] | None, int]:
        key = (collection, doc_id)
        with self._lock:
            data = self._docs.get(key)
            return (copy.deepcopy(data) if data is not None else None), self._versions.get(key, 0)

    def _commit(self, txn: Transaction) -> None:
        with self._lock:
            for key, seen in txn._read_versions.items():
                if self._versions.get(key, 0) != seen:
                    raise TransactionConflictError(*key)
            for key, data in txn._writes.items():
                self._docs[key] = data
                self._versions[key] = self._versions.get(key, 0) + 1
