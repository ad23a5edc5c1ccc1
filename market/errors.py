"""Exceptions raised by the market core."""

from __future__ import annotations


class TransactionConflictError(Exception):
    """A document read by a transaction changed before it could commit."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Write conflict on {collection}/{doc_id}.")
        self.collection = collection
        self.doc_id = doc_id


class TransactionAbortedError(Exception):
    """A transaction kept conflicting until its attempt budget ran out."""

    def __init__(self, attempts: int, last_conflict: TransactionConflictError | None = None) -> None:
        detail = f" Last conflict: {last_conflict}" if last_conflict is not None else ""
        super().__init__(f"Transaction aborted after {attempts} attempt(s).{detail}")
        self.attempts = attempts
        self.last_conflict = last_conflict


class StateFileError(ValueError):
    """A market/account state file is missing required structure."""
