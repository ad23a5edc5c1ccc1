"""Tests for the in-memory document store and its optimistic transactions."""

import threading

import pytest

from market.errors import TransactionAbortedError
from market.store import InMemoryDocumentStore


@pytest.fixture
def store() -> InMemoryDocumentStore:
    s = InMemoryDocumentStore()
    s.set("users", "a", {"cash": 100.0, "is_bot": True})
    s.set("users", "b", {"cash": 50.0, "is_bot": False})
    s.set("market", "current", {"prices": {"JAKE": 10.0}})
    return s


class TestPlainAccess:
    def test_get_returns_copy(self, store):
        doc = store.get("users", "a")
        doc["cash"] = 0
        assert store.get("users", "a")["cash"] == 100.0

    def test_get_missing(self, store):
        assert store.get("users", "nobody") is None

    def test_query_filters_by_field(self, store):
        ids = [doc_id for doc_id, _ in store.query("users", is_bot=True)]
        assert ids == ["a"]

    def test_set_bumps_version(self, store):
        before = store.version("users", "a")
        store.set("users", "a", {"cash": 1.0})
        assert store.version("users", "a") == before + 1

    def test_collections_snapshot(self, store):
        snap = store.collections()
        assert set(snap) == {"users", "market"}
        assert snap["market"]["current"]["prices"] == {"JAKE": 10.0}


class TestTransactions:
    def test_commit_writes_all_documents(self, store):
        def _work(txn):
            a = txn.get("users", "a")
            b = txn.get("users", "b")
            a["cash"] -= 10
            b["cash"] += 10
            txn.update("users", "a", a)
            txn.update("users", "b", b)
            return "done"

        assert store.run_transaction(_work) == "done"
        assert store.get("users", "a")["cash"] == 90.0
        assert store.get("users", "b")["cash"] == 60.0

    def test_exception_discards_writes(self, store):
        def _work(txn):
            txn.update("users", "a", {"cash": 0.0})
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.run_transaction(_work)
        assert store.get("users", "a")["cash"] == 100.0

    def test_read_your_own_write(self, store):
        def _work(txn):
            txn.update("users", "a", {"cash": 1.0})
            return txn.get("users", "a")["cash"]

        assert store.run_transaction(_work) == 1.0

    def test_conflict_is_retried(self, store):
        attempts = []

        def _work(txn):
            attempts.append(txn.attempt)
            doc = txn.get("users", "a")
            if txn.attempt == 1:
                # A concurrent writer sneaks in between read and commit.
                store.set("users", "a", {"cash": 500.0, "is_bot": True})
            doc["cash"] += 1
            txn.update("users", "a", doc)

        store.run_transaction(_work)
        assert attempts == [1, 2]
        assert store.get("users", "a")["cash"] == 501.0

    def test_exhausted_attempts_raise_and_write_nothing(self, store):
        def _work(txn):
            txn.get("users", "a")
            store.set("users", "b", {"cash": 999.0})
            txn.get("users", "b")
            store.set("users", "a", {"cash": txn.attempt, "is_bot": True})
            txn.update("market", "current", {"prices": {}})

        with pytest.raises(TransactionAbortedError) as excinfo:
            store.run_transaction(_work, max_attempts=3)
        assert excinfo.value.attempts == 3
        assert store.get("market", "current") == {"prices": {"JAKE": 10.0}}

    def test_invalid_attempt_budget(self, store):
        with pytest.raises(ValueError):
            store.run_transaction(lambda txn: None, max_attempts=0)

    def test_concurrent_increments_are_not_lost(self, store):
        def _increment(txn):
            doc = txn.get("users", "a")
            doc["cash"] += 1
            txn.update("users", "a", doc)

        def _worker():
            for _ in range(50):
                store.run_transaction(_increment, max_attempts=1000)

        threads = [threading.Thread(target=_worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get("users", "a")["cash"] == 100.0 + 8 * 50
