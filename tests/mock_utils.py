"""Mock utilities for Firestore batches."""

import unittest.mock
from typing import Any, Optional

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions
from mockfirestore import MockFirestore


class MockBatch:
    """Stages writes and applies them on commit with Firestore update semantics."""

    def __init__(self, db: Any, commit_errors: Optional[list[Exception]] = None) -> None:
        self.db = db
        self.operations: list[tuple[str, Any, Any]] = []
        self.commit_errors = commit_errors or []
        self.committed = False
        self.commit = unittest.mock.MagicMock(side_effect=self._real_commit)

    def update(self, ref: Any, data: Any) -> None:
        self.operations.append(("update", ref, data))

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.operations.append(("set", ref, data))

    def delete(self, ref: Any) -> None:
        self.operations.append(("delete", ref, None))

    def _real_commit(self) -> None:
        if self.commit_errors:
            raise self.commit_errors.pop(0)
        for op, ref, data in self.operations:
            if op == "delete":
                ref.delete()
            elif op == "set":
                ref.set(dict(data))
            else:
                snapshot = ref.get()
                if not snapshot.exists:
                    raise google_exceptions.NotFound(f"No document to update: {ref.id}")
                # Top-level fields named in an update are replaced, not merged.
                current = snapshot.to_dict() or {}
                for key, value in data.items():
                    if value is firestore.DELETE_FIELD:
                        current.pop(key, None)
                    else:
                        current[key] = value
                ref.set(current)
        self.committed = True


class MockBatchFactory:
    """Hands out MockBatch instances, optionally failing chosen commits.

    ``commit_errors`` maps the index of a created batch to the exceptions its
    commit raises, one per attempt, before it succeeds.
    """

    def __init__(
        self, db: Any, commit_errors: Optional[dict[int, list[Exception]]] = None
    ) -> None:
        self.db = db
        self.commit_errors = commit_errors or {}
        self.batches: list[MockBatch] = []

    def __call__(self) -> MockBatch:
        errors = list(self.commit_errors.get(len(self.batches), []))
        batch = MockBatch(self.db, errors)
        self.batches.append(batch)
        return batch

    @property
    def committed(self) -> list[MockBatch]:
        return [b for b in self.batches if b.committed]


def make_mock_db(
    commit_errors: Optional[dict[int, list[Exception]]] = None,
) -> tuple[MockFirestore, MockBatchFactory]:
    """Create a MockFirestore whose batch() returns MockBatch instances."""
    db = MockFirestore()
    factory = MockBatchFactory(db, commit_errors)
    db.batch = factory
    return db, factory


def add_ranking(db: Any, ranking_id: str, **fields: Any) -> Any:
    """Store a ranking document and return its reference."""
    ref = db.collection("rankings").document(ranking_id)
    ref.set(fields)
    return ref


def get_ranking(db: Any, ranking_id: str) -> dict[str, Any]:
    """Read a ranking document back as a dict."""
    return db.collection("rankings").document(ranking_id).get().to_dict()
