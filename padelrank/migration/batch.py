"""Batched Firestore writes that respect the per-commit operation limit."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from padelrank.constants import FIRESTORE_BATCH_LIMIT

from .retry import RetryPolicy

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)


@dataclass
class BatchFailure:
    """A batch that could not be committed and the keys staged in it."""

    keys: list[str]
    error: str


class BatchProcessor:
    """Handles batched Firestore operations to respect the 500-limit.

    Every staged write may carry a key (a ranking id, usually) so callers
    can tell afterwards which writes landed and which were lost with a
    failed commit. A failed commit is recorded, not raised; the next writes
    go into a fresh batch.
    """

    def __init__(
        self,
        db: Client,
        limit: int = FIRESTORE_BATCH_LIMIT,
        retry: Optional[RetryPolicy] = None,
    ) -> None:
        if not 0 < limit <= FIRESTORE_BATCH_LIMIT:
            raise ValueError(
                f"Batch limit must be between 1 and {FIRESTORE_BATCH_LIMIT}."
            )
        self.db = db
        self.limit = limit
        self.retry = retry or RetryPolicy()
        self.batch = db.batch()
        self.count = 0
        self.keys: list[str] = []
        self.committed: list[str] = []
        self.failures: list[BatchFailure] = []
        self.commits = 0

    def reserve(self, operations: int) -> None:
        """Commit the current batch first if it cannot take ``operations`` more."""
        if operations > self.limit:
            raise ValueError(
                f"Cannot group {operations} writes in batches of {self.limit}."
            )
        if self.count + operations > self.limit:
            self.commit()

    def set(self, ref: Any, data: dict[str, Any], key: Optional[str] = None) -> None:
        """Adds a set operation to the batch."""
        self.reserve(1)
        self.batch.set(ref, data)
        self._track(key)

    def update(
        self, ref: Any, data: dict[str, Any], key: Optional[str] = None
    ) -> None:
        """Adds an update operation to the batch."""
        self.reserve(1)
        self.batch.update(ref, data)
        self._track(key)

    def delete(self, ref: Any, key: Optional[str] = None) -> None:
        """Adds a delete operation to the batch."""
        self.reserve(1)
        self.batch.delete(ref)
        self._track(key)

    def commit(self) -> bool:
        """Commits the current batch. Returns False if the commit failed."""
        if self.count == 0:
            return True

        count, keys = self.count, self.keys
        try:
            self.retry.call(
                self.batch.commit, description=f"batch commit of {count} writes"
            )
        except Exception as e:
            logger.error(f"Failed to commit batch of {count} writes: {e}")
            self.failures.append(BatchFailure(keys=keys, error=str(e)))
            return False
        else:
            logger.info(f"Committed batch of {count} writes")
            self.committed.extend(keys)
            self.commits += 1
            return True
        finally:
            self.batch = self.db.batch()
            self.count = 0
            self.keys = []

    @property
    def failed_keys(self) -> list[str]:
        """Keys of every write lost to a failed commit, in staging order."""
        return [key for failure in self.failures for key in failure.keys]

    def _track(self, key: Optional[str]) -> None:
        self.count += 1
        if key is not None and key not in self.keys:
            self.keys.append(key)
