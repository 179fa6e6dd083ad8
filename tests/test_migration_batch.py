"""Tests for BatchProcessor and RetryPolicy."""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock

from google.api_core import exceptions as google_exceptions

from padelrank.migration.batch import BatchProcessor
from padelrank.migration.retry import RetryPolicy
from tests.mock_utils import add_ranking, get_ranking, make_mock_db


def no_wait_retry(attempts: int = 3) -> RetryPolicy:
    return RetryPolicy(attempts=attempts, base_delay=0.5, sleep=MagicMock())


class TestRetryPolicy(unittest.TestCase):
    def test_returns_first_success(self) -> None:
        policy = no_wait_retry()
        func = MagicMock(return_value="ok")
        self.assertEqual(policy.call(func), "ok")
        func.assert_called_once()
        policy.sleep.assert_not_called()

    def test_retries_transient_errors_with_backoff(self) -> None:
        policy = no_wait_retry(attempts=3)
        func = MagicMock(
            side_effect=[
                google_exceptions.ServiceUnavailable("down"),
                google_exceptions.DeadlineExceeded("slow"),
                "ok",
            ]
        )
        self.assertEqual(policy.call(func), "ok")
        self.assertEqual(func.call_count, 3)
        self.assertEqual(
            [c.args[0] for c in policy.sleep.call_args_list], [0.5, 1.0]
        )

    def test_gives_up_after_last_attempt(self) -> None:
        policy = no_wait_retry(attempts=2)
        func = MagicMock(side_effect=google_exceptions.ServiceUnavailable("down"))
        with self.assertRaises(google_exceptions.ServiceUnavailable):
            policy.call(func)
        self.assertEqual(func.call_count, 2)

    def test_permanent_errors_are_not_retried(self) -> None:
        policy = no_wait_retry()
        func = MagicMock(side_effect=google_exceptions.PermissionDenied("no"))
        with self.assertRaises(google_exceptions.PermissionDenied):
            policy.call(func)
        func.assert_called_once()

    def test_delay_is_capped(self) -> None:
        policy = RetryPolicy(attempts=10, base_delay=1.0, max_delay=4.0)
        self.assertEqual(
            [policy.delay_for(n) for n in range(1, 6)], [1.0, 2.0, 4.0, 4.0, 4.0]
        )

    def test_attempts_must_be_positive(self) -> None:
        with self.assertRaises(ValueError):
            RetryPolicy(attempts=0)


class TestBatchProcessor(unittest.TestCase):
    def setUp(self) -> None:
        self.db, self.batches = make_mock_db()
        self.refs = [
            add_ranking(self.db, f"r{i}", nombre=f"Ranking {i}", config={})
            for i in range(7)
        ]

    def test_commits_when_limit_is_reached(self) -> None:
        processor = BatchProcessor(self.db, limit=3, retry=no_wait_retry())
        for i, ref in enumerate(self.refs):
            processor.update(ref, {"config": {"n": i}}, key=ref.id)
        processor.commit()

        sizes = [len(b.operations) for b in self.batches.committed]
        self.assertEqual(sizes, [3, 3, 1])
        self.assertEqual(processor.commits, 3)
        self.assertEqual(processor.committed, [ref.id for ref in self.refs])
        self.assertEqual(get_ranking(self.db, "r6")["config"], {"n": 6})

    def test_commit_of_empty_batch_is_a_noop(self) -> None:
        processor = BatchProcessor(self.db, limit=3, retry=no_wait_retry())
        self.assertTrue(processor.commit())
        self.assertEqual(self.batches.committed, [])

    def test_reserve_keeps_grouped_writes_together(self) -> None:
        processor = BatchProcessor(self.db, limit=3, retry=no_wait_retry())
        for ref in self.refs[:3]:
            processor.reserve(2)
            processor.update(ref, {"config": {"a": 1}}, key=ref.id)
            processor.update(ref, {"nombre": "renamed"}, key=ref.id)
        processor.commit()

        for batch in self.batches.committed:
            self.assertEqual(len(batch.operations), 2)
            self.assertEqual(batch.operations[0][1], batch.operations[1][1])

    def test_reserving_more_than_limit_fails(self) -> None:
        processor = BatchProcessor(self.db, limit=1, retry=no_wait_retry())
        with self.assertRaises(ValueError):
            processor.reserve(2)

    def test_limit_cannot_exceed_firestore_limit(self) -> None:
        with self.assertRaises(ValueError):
            BatchProcessor(self.db, limit=501)

    def test_failed_commit_is_recorded_and_next_batch_proceeds(self) -> None:
        self.db, self.batches = make_mock_db(
            commit_errors={0: [google_exceptions.PermissionDenied("denied")]}
        )
        refs = [add_ranking(self.db, f"r{i}", config={}) for i in range(4)]
        processor = BatchProcessor(self.db, limit=2, retry=no_wait_retry())
        for ref in refs:
            processor.update(ref, {"config": {"done": True}}, key=ref.id)
        self.assertTrue(processor.commit())

        self.assertEqual(processor.failed_keys, ["r0", "r1"])
        self.assertEqual(processor.committed, ["r2", "r3"])
        self.assertEqual(get_ranking(self.db, "r0")["config"], {})
        self.assertEqual(get_ranking(self.db, "r3")["config"], {"done": True})

    def test_transient_commit_failure_is_retried(self) -> None:
        self.db, self.batches = make_mock_db(
            commit_errors={0: [google_exceptions.ServiceUnavailable("blip")]}
        )
        ref = add_ranking(self.db, "r0", config={})
        processor = BatchProcessor(self.db, limit=5, retry=no_wait_retry())
        processor.update(ref, {"config": {"done": True}}, key="r0")

        self.assertTrue(processor.commit())
        self.assertEqual(processor.failed_keys, [])
        self.assertEqual(self.batches.batches[0].commit.call_count, 2)
        self.assertEqual(get_ranking(self.db, "r0")["config"], {"done": True})


if __name__ == "__main__":
    unittest.main()
