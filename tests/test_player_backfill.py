"""Tests for the player stats backfill."""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock

from google.api_core import exceptions as google_exceptions

from padelrank.errors import MigrationError
from padelrank.migration.players import (
    EMPTY_PLAYER_STATS,
    backfill_player_stats,
    needs_stats_backfill,
)
from padelrank.migration.retry import RetryPolicy
from tests.mock_utils import make_mock_db


class TestNeedsStatsBackfill(unittest.TestCase):
    def test_cases(self) -> None:
        self.assertTrue(needs_stats_backfill({"name": "Ana"}))
        self.assertTrue(needs_stats_backfill({"stats": None}))
        self.assertTrue(needs_stats_backfill({"stats": {"pg": 2}}))
        self.assertFalse(needs_stats_backfill({"stats": {"pj": 0}}))


class TestBackfillPlayerStats(unittest.TestCase):
    def setUp(self) -> None:
        self.db, self.batches = make_mock_db()
        players = self.db.collection("players")
        players.document("p1").set({"name": "Ana"})
        players.document("p2").set({"name": "Bea", "stats": {"pj": 3, "pg": 2, "pp": 1, "winrate": 67}})
        players.document("p3").set({"name": "Carla", "stats": {}})

    def player(self, player_id: str) -> dict:
        return self.db.collection("players").document(player_id).get().to_dict()

    def test_live_run(self) -> None:
        stats = backfill_player_stats(self.db, dry_run=False)

        self.assertEqual(stats["total"], 3)
        self.assertEqual(stats["updated"], 2)
        self.assertEqual(stats["skipped"], 1)
        self.assertEqual(self.player("p1")["stats"], EMPTY_PLAYER_STATS)
        self.assertEqual(self.player("p1")["name"], "Ana")
        self.assertEqual(self.player("p2")["stats"]["pj"], 3)

    def test_dry_run_writes_nothing(self) -> None:
        stats = backfill_player_stats(self.db)
        self.assertEqual(stats["updated"], 2)
        self.assertNotIn("stats", self.player("p1"))
        self.assertEqual(self.batches.committed, [])

    def test_second_run_has_nothing_to_do(self) -> None:
        backfill_player_stats(self.db, dry_run=False)
        stats = backfill_player_stats(self.db, dry_run=False)
        self.assertEqual(stats["updated"], 0)
        self.assertEqual(stats["skipped"], 3)

    def test_failed_commit_counts_as_errors(self) -> None:
        self.db, _ = make_mock_db(
            commit_errors={0: [google_exceptions.PermissionDenied("denied")]}
        )
        self.db.collection("players").document("p1").set({"name": "Ana"})
        stats = backfill_player_stats(
            self.db, dry_run=False, retry=RetryPolicy(attempts=1)
        )
        self.assertEqual(stats["updated"], 0)
        self.assertEqual(stats["errors"], 1)

    def test_read_failure(self) -> None:
        db = MagicMock()
        db.collection.return_value.stream.side_effect = google_exceptions.Forbidden(
            "no"
        )
        with self.assertRaises(MigrationError):
            backfill_player_stats(db, retry=RetryPolicy(attempts=1))


if __name__ == "__main__":
    unittest.main()
