"""Tests for the per-call migration log capture."""

from __future__ import annotations

import logging
import threading
import unittest

from padelrank.migration.log import MigrationLog

logger = logging.getLogger("padelrank.migration.tests")


class TestMigrationLog(unittest.TestCase):
    def test_lines_are_timestamped(self) -> None:
        log = MigrationLog()
        with log.capture():
            logger.info("Starting migration preview...")
        logger.info("after the call")

        self.assertEqual(len(log.lines), 1)
        self.assertRegex(
            log.lines[0], r"^\[\d\d:\d\d:\d\d\] Starting migration preview\.\.\.$"
        )

    def test_inner_capture_keeps_its_own_lines(self) -> None:
        outer, inner = MigrationLog(), MigrationLog()
        with outer.capture():
            logger.info("operator A event")
            with inner.capture():
                logger.info("operator B event")
            logger.info("operator A again")

        self.assertEqual(
            [line.split("] ", 1)[1] for line in outer.lines],
            ["operator A event", "operator A again"],
        )
        self.assertEqual([line.split("] ", 1)[1] for line in inner.lines], ["operator B event"])

    def test_other_threads_are_not_captured(self) -> None:
        mine, theirs = MigrationLog(), MigrationLog()
        started, release = threading.Event(), threading.Event()

        def other_request() -> None:
            with theirs.capture():
                started.set()
                release.wait(5)
                logger.info("other club ranking r9")

        thread = threading.Thread(target=other_request)
        thread.start()
        started.wait(5)
        with mine.capture():
            release.set()
            thread.join(5)
            logger.info("my ranking r1")

        self.assertEqual([line.split("] ", 1)[1] for line in mine.lines], ["my ranking r1"])
        self.assertEqual(
            [line.split("] ", 1)[1] for line in theirs.lines], ["other club ranking r9"]
        )


if __name__ == "__main__":
    unittest.main()
