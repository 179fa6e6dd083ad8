"""Capture migration log lines for the operator."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

LOGGER_NAME = "padelrank.migration"

_active = threading.local()


def _stack() -> list[MigrationLog]:
    if not hasattr(_active, "captures"):
        _active.captures = []
    return _active.captures


class MigrationLog(logging.Handler):
    """Collects timestamped, append-only log lines emitted during a call.

    A record is kept only by the innermost capture open on the thread that
    logged it, so concurrent requests never see each other's lines.
    """

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.lines: list[str] = []
        self.setFormatter(
            logging.Formatter("[%(asctime)s] %(message)s", datefmt="%H:%M:%S")
        )

    def filter(self, record: logging.LogRecord) -> bool:
        captures = _stack()
        if not captures or captures[-1] is not self:
            return False
        return bool(super().filter(record))

    def emit(self, record: logging.LogRecord) -> None:
        self.lines.append(self.format(record))

    @contextmanager
    def capture(self, name: str = LOGGER_NAME) -> Iterator[MigrationLog]:
        """Attach to the named logger for the duration of the block."""
        target = logging.getLogger(name)
        # Lowered once and left in place; captures never restore it.
        if target.getEffectiveLevel() > self.level:
            target.setLevel(self.level)
        _stack().append(self)
        target.addHandler(self)
        try:
            yield self
        finally:
            target.removeHandler(self)
            _stack().remove(self)
