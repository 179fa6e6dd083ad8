"""Retry policy for transient Firestore transport failures."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, TypeVar

from google.api_core import exceptions as google_exceptions

from padelrank.constants import (
    MIGRATION_RETRY_ATTEMPTS,
    MIGRATION_RETRY_BASE_DELAY,
    MIGRATION_RETRY_MAX_DELAY,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
    google_exceptions.InternalServerError,
    google_exceptions.Aborted,
    google_exceptions.TooManyRequests,
    google_exceptions.ResourceExhausted,
)


class RetryPolicy:
    """Retry a call on transient errors with exponential backoff."""

    def __init__(
        self,
        attempts: int = MIGRATION_RETRY_ATTEMPTS,
        base_delay: float = MIGRATION_RETRY_BASE_DELAY,
        max_delay: float = MIGRATION_RETRY_MAX_DELAY,
        sleep: Callable[[float], Any] = time.sleep,
    ) -> None:
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.attempts = attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt (1-based)."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    def call(self, func: Callable[[], T], description: str = "operation") -> T:
        """Run ``func``, retrying transient errors until attempts run out."""
        attempt = 1
        while True:
            try:
                return func()
            except TRANSIENT_ERRORS as e:
                if attempt >= self.attempts:
                    logger.error(
                        f"Giving up on {description} after {attempt} attempts: {e}"
                    )
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    f"Transient error during {description} "
                    f"(attempt {attempt}/{self.attempts}): {e}. "
                    f"Retrying in {delay:.1f}s"
                )
                self.sleep(delay)
                attempt += 1
