"""Process-local run counters."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Dict

logger = logging.getLogger(__name__)

REQUESTS_ATTEMPTED = "requests_attempted"
REQUESTS_SUCCEEDED = "requests_succeeded"
REQUESTS_FAILED = "requests_failed"
ARTICLES_FETCHED = "articles_fetched"
ARTICLES_FAILED = "articles_failed"

COUNTER_NAMES = (
    REQUESTS_ATTEMPTED,
    REQUESTS_SUCCEEDED,
    REQUESTS_FAILED,
    ARTICLES_FETCHED,
    ARTICLES_FAILED,
)


class Counters:
    """Monotonic named counters, safe to increment from any thread."""

    def __init__(self) -> None:
        self._values: Dict[str, int] = {name: 0 for name in COUNTER_NAMES}
        self._guard = Lock()

    def increment(self, name: str, amount: int = 1) -> None:
        if amount < 0:
            raise ValueError("counters only move forward.")
        with self._guard:
            self._values[name] = self._values.get(name, 0) + amount

    def get(self, name: str) -> int:
        with self._guard:
            return self._values.get(name, 0)

    def snapshot(self) -> Dict[str, int]:
        with self._guard:
            return dict(self._values)

    def log_summary(self) -> None:
        values = self.snapshot()
        summary = ", ".join(f"{name}={count}" for name, count in values.items())
        logger.info(f"Metrics summary: {summary}")
