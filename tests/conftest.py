import os

import pytest

from news_relevance.config import get_settings


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    """Keep a developer's .env or NEWS_RELEVANCE_* variables out of the tests."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("NEWS_RELEVANCE_"):
            monkeypatch.delenv(name)


@pytest.fixture
def fast_settings():
    """Settings with no retry delay and an effectively unlimited request rate."""

    def _make(**overrides):
        values = dict(
            http_timeout=1.0,
            retry_attempts=2,
            retry_delay_ms=0,
            requests_per_second=10_000,
            max_concurrent_requests=3,
            fetch_limit=100,
            scoring_thread_count=2,
        )
        values.update(overrides)
        return get_settings(**values)

    return _make


@pytest.fixture
def anyio_backend():
    """The package is built on asyncio; run anyio-marked tests on that backend only."""
    return "asyncio"
