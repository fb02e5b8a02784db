from concurrent.futures import ThreadPoolExecutor

import pytest

from news_relevance.metrics import (
    ARTICLES_FETCHED,
    COUNTER_NAMES,
    REQUESTS_ATTEMPTED,
    Counters,
)


def test_counters_start_at_zero():
    assert Counters().snapshot() == {name: 0 for name in COUNTER_NAMES}


def test_increment_and_snapshot_is_a_copy():
    counters = Counters()
    counters.increment(REQUESTS_ATTEMPTED)
    counters.increment(ARTICLES_FETCHED, 3)

    snapshot = counters.snapshot()
    snapshot[REQUESTS_ATTEMPTED] = 100

    assert counters.get(REQUESTS_ATTEMPTED) == 1
    assert counters.get(ARTICLES_FETCHED) == 3


def test_counters_never_decrease():
    with pytest.raises(ValueError, match="forward"):
        Counters().increment(REQUESTS_ATTEMPTED, -1)


def test_concurrent_increments_are_not_lost():
    counters = Counters()

    def bump(_):
        for _ in range(1000):
            counters.increment(REQUESTS_ATTEMPTED)

    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(bump, range(8)))

    assert counters.get(REQUESTS_ATTEMPTED) == 8000


def test_log_summary_reports_every_counter(caplog):
    counters = Counters()
    counters.increment(ARTICLES_FETCHED, 2)

    with caplog.at_level("INFO", logger="news_relevance.metrics"):
        counters.log_summary()

    assert "articles_fetched=2" in caplog.text
    assert "requests_failed=0" in caplog.text
