"""Concurrent, fault-tolerant retrieval of story details.

The stage lists ids once, then fans out one detail fetch per id with at most
``max_concurrent_requests`` in flight. A finished fetch frees its slot for the
next queued id immediately, so there are no lockstep batches. Per-item failures
are recorded and counted; only a failed id listing aborts the batch.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .config import Settings
from .errors import NewsRelevanceError, NoResultsError, ShutdownError
from .metrics import ARTICLES_FAILED, ARTICLES_FETCHED, Counters
from .models import Article
from .rate_limiter import RateLimiter
from .retry import RetryingFetcher
from .sources import ItemSource, ListingSource, item_to_article

logger = logging.getLogger(__name__)


# --- Data containers -------------------------------------------------------

@dataclass
class FetchFailure:
    item_id: str
    kind: str
    message: str


@dataclass
class FetchOutcome:
    item_id: str
    article: Article | None = None
    failure: FetchFailure | None = None

    @property
    def ok(self) -> bool:
        return self.article is not None


@dataclass
class FetchReport:
    source: str
    articles: List[Article] = field(default_factory=list)
    failures: List[FetchFailure] = field(default_factory=list)
    notice: NoResultsError | None = None
    cancelled: bool = False

    @property
    def failure_count(self) -> int:
        return len(self.failures)


# --- Stage -----------------------------------------------------------------

class ItemFetchStage:
    """Fetch every listed item of a source into ``Article`` records."""

    def __init__(
        self,
        settings: Settings,
        *,
        counters: Optional[Counters] = None,
        limiter: Optional[RateLimiter] = None,
        retrier: Optional[RetryingFetcher] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        self.counters = counters if counters is not None else Counters()
        self.cancel_event = cancel_event
        self.limiter = limiter or RateLimiter(
            settings.requests_per_second, settings.burst, cancel_event=cancel_event
        )
        self.retrier = retrier or RetryingFetcher.from_settings(
            settings, counters=self.counters, cancel_event=cancel_event
        )
        self.max_concurrent_requests = settings.max_concurrent_requests
        self.fetch_limit = settings.fetch_limit

    async def fetch_all(self, source: ItemSource) -> FetchReport:
        """
        List ids for ``source`` and fetch each item's detail.

        Raises the id-listing error if the listing fails after retries. An empty
        listing yields an empty report carrying a ``NoResultsError`` notice.
        """
        report = FetchReport(source=source.name)
        logger.info(f"Fetching story ids from {source.name}")
        try:
            ids = await self.retrier.execute(
                source.list_ids, context=f"{source.name} id list", limiter=self.limiter
            )
        except ShutdownError:
            report.cancelled = True
            return report

        ids = ids[: self.fetch_limit]
        logger.info(f"Fetched {len(ids)} story ids from {source.name}")
        if not ids:
            report.notice = NoResultsError(source.name)
            logger.warning(str(report.notice))
            return report

        semaphore = asyncio.Semaphore(self.max_concurrent_requests)
        outcomes: list[FetchOutcome | None] = [None] * len(ids)

        async def _fetch_one(idx: int, item_id: int) -> None:
            async with semaphore:
                outcome = await self._fetch_item(source, item_id)
            if outcome is not None:
                self._record(outcome, source.name)
            outcomes[idx] = outcome

        tasks = [
            asyncio.create_task(_fetch_one(idx, item_id)) for idx, item_id in enumerate(ids)
        ]
        report.cancelled = await self._drain(tasks)

        for outcome in outcomes:
            if outcome is None:
                continue
            if outcome.article is not None:
                report.articles.append(outcome.article)
            elif outcome.failure is not None:
                report.failures.append(outcome.failure)

        logger.info(
            f"{source.name}: {len(report.articles)} articles fetched, "
            f"{report.failure_count} failed"
            + (" (cancelled)" if report.cancelled else "")
        )
        return report

    async def fetch_listing(self, source: ListingSource) -> FetchReport:
        """Fetch a single-page source; failures are recorded, never raised."""
        report = FetchReport(source=source.name)
        logger.info(f"Fetching {source.name} articles")
        try:
            articles = await self.retrier.execute(
                source.fetch_articles, context=source.name, limiter=self.limiter
            )
        except ShutdownError:
            report.cancelled = True
            return report
        except NoResultsError as exc:
            report.notice = exc
            logger.warning(str(exc))
            return report
        except NewsRelevanceError as exc:
            failure = FetchFailure(item_id=source.name, kind=type(exc).__name__, message=str(exc))
            report.failures.append(failure)
            self.counters.increment(ARTICLES_FAILED)
            logger.warning(f"Failed to fetch {source.name}: {exc}")
            return report

        report.articles.extend(articles)
        self.counters.increment(ARTICLES_FETCHED, len(articles))
        logger.info(f"Fetched {len(articles)} {source.name} articles")
        return report

    async def _fetch_item(self, source: ItemSource, item_id: int) -> FetchOutcome | None:
        """Return the item's outcome, or None when cancelled before it finished."""
        key = str(item_id)
        try:
            item = await self.retrier.execute(
                lambda: source.fetch_item(item_id),
                context=f"{source.name} item {item_id}",
                limiter=self.limiter,
            )
        except ShutdownError:
            return None
        except NewsRelevanceError as exc:
            return FetchOutcome(
                item_id=key,
                failure=FetchFailure(item_id=key, kind=type(exc).__name__, message=str(exc)),
            )
        return FetchOutcome(item_id=key, article=item_to_article(item, source.name))

    def _record(self, outcome: FetchOutcome, source_name: str) -> None:
        if outcome.ok:
            self.counters.increment(ARTICLES_FETCHED)
            return
        self.counters.increment(ARTICLES_FAILED)
        logger.warning(
            f"Failed to fetch {source_name} item {outcome.item_id}: {outcome.failure.message}"
        )

    async def _drain(self, tasks: List[asyncio.Task]) -> bool:
        """Wait for every task; on cancellation stop the rest and return True."""
        if self.cancel_event is None:
            try:
                await asyncio.gather(*tasks)
            finally:
                for task in tasks:
                    if not task.done():
                        task.cancel()
            return False

        waiter = asyncio.ensure_future(self.cancel_event.wait())
        pending = set(tasks)
        try:
            while pending:
                done, _ = await asyncio.wait(
                    pending | {waiter}, return_when=asyncio.FIRST_COMPLETED
                )
                pending -= done
                for task in done:
                    if task is not waiter:
                        task.result()
                if waiter in done and pending:
                    logger.info(f"Cancellation requested; dropping {len(pending)} pending fetches")
                    for task in pending:
                        task.cancel()
                    await asyncio.gather(*pending, return_exceptions=True)
                    return True
            return self.cancel_event.is_set()
        finally:
            waiter.cancel()
            for task in tasks:
                if not task.done():
                    task.cancel()
