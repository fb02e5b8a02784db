"""Coordinator for the fetch-and-score pipeline.

A single coordinator sequences the two stages:
- fetch (I/O bound; many suspended requests multiplexed on the event loop)
- score (CPU bound; a fixed worker pool run off the event loop)

The keyword matcher is built before any network I/O so a misconfigured keyword
list fails fast. Scoring starts only after fetching is fully drained.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import httpx

from .config import Settings, get_settings
from .errors import NoResultsError
from .fetcher import FetchFailure, FetchReport, ItemFetchStage
from .keyword_matching import build_matcher
from .metrics import Counters
from .models import ScoredArticle
from .scoring import score_all
from .sources import BlogIndexSource, HackerNewsSource, ItemSource, ListingSource, build_http_client

logger = logging.getLogger(__name__)


# --- Data containers -------------------------------------------------------

@dataclass
class PipelineResult:
    articles: List[ScoredArticle]
    failures: List[FetchFailure] = field(default_factory=list)
    notices: List[NoResultsError] = field(default_factory=list)
    counters: Dict[str, int] = field(default_factory=dict)
    cancelled: bool = False

    @property
    def failure_count(self) -> int:
        return len(self.failures)


# --- Coordinator -----------------------------------------------------------

class Pipeline:
    """Owns the matcher, counters and cancel signal for one run."""

    def __init__(
        self,
        settings: Settings,
        *,
        counters: Optional[Counters] = None,
        cancel_event: Optional[asyncio.Event] = None,
        fetch_stage: Optional[ItemFetchStage] = None,
    ):
        self.settings = settings
        self.counters = counters if counters is not None else Counters()
        self.cancel_event = cancel_event
        self._fetch_stage = fetch_stage

    def _stage(self) -> ItemFetchStage:
        if self._fetch_stage is None:
            self._fetch_stage = ItemFetchStage(
                self.settings, counters=self.counters, cancel_event=self.cancel_event
            )
        return self._fetch_stage

    async def run(
        self,
        source: ItemSource,
        keywords: Optional[Iterable[str]] = None,
        *,
        extra_sources: Sequence[ListingSource] = (),
    ) -> PipelineResult:
        matcher = build_matcher(self.settings.keywords if keywords is None else keywords)
        logger.info(f"Analyzing articles with keywords {list(matcher.keywords)}")

        stage = self._stage()
        reports = await self._fetch(stage, source, extra_sources)

        articles = [article for report in reports for article in report.articles]
        cancelled = any(report.cancelled for report in reports)
        if cancelled:
            logger.info(f"Shutdown requested; scoring {len(articles)} completed articles")

        scored = await asyncio.to_thread(
            score_all,
            articles,
            matcher,
            workers=self.settings.scoring_thread_count,
            executor=self.settings.scoring_executor,
            score_mode=self.settings.score_mode,
        )

        return PipelineResult(
            articles=scored,
            failures=[failure for report in reports for failure in report.failures],
            notices=[report.notice for report in reports if report.notice is not None],
            counters=self.counters.snapshot(),
            cancelled=cancelled,
        )

    @staticmethod
    async def _fetch(
        stage: ItemFetchStage, source: ItemSource, extra_sources: Sequence[ListingSource]
    ) -> List[FetchReport]:
        listing_tasks = [
            asyncio.create_task(stage.fetch_listing(extra)) for extra in extra_sources
        ]
        try:
            primary = await stage.fetch_all(source)
        except BaseException:
            for task in listing_tasks:
                task.cancel()
            await asyncio.gather(*listing_tasks, return_exceptions=True)
            raise
        listings = await asyncio.gather(*listing_tasks)
        return [primary, *listings]


# --- Entry points ----------------------------------------------------------

async def run_with_client(
    settings: Settings,
    keywords: Optional[Iterable[str]] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
    counters: Optional[Counters] = None,
    cancel_event: Optional[asyncio.Event] = None,
    handle_signals: bool = False,
    client_factory: Callable[[Settings], httpx.AsyncClient] = build_http_client,
) -> PipelineResult:
    """
    Run against Hacker News (plus the optional blog index) with a shared client.

    A client passed in stays open; otherwise one is created and closed here. With
    ``handle_signals`` SIGINT sets the cancel event instead of interrupting.
    """
    cancel_event = cancel_event or asyncio.Event()
    owns_client = client is None
    http_client = client if client is not None else client_factory(settings)

    loop = asyncio.get_running_loop()
    if handle_signals:
        loop.add_signal_handler(signal.SIGINT, _request_shutdown, cancel_event)

    try:
        extras: List[ListingSource] = []
        if settings.blog_index_url:
            extras.append(BlogIndexSource(http_client, settings.blog_index_url))
        pipeline = Pipeline(settings, counters=counters, cancel_event=cancel_event)
        return await pipeline.run(
            HackerNewsSource(http_client, settings.hacker_news_base_url),
            keywords,
            extra_sources=extras,
        )
    finally:
        if handle_signals:
            loop.remove_signal_handler(signal.SIGINT)
        if owns_client:
            await http_client.aclose()


def _request_shutdown(cancel_event: asyncio.Event) -> None:
    logger.info("Shutdown signal received, initiating graceful shutdown")
    cancel_event.set()


def run_pipeline(
    settings: Optional[Settings] = None,
    keywords: Optional[Iterable[str]] = None,
    **kwargs,
) -> PipelineResult:
    """Synchronous wrapper around ``run_with_client``."""
    return asyncio.run(run_with_client(settings or get_settings(), keywords, **kwargs))
