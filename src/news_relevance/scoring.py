"""Parallel relevance scoring of fetched articles."""

from __future__ import annotations

import logging
import math
import multiprocessing
import os
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from typing import List, Literal, Optional, Sequence

from .keyword_matching import CompiledMatcher
from .models import Article, ScoredArticle

logger = logging.getLogger(__name__)

ScoreMode = Literal["distinct", "weighted"]
ExecutorKind = Literal["thread", "process"]

SCORE_MODES = ("distinct", "weighted")
EXECUTOR_KINDS = ("thread", "process")

# Chunks submitted per worker; idle workers take the next queued chunk.
_CHUNKS_PER_WORKER = 4


def relevance_score(counts: Sequence[int], score_mode: ScoreMode = "distinct") -> float:
    """
    Score from per-keyword occurrence counts.

    distinct: number of distinct keywords matched.
    weighted: total_occurrences ** 1.5 * distinct ** 1.2, or 0.0 with no matches.
    """
    distinct = sum(1 for count in counts if count)
    if score_mode == "distinct":
        return float(distinct)
    if score_mode == "weighted":
        total = sum(counts)
        if total == 0:
            return 0.0
        return total**1.5 * distinct**1.2
    raise ValueError(f"score_mode must be one of {SCORE_MODES}, got {score_mode!r}.")


def score_article(
    article: Article, matcher: CompiledMatcher, score_mode: ScoreMode = "distinct"
) -> ScoredArticle:
    counts = matcher.count_all(article.searchable_text)
    matched = [idx for idx, count in enumerate(counts) if count]
    return ScoredArticle(
        article=article,
        relevance_score=relevance_score(counts, score_mode),
        matched_keywords=matcher.keywords_for(matched),
    )


def _score_chunk(
    articles: List[Article], matcher: CompiledMatcher, score_mode: ScoreMode
) -> List[ScoredArticle]:
    return [score_article(article, matcher, score_mode) for article in articles]


def _make_executor(kind: ExecutorKind, worker_count: int) -> Executor:
    if kind == "thread":
        return ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix="scoring-worker")
    # Spawned, not forked: callers run on a thread beside the event loop.
    return ProcessPoolExecutor(
        max_workers=worker_count, mp_context=multiprocessing.get_context("spawn")
    )


def score_all(
    articles: Sequence[Article],
    matcher: CompiledMatcher,
    *,
    workers: Optional[int] = None,
    executor: ExecutorKind = "process",
    score_mode: ScoreMode = "distinct",
) -> List[ScoredArticle]:
    """
    Score every article on a fixed-size worker pool.

    Matching holds the GIL, so the default ``process`` pool is what spreads work
    across CPUs; ``thread`` avoids process start-up for small batches. With a
    single worker the articles are scored in the calling thread.

    Returns only once every article is scored. The output order matches the input
    order regardless of worker count or completion order. Worker exceptions
    propagate to the caller.
    """
    if score_mode not in SCORE_MODES:
        raise ValueError(f"score_mode must be one of {SCORE_MODES}, got {score_mode!r}.")
    if executor not in EXECUTOR_KINDS:
        raise ValueError(f"executor must be one of {EXECUTOR_KINDS}, got {executor!r}.")
    if workers is not None and workers < 1:
        raise ValueError("workers must be >= 1.")
    if not articles:
        return []

    articles = list(articles)
    worker_count = min(workers or os.cpu_count() or 1, len(articles))
    if worker_count == 1:
        logger.info(f"Scoring {len(articles)} articles in-process (mode={score_mode})")
        return _score_chunk(articles, matcher, score_mode)

    chunk_size = max(1, math.ceil(len(articles) / (worker_count * _CHUNKS_PER_WORKER)))
    chunks = [articles[start : start + chunk_size] for start in range(0, len(articles), chunk_size)]
    outcomes: list[List[ScoredArticle] | None] = [None] * len(chunks)

    logger.info(
        f"Scoring {len(articles)} articles on {worker_count} {executor} workers "
        f"({len(chunks)} chunks, mode={score_mode})"
    )
    with _make_executor(executor, worker_count) as pool:
        future_map = {
            pool.submit(_score_chunk, chunk, matcher, score_mode): idx
            for idx, chunk in enumerate(chunks)
        }
        for future in as_completed(future_map):
            outcomes[future_map[future]] = future.result()

    return [scored for chunk in outcomes if chunk is not None for scored in chunk]


def rank_articles(
    scored: Sequence[ScoredArticle], top: Optional[int] = None
) -> List[ScoredArticle]:
    """Highest score first; ties keep their input order."""
    ranked = sorted(scored, key=lambda item: item.relevance_score, reverse=True)
    return ranked if top is None else ranked[:top]
