"""Command-line entry point for the fetch-and-score pipeline."""

import dataclasses
import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

import typer
from pydantic import BaseModel
from rich import print as rprint
from rich.markup import escape

from .config import get_settings
from .errors import NewsRelevanceError
from .metrics import Counters
from .models import ScoredArticle
from .scoring import SCORE_MODES, rank_articles
from .workflow import PipelineResult, run_pipeline

app = typer.Typer(help="Fetch top Hacker News stories and rank them by keyword relevance.")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _to_plain(value: Any) -> Any:
    """
    Convert models, dataclasses, Paths, exceptions and dates into JSON-serializable
    primitives.
    """
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, BaseException):
        return str(value)
    if dataclasses.is_dataclass(value):
        return _to_plain(dataclasses.asdict(value))
    if isinstance(value, dict):
        return {k: _to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_to_plain(item) for item in value]
    return value


def _build_payload(result: PipelineResult, ranked: List[ScoredArticle]) -> dict:
    return {
        "generated_at": datetime.now(timezone.utc),
        "articles": ranked,
        "failure_count": result.failure_count,
        "failures": result.failures,
        "notices": result.notices,
        "counters": result.counters,
        "cancelled": result.cancelled,
    }


def _write_output(out_path: Path, json_payload: dict) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(
        json.dumps(json_payload, ensure_ascii=False, indent=2),
        encoding="utf-8",
    )


def _display(ranked: List[ScoredArticle]) -> None:
    rprint(f"\n[bold]{'=' * 80}[/bold]")
    rprint(f"[bold]{f'TOP {len(ranked)} ARTICLES':^80}[/bold]")
    rprint(f"[bold]{'=' * 80}[/bold]")
    for position, item in enumerate(ranked, start=1):
        rprint(
            f"\n{position}. {escape(item.article.title)} "
            f"[green][Score: {item.relevance_score:.2f}][/green]"
        )
        rprint(f"   Source: {escape(item.article.source)}")
        if item.article.url:
            rprint(f"   URL: {escape(item.article.url)}")
        if item.matched_keywords:
            rprint(f"   Matched: {escape(', '.join(item.matched_keywords))}")
        rprint("-" * 80)


@app.command()
def run(
    keyword: Optional[List[str]] = typer.Option(
        None,
        "--keyword",
        "-k",
        help="Keyword to score against; repeat for several. Defaults to configured keywords.",
    ),
    limit: Optional[int] = typer.Option(
        None, "--limit", "-n", help="Maximum number of story ids to fetch."
    ),
    top: int = typer.Option(10, "--top", "-t", help="Number of ranked articles to print."),
    out: Optional[Path] = typer.Option(
        None, "--out", "-o", help="Optional path to write all ranked results as JSON."
    ),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c", help="Item fetches allowed in flight at once."
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", help="Scoring worker pool size."
    ),
    score_mode: Optional[str] = typer.Option(
        None, "--score-mode", help="Scoring policy: 'distinct' or 'weighted'.", case_sensitive=False
    ),
    blog_url: Optional[str] = typer.Option(
        None, "--blog-url", help="Blog index page to scrape alongside Hacker News."
    ),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level."),
):
    """
    Fetch stories, score them against the keywords and print the top results.
    """
    if top < 1:
        raise typer.BadParameter("top must be >= 1.")
    if concurrency is not None and concurrency < 1:
        raise typer.BadParameter("concurrency must be >= 1.")
    if workers is not None and workers < 1:
        raise typer.BadParameter("workers must be >= 1.")
    if score_mode is not None and score_mode.lower() not in SCORE_MODES:
        raise typer.BadParameter("score-mode must be 'distinct' or 'weighted'.")

    _configure_logging(log_level)

    overrides: dict[str, Any] = {}
    if limit is not None:
        overrides["fetch_limit"] = limit
    if concurrency is not None:
        overrides["max_concurrent_requests"] = concurrency
    if workers is not None:
        overrides["scoring_thread_count"] = workers
    if score_mode is not None:
        overrides["score_mode"] = score_mode.lower()
    if blog_url is not None:
        overrides["blog_index_url"] = blog_url
    settings = get_settings(**overrides)

    counters = Counters()
    try:
        result = run_pipeline(settings, keyword or None, counters=counters, handle_signals=True)
    except NewsRelevanceError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1)

    if result.cancelled:
        rprint("[yellow]Shutdown requested; showing articles fetched so far.[/yellow]")
    for notice in result.notices:
        rprint(f"[yellow]{escape(str(notice))}[/yellow]")

    ranked = rank_articles(result.articles)
    if ranked:
        _display(ranked[:top])
    else:
        rprint("[yellow]No articles were successfully fetched.[/yellow]")

    if out:
        _write_output(out, _to_plain(_build_payload(result, ranked)))
        rprint(f"[cyan]Wrote output to {out}[/cyan]")

    counters.log_summary()
    rprint(
        f"[cyan]Run complete: {len(result.articles)} scored, "
        f"{result.failure_count} failed.[/cyan]"
    )


def main():
    app()


if __name__ == "__main__":
    main()
