"""Remote story sources: the Hacker News API and scraped blog index pages.

Sources only perform HTTP GETs and decode the bodies. Retries, rate limiting and
concurrency belong to the fetch stage, so every method here is a single attempt
that raises a ``FetchError`` subclass on failure.
"""

from __future__ import annotations

import asyncio
from typing import List, Protocol
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup
from pydantic import TypeAdapter, ValidationError

from .config import Settings
from .errors import NetworkError, NoResultsError, ParseError
from .models import Article, HackerNewsItem

HACKER_NEWS = "HackerNews"

_ID_LIST = TypeAdapter(List[int])


class ItemSource(Protocol):
    """A source that lists item ids and returns one raw item per id."""

    name: str

    async def list_ids(self) -> List[int]: ...

    async def fetch_item(self, item_id: int) -> HackerNewsItem: ...


class ListingSource(Protocol):
    """A source whose single page already lists every article."""

    name: str

    async def fetch_articles(self) -> List[Article]: ...


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create the shared async client; separated for easier testing."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=settings.http_timeout,
        limits=httpx.Limits(
            max_connections=max(settings.max_concurrent_requests, 1),
            max_keepalive_connections=settings.pool_max_idle_per_host,
        ),
        headers={"User-Agent": settings.user_agent},
    )


async def _get(client: httpx.AsyncClient, url: str) -> httpx.Response:
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise NetworkError(url, str(exc) or type(exc).__name__) from exc
    return response


async def _get_json(client: httpx.AsyncClient, url: str, origin: str):
    response = await _get(client, url)
    try:
        return response.json()
    except ValueError as exc:
        raise ParseError(origin, str(exc)) from exc


def _html_to_text(fragment: str) -> str:
    return BeautifulSoup(fragment, "lxml").get_text(" ", strip=True)


def item_to_article(item: HackerNewsItem, source: str = HACKER_NEWS) -> Article:
    """Convert a decoded item; a missing url becomes an empty string."""
    article = Article(title=item.title.strip(), url=item.url or "", source=source)
    if item.text:
        article = article.with_description(_html_to_text(item.text))
    return article


class HackerNewsSource:
    """Top stories from the Hacker News Firebase API."""

    name = HACKER_NEWS

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = "https://hacker-news.firebaseio.com/v0",
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")

    @property
    def list_url(self) -> str:
        return f"{self.base_url}/topstories.json"

    def item_url(self, item_id: int) -> str:
        return f"{self.base_url}/item/{item_id}.json"

    async def list_ids(self) -> List[int]:
        data = await _get_json(self.client, self.list_url, self.name)
        try:
            return _ID_LIST.validate_python(data)
        except ValidationError as exc:
            raise ParseError(self.name, f"unexpected id list: {exc.errors()[0]['msg']}") from exc

    async def fetch_item(self, item_id: int) -> HackerNewsItem:
        data = await _get_json(self.client, self.item_url(item_id), self.name)
        if data is None:
            raise ParseError(self.name, f"item {item_id} does not exist")
        try:
            return HackerNewsItem.model_validate(data)
        except ValidationError as exc:
            raise ParseError(self.name, f"item {item_id}: {exc.errors()[0]['msg']}") from exc


def parse_blog_index(
    html: str, page_url: str, source: str, row_selector: str = "table tr"
) -> List[Article]:
    """Extract one article per row that holds a link, resolving relative hrefs."""
    soup = BeautifulSoup(html, "lxml")
    articles: List[Article] = []
    seen_urls = set()

    for row in soup.select(row_selector):
        link = row if row.name == "a" else row.find("a")
        if not link:
            continue

        title = link.get_text(strip=True)
        if not title or title.startswith("Posts in"):
            continue

        href = (link.get("href") or "").strip()
        if not href or href.startswith("#") or href.startswith("javascript:"):
            continue

        absolute_url = urljoin(page_url, href)
        if absolute_url in seen_urls:
            continue
        seen_urls.add(absolute_url)

        articles.append(Article(title=title, url=absolute_url, source=source))

    return articles


class BlogIndexSource:
    """A blog whose index page lists its posts in a table."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str = "https://blog.rust-lang.org/",
        name: str = "Rust Blog",
        row_selector: str = "table tr",
    ):
        self.client = client
        self.url = url
        self.name = name
        self.row_selector = row_selector

    async def fetch_articles(self) -> List[Article]:
        response = await _get(self.client, self.url)
        articles = await asyncio.to_thread(
            parse_blog_index, response.text, self.url, self.name, self.row_selector
        )
        if not articles:
            raise NoResultsError(self.name)
        return articles
