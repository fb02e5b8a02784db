"""Data models for the fetch-and-score pipeline."""

from __future__ import annotations

from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Article(BaseModel):
    """Normalized, immutable representation of a fetched story."""

    model_config = ConfigDict(frozen=True)

    title: str
    url: str = Field("", description="Link to the story; empty when the item has none.")
    source: str = Field(..., description="Origin label, e.g. the feed name.")
    description: Optional[str] = None

    def with_description(self, description: str) -> "Article":
        return self.model_copy(update={"description": description})

    @property
    def searchable_text(self) -> str:
        if self.description is not None:
            return f"{self.title} {self.description}"
        return self.title


class ScoredArticle(BaseModel):
    """An article plus its relevance score; terminal value of a run."""

    model_config = ConfigDict(frozen=True)

    article: Article
    relevance_score: float
    matched_keywords: Tuple[str, ...] = Field(
        default=(), description="Distinct matches in configured-keyword order."
    )


class HackerNewsItem(BaseModel):
    """Raw item record returned by the Hacker News item endpoint."""

    id: int
    title: str
    url: Optional[str] = None
    text: Optional[str] = None
