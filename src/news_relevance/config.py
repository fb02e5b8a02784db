"""Configuration helpers for the news relevance pipeline."""

from __future__ import annotations

import json
import logging
import os
from typing import Annotated, Any, Literal, Optional, Tuple

from pydantic import (
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_KEYWORDS = ("rust", "async", "python", "performance", "concurrency")


def _default_thread_count() -> int:
    return os.cpu_count() or 1


class Settings(BaseSettings):
    """
    Pipeline settings loaded from environment variables (prefix NEWS_RELEVANCE_).

    Invalid values fall back to their defaults instead of failing the run.
    """

    model_config = SettingsConfigDict(
        env_prefix="NEWS_RELEVANCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    http_timeout: float = Field(
        10.0, gt=0, description="Per-attempt timeout for HTTP calls, in seconds."
    )
    pool_max_idle_per_host: int = Field(
        10, ge=0, description="Keep-alive connections kept open by the HTTP client."
    )
    retry_attempts: int = Field(3, ge=1, description="Total attempts per request.")
    retry_delay_ms: int = Field(500, ge=0, description="Delay between attempts.")
    retry_backoff_factor: float = Field(
        1.0,
        ge=1.0,
        description="Multiplier applied to the delay after each failure; 1.0 is a fixed delay.",
    )
    max_concurrent_requests: int = Field(
        10, ge=1, description="Item fetches allowed in flight at once."
    )
    fetch_limit: int = Field(30, ge=0, description="Cap on story ids processed per run.")
    requests_per_second: float = Field(
        10.0, gt=0, description="Token refill rate for outbound requests."
    )
    rate_limit_burst: Optional[int] = Field(
        None, ge=1, description="Token bucket capacity; defaults to the refill rate."
    )
    scoring_thread_count: int = Field(
        default_factory=_default_thread_count,
        ge=1,
        description="Worker pool size for the scoring stage.",
    )
    scoring_executor: Literal["thread", "process"] = Field(
        "process",
        description="Pool type used for scoring; process pools run on every CPU.",
    )
    score_mode: Literal["distinct", "weighted"] = Field(
        "distinct",
        description="distinct: count of distinct keywords; weighted: occurrence-weighted.",
    )
    keywords: Annotated[Tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_KEYWORDS,
        description="Keywords to score against; JSON list or comma-separated string.",
    )
    hacker_news_base_url: str = "https://hacker-news.firebaseio.com/v0"
    blog_index_url: Optional[str] = Field(
        None, description="Optional blog index page scraped alongside Hacker News."
    )
    user_agent: str = "news-relevance/0.1.0"

    @field_validator("keywords", mode="before")
    @classmethod
    def _split_keywords(cls, value: Any) -> Any:
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                return json.loads(stripped)
            return [part.strip() for part in stripped.split(",") if part.strip()]
        return value

    @field_validator("*", mode="wrap")
    @classmethod
    def _fallback_to_default(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> Any:
        try:
            return handler(value)
        except ValidationError as exc:
            field = cls.model_fields[info.field_name]
            default = field.get_default(call_default_factory=True)
            logger.warning(
                f"Invalid value for {info.field_name} ({value!r}); "
                f"using default {default!r}: {exc.errors()[0]['msg']}"
            )
            return default

    @property
    def retry_delay(self) -> float:
        """Retry delay in seconds."""
        return self.retry_delay_ms / 1000.0

    @property
    def burst(self) -> int:
        if self.rate_limit_burst is not None:
            return self.rate_limit_burst
        return max(1, int(self.requests_per_second))


def get_settings(**overrides: Any) -> Settings:
    """Return a fresh settings snapshot; keyword overrides win over the environment."""
    return Settings(**overrides)
