"""Error taxonomy for the fetch-and-score pipeline.

Constructor arguments are kept in ``args`` and the message is built in
``__str__``, so errors survive ``pickle`` and ``copy`` unchanged.
"""

from __future__ import annotations


class NewsRelevanceError(Exception):
    """Base class for every error raised by this package."""


class FetchError(NewsRelevanceError):
    """A single remote call failed; retried and recovered per item."""


class NetworkError(FetchError):
    """Transport failure or non-success HTTP status."""

    def __init__(self, url: str, message: str):
        super().__init__(url, message)
        self.url = url
        self.message = message

    def __str__(self) -> str:
        return f"HTTP request failed for {self.url}: {self.message}"


class ParseError(FetchError):
    """Response body could not be decoded into the expected shape."""

    def __init__(self, origin: str, message: str):
        super().__init__(origin, message)
        self.origin = origin
        self.message = message

    def __str__(self) -> str:
        return f"Failed to parse response from {self.origin}: {self.message}"


class FetchTimeoutError(FetchError):
    """Every attempt timed out."""

    def __init__(self, context: str):
        super().__init__(context)
        self.context = context

    def __str__(self) -> str:
        return f"Timeout error: {self.context}"


class RateLimitError(NewsRelevanceError):
    """Rate limiter misconfiguration (not a throttling event)."""


class ConfigError(NewsRelevanceError):
    """Invalid keyword set or tunables."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"Configuration error: {self.message}"


class NoResultsError(NewsRelevanceError):
    """A source returned nothing to process. Informational, not fatal."""

    def __init__(self, source: str):
        super().__init__(source)
        self.source = source

    def __str__(self) -> str:
        return f"No articles found from source: {self.source}"


class ShutdownError(NewsRelevanceError):
    """Cancellation was requested while work was pending."""

    def __init__(self, message: str = "Shutdown requested"):
        super().__init__(message)
