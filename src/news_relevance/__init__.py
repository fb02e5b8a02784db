"""Fetch top stories concurrently and score them against a keyword set."""

__version__ = "0.1.0"

__all__ = [
    "config",
    "errors",
    "fetcher",
    "keyword_matching",
    "metrics",
    "models",
    "scoring",
    "sources",
    "workflow",
]
