"""Multi-keyword matching compiled once and shared read-only by scoring workers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Sequence, Tuple

from .errors import ConfigError


@dataclass(frozen=True)
class KeywordSet:
    """Ordered, lowercase, de-duplicated keywords."""

    keywords: Tuple[str, ...]

    @classmethod
    def from_iterable(cls, values: Iterable[str]) -> "KeywordSet":
        seen: Dict[str, None] = {}
        for value in values:
            keyword = value.strip().lower()
            if keyword:
                seen.setdefault(keyword, None)
        if not seen:
            raise ConfigError("keywords list cannot be empty")
        return cls(tuple(seen))

    def __len__(self) -> int:
        return len(self.keywords)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keywords)

    def __getitem__(self, index: int) -> str:
        return self.keywords[index]


@dataclass(frozen=True, eq=False)
class CompiledMatcher:
    """
    Case-insensitive search for every keyword in a single pass over the text.

    The pattern is a zero-width lookahead over the keywords, longest first, so each
    text position reports the longest keyword starting there. Every shorter keyword
    that is a prefix of that hit also occurs at the same position and is credited
    through ``prefixes``; together this finds overlapping and nested keywords.
    """

    keywords: KeywordSet
    pattern: re.Pattern = field(repr=False)
    index_of: Dict[str, int] = field(repr=False)
    prefixes: Tuple[Tuple[int, ...], ...] = field(repr=False)

    def count_all(self, text: str) -> Tuple[int, ...]:
        """Occurrences of each keyword, in configured order."""
        counts = [0] * len(self.keywords)
        for match in self.pattern.finditer(text.lower()):
            longest = self.index_of[match.group(1)]
            for idx in self.prefixes[longest]:
                counts[idx] += 1
        return tuple(counts)

    def find_all(self, text: str) -> Tuple[int, ...]:
        """Indices of the distinct keywords found, ascending."""
        return tuple(idx for idx, count in enumerate(self.count_all(text)) if count)

    def keywords_for(self, indices: Sequence[int]) -> Tuple[str, ...]:
        return tuple(self.keywords[idx] for idx in indices)


class KeywordMatcher:
    """Builds a ``CompiledMatcher``; construction is the only step that can fail."""

    @staticmethod
    def build(keywords: KeywordSet | Iterable[str]) -> CompiledMatcher:
        keyword_set = KeywordSet.from_iterable(keywords)

        longest_first = sorted(keyword_set, key=len, reverse=True)
        alternation = "|".join(re.escape(keyword) for keyword in longest_first)
        try:
            pattern = re.compile(f"(?=({alternation}))")
        except re.error as exc:
            raise ConfigError(f"failed to compile keyword matcher: {exc}") from exc

        index_of = {keyword: idx for idx, keyword in enumerate(keyword_set)}
        prefixes = tuple(
            tuple(
                other_idx
                for other_idx, other in enumerate(keyword_set)
                if keyword.startswith(other)
            )
            for keyword in keyword_set
        )
        return CompiledMatcher(
            keywords=keyword_set, pattern=pattern, index_of=index_of, prefixes=prefixes
        )


def build_matcher(keywords: KeywordSet | Iterable[str]) -> CompiledMatcher:
    """Convenience wrapper around ``KeywordMatcher.build``."""
    return KeywordMatcher.build(keywords)
