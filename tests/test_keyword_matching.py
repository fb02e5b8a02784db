import dataclasses
import pickle

import pytest

from news_relevance.errors import ConfigError
from news_relevance.keyword_matching import KeywordMatcher, KeywordSet, build_matcher


def test_keyword_set_normalizes_and_dedupes():
    keywords = KeywordSet.from_iterable([" Rust ", "rust", "ASYNC", ""])

    assert keywords.keywords == ("rust", "async")
    assert len(keywords) == 2
    assert list(keywords) == ["rust", "async"]


@pytest.mark.parametrize("keywords", [[], ["", "   "]])
def test_empty_keyword_set_is_rejected(keywords):
    with pytest.raises(ConfigError, match="cannot be empty"):
        KeywordMatcher.build(keywords)


def test_matching_is_case_insensitive():
    matcher = build_matcher(["rust"])

    assert matcher.find_all("Rust") == matcher.find_all("rust") == matcher.find_all("RUST")
    assert matcher.find_all("Rust") == (0,)


def test_find_all_returns_distinct_indices_in_configured_order():
    matcher = build_matcher(["async", "rust", "wasm"])

    assert matcher.find_all("Rust rust and async RUST") == (0, 1)
    assert matcher.keywords_for(matcher.find_all("rust, async")) == ["async", "rust"]


def test_count_all_counts_every_occurrence():
    matcher = build_matcher(["rust", "async"])

    assert matcher.count_all("rust async rust RUST") == (3, 1)
    assert matcher.count_all("nothing here") == (0, 0)


def test_overlapping_and_nested_keywords_are_all_found():
    matcher = build_matcher(["rust", "rustacean", "ace"])

    assert matcher.count_all("Rustaceans and rust") == (2, 1, 1)


def test_keywords_are_matched_literally():
    matcher = build_matcher(["c++", "node.js"])

    assert matcher.keywords_for(matcher.find_all("I like C++ and nodexjs")) == ["c++"]


def test_matcher_is_read_only_and_picklable():
    matcher = build_matcher(["rust", "async"])

    with pytest.raises(dataclasses.FrozenInstanceError):
        matcher.keywords = KeywordSet(("python",))

    clone = pickle.loads(pickle.dumps(matcher))
    assert clone.find_all("Async Rust") == matcher.find_all("Async Rust") == (0, 1)
