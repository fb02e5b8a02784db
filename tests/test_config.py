import pytest
from pydantic import ValidationError

from news_relevance.config import DEFAULT_KEYWORDS, Settings, get_settings


def test_defaults_are_documented_values():
    settings = get_settings()

    assert settings.http_timeout == 10.0
    assert settings.retry_attempts == 3
    assert settings.retry_delay_ms == 500
    assert settings.retry_delay == pytest.approx(0.5)
    assert settings.max_concurrent_requests == 10
    assert settings.fetch_limit == 30
    assert settings.requests_per_second == 10.0
    assert settings.burst == 10
    assert settings.scoring_thread_count >= 1
    assert settings.scoring_executor == "process"
    assert settings.score_mode == "distinct"
    assert settings.keywords == DEFAULT_KEYWORDS


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("NEWS_RELEVANCE_RETRY_ATTEMPTS", "5")
    monkeypatch.setenv("NEWS_RELEVANCE_REQUESTS_PER_SECOND", "2.5")
    monkeypatch.setenv("NEWS_RELEVANCE_SCORE_MODE", "weighted")

    settings = Settings()

    assert settings.retry_attempts == 5
    assert settings.requests_per_second == 2.5
    assert settings.burst == 2
    assert settings.score_mode == "weighted"


def test_env_file_is_read(tmp_path):
    (tmp_path / ".env").write_text("NEWS_RELEVANCE_FETCH_LIMIT=7\n", encoding="utf-8")

    assert Settings().fetch_limit == 7


@pytest.mark.parametrize(
    ("name", "raw", "expected"),
    [
        ("NEWS_RELEVANCE_RETRY_ATTEMPTS", "0", 3),
        ("NEWS_RELEVANCE_RETRY_ATTEMPTS", "many", 3),
        ("NEWS_RELEVANCE_HTTP_TIMEOUT", "-1", 10.0),
        ("NEWS_RELEVANCE_MAX_CONCURRENT_REQUESTS", "0", 10),
        ("NEWS_RELEVANCE_SCORE_MODE", "loudest", "distinct"),
    ],
)
def test_invalid_values_fall_back_to_defaults(monkeypatch, name, raw, expected):
    monkeypatch.setenv(name, raw)

    settings = Settings()

    field = name.removeprefix("NEWS_RELEVANCE_").lower()
    assert getattr(settings, field) == expected


def test_keywords_accept_comma_separated_and_json(monkeypatch):
    monkeypatch.setenv("NEWS_RELEVANCE_KEYWORDS", "Rust, tokio ,,WASM")
    assert Settings().keywords == ("Rust", "tokio", "WASM")

    monkeypatch.setenv("NEWS_RELEVANCE_KEYWORDS", '["llm", "gpu"]')
    assert Settings().keywords == ("llm", "gpu")


def test_explicitly_empty_keywords_are_kept(monkeypatch):
    monkeypatch.setenv("NEWS_RELEVANCE_KEYWORDS", "")

    assert Settings().keywords == ()


def test_overrides_win_and_settings_are_frozen():
    settings = get_settings(fetch_limit=3, rate_limit_burst=1)

    assert settings.fetch_limit == 3
    assert settings.burst == 1
    with pytest.raises(ValidationError):
        settings.fetch_limit = 4


def test_keywords_are_an_immutable_tuple():
    settings = get_settings(keywords=["rust", "async"])

    assert settings.keywords == ("rust", "async")
    with pytest.raises(AttributeError):
        settings.keywords.append("injected")
