from __future__ import annotations

import pytest

from isocert.core.config import Settings, platform_deadline_seconds, platform_name


@pytest.mark.parametrize(
    ("environ", "expected_deadline", "expected_platform"),
    [
        ({"NETLIFY": "true"}, 4.0, "netlify"),
        ({"VERCEL": "1", "VERCEL_ENV": "production"}, 8.0, "vercel"),
        ({"VERCEL": "1", "VERCEL_ENV": "preview"}, 4.0, "vercel"),
        ({}, 5.0, "local"),
    ],
)
def test_platform_deadline_follows_hosting_environment(
    environ: dict[str, str], expected_deadline: float, expected_platform: str
) -> None:
    assert platform_deadline_seconds(environ) == expected_deadline
    assert platform_name(environ) == expected_platform


def test_explicit_source_deadline_overrides_platform() -> None:
    settings = Settings(source_deadline_seconds=2.5)

    assert settings.resolved_source_deadline_seconds({"NETLIFY": "true"}) == 2.5


def test_non_positive_source_deadline_falls_back_to_platform() -> None:
    settings = Settings(source_deadline_seconds=0)

    assert settings.resolved_source_deadline_seconds({"VERCEL": "1", "VERCEL_ENV": "production"}) == 8.0


def test_settings_read_prefixed_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ISO_CACHE_TTL_HOURS", "6")
    monkeypatch.setenv("ISO_LLM_MODEL", "gpt-test")

    settings = Settings()

    assert settings.cache_ttl_hours == 6
    assert settings.llm_model == "gpt-test"
    assert settings.relational_search_limit == 20
