from collections.abc import Mapping
from functools import lru_cache
import os

from pydantic_settings import BaseSettings, SettingsConfigDict

NETLIFY_DEADLINE_SECONDS = 4.0
VERCEL_PRODUCTION_DEADLINE_SECONDS = 8.0
VERCEL_PREVIEW_DEADLINE_SECONDS = 4.0
LOCAL_DEADLINE_SECONDS = 5.0

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    app_name: str = "isocert-api"
    environment: str = "dev"
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    database_command_timeout_seconds: float = 15.0
    relational_search_limit: int = 20
    cache_ttl_hours: int = 24
    source_deadline_seconds: float | None = None
    scraper_request_timeout_seconds: float = 5.0
    scraper_user_agent: str = DEFAULT_USER_AGENT
    llm_api_key: str | None = None
    llm_base_url: str | None = None
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.0
    otel_enabled: bool = True
    otel_service_name: str = "isocert"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="ISO_", extra="ignore")

    def resolved_source_deadline_seconds(self, environ: Mapping[str, str] | None = None) -> float:
        if self.source_deadline_seconds is not None and self.source_deadline_seconds > 0:
            return self.source_deadline_seconds
        return platform_deadline_seconds(os.environ if environ is None else environ)


def platform_deadline_seconds(environ: Mapping[str, str]) -> float:
    """Deadline for the scraper/LLM race, sized to the hosting platform's execution limit."""
    if environ.get("NETLIFY"):
        return NETLIFY_DEADLINE_SECONDS
    if environ.get("VERCEL"):
        if environ.get("VERCEL_ENV") == "production":
            return VERCEL_PRODUCTION_DEADLINE_SECONDS
        return VERCEL_PREVIEW_DEADLINE_SECONDS
    return LOCAL_DEADLINE_SECONDS


def platform_name(environ: Mapping[str, str]) -> str:
    if environ.get("NETLIFY"):
        return "netlify"
    if environ.get("VERCEL"):
        return "vercel"
    return "local"


@lru_cache
def get_settings() -> Settings:
    return Settings()
