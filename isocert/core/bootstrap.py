from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from isocert.core.config import Settings
from isocert.services.aggregator import AggregationEngine
from isocert.services.cache import CacheGate, CacheStore, InMemoryCacheStore
from isocert.services.llm import LLMLookup, OpenAIChatClient
from isocert.services.repository import PostgresRepository
from isocert.services.search import CertificationSearchService
from isocert.scrapers.pool import ScraperPool, build_default_scrapers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_search_service(settings: Settings) -> AsyncIterator[CertificationSearchService]:
    """Build every collaborator once, hand out the search service, close them on exit."""
    repository = PostgresRepository.from_settings(settings)
    http_client = httpx.AsyncClient(
        timeout=settings.scraper_request_timeout_seconds,
        follow_redirects=True,
    )
    llm_client = OpenAIChatClient.from_settings(settings)

    cache_store: CacheStore = repository
    if not settings.database_url:
        logger.info("ISO_DATABASE_URL not set; using in-process search cache")
        cache_store = InMemoryCacheStore()

    deadline_seconds = settings.resolved_source_deadline_seconds()

    engine = AggregationEngine(
        relational=repository,
        scrapers=ScraperPool(build_default_scrapers(http_client, user_agent=settings.scraper_user_agent)),
        llm=LLMLookup(llm_client),
        deadline_seconds=deadline_seconds,
    )
    service = CertificationSearchService(
        engine=engine,
        cache=CacheGate(cache_store, ttl_hours=settings.cache_ttl_hours),
    )
    try:
        yield service
    finally:
        await http_client.aclose()
        await llm_client.close()
        await repository.close()
