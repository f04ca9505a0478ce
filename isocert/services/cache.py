from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from typing import Protocol

from pydantic import ValidationError

from isocert.schemas.certifications import CachedResultSet, CertificationRecord
from isocert.services.repository import RepositoryError

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_HOURS = 24


class CacheStore(Protocol):
    async def get_cached_results(self, query_key: str) -> CachedResultSet | None: ...

    async def upsert_cached_results(self, entry: CachedResultSet) -> None: ...


class InMemoryCacheStore:
    """Process-local cache store used when no database is configured."""

    def __init__(self) -> None:
        self.entries: dict[str, CachedResultSet] = {}

    async def get_cached_results(self, query_key: str) -> CachedResultSet | None:
        entry = self.entries.get(query_key)
        if entry is None:
            return None
        return entry.model_copy(deep=True)

    async def upsert_cached_results(self, entry: CachedResultSet) -> None:
        self.entries[entry.query_key] = entry.model_copy(deep=True)


def normalize_query_key(company_name: str) -> str:
    return " ".join(company_name.split()).lower()


class CacheGate:
    """Read-through policy around a cache store.

    Reads ignore expired entries without evicting them. Writes are full
    upserts keyed by the normalized query, so the last writer wins. Any store
    failure reads as a miss and writes as ``False``.
    """

    def __init__(
        self,
        store: CacheStore,
        *,
        ttl_hours: int = DEFAULT_CACHE_TTL_HOURS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.ttl = timedelta(hours=ttl_hours)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def get(self, company_name: str) -> list[CertificationRecord] | None:
        query_key = normalize_query_key(company_name)
        try:
            entry = await self.store.get_cached_results(query_key)
        except (RepositoryError, ValidationError) as exc:
            logger.warning("cache store unavailable on read key=%s error=%s", query_key, exc)
            return None

        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            logger.info("cache expired key=%s expires_at=%s", query_key, entry.expires_at.isoformat())
            return None

        logger.info("cache hit key=%s results=%s", query_key, len(entry.results))
        return entry.results

    async def put(
        self,
        company_name: str,
        records: Sequence[CertificationRecord],
        *,
        ttl_hours: int | None = None,
    ) -> bool:
        query_key = normalize_query_key(company_name)
        now = self._clock()
        ttl = self.ttl if ttl_hours is None else timedelta(hours=ttl_hours)
        entry = CachedResultSet(
            query_key=query_key,
            results=[record.model_copy(deep=True) for record in records],
            created_at=now,
            expires_at=now + ttl,
        )
        try:
            await self.store.upsert_cached_results(entry)
        except RepositoryError as exc:
            logger.warning("cache store unavailable on write key=%s error=%s", query_key, exc)
            return False

        logger.info("cache saved key=%s results=%s", query_key, len(entry.results))
        return True
