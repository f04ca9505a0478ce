from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc
from pydantic import ValidationError

from isocert.core.config import Settings
from isocert.schemas.certifications import CachedResultSet, CertificationRecord

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base repository error."""


class RepositoryUnavailableError(RepositoryError):
    """Raised when the database is unavailable or not configured."""


# asyncpg raises asyncio.TimeoutError once command_timeout elapses.
_QUERY_ERRORS = (pg_exc.PostgresError, pg_exc.InterfaceError, OSError, asyncio.TimeoutError)


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostgresRepository:
    def __init__(
        self,
        database_url: str | None,
        min_pool_size: int,
        max_pool_size: int,
        command_timeout_seconds: float = 15.0,
        search_limit: int = 20,
    ) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.command_timeout_seconds = command_timeout_seconds
        self.search_limit = max(1, search_limit)
        self._pool: asyncpg.Pool | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> PostgresRepository:
        return cls(
            database_url=settings.database_url,
            min_pool_size=settings.database_pool_min_size,
            max_pool_size=settings.database_pool_max_size,
            command_timeout_seconds=settings.database_command_timeout_seconds,
            search_limit=settings.relational_search_limit,
        )

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def search_certifications(self, company_name: str) -> list[CertificationRecord]:
        """Case-insensitive substring match on the native or English company name."""
        pool = await self._get_pool()
        pattern = f"%{escape_like(company_name)}%"
        try:
            rows = await pool.fetch(
                """
                select
                  company_name,
                  certification_types,
                  certification_bodies,
                  issued_date,
                  expiry_date,
                  status::text as status,
                  sources
                from iso_certifications
                where company_name ilike $1 escape '\\'
                   or company_name_en ilike $1 escape '\\'
                order by last_updated desc
                limit $2
                """,
                pattern,
                self.search_limit,
            )
        except _QUERY_ERRORS as exc:
            raise RepositoryUnavailableError("certification search failed") from exc

        records: list[CertificationRecord] = []
        for row in rows:
            record = self._row_to_record(row)
            if record is not None:
                records.append(record)
        return records

    async def get_cached_results(self, query_key: str) -> CachedResultSet | None:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                """
                select search_query, results, created_at, expires_at
                from search_cache
                where search_query = $1
                """,
                query_key,
            )
        except _QUERY_ERRORS as exc:
            raise RepositoryUnavailableError("cache read failed") from exc

        if row is None:
            return None
        return CachedResultSet(
            query_key=row["search_query"],
            results=self._decode_json(row["results"], default=[]),
            created_at=row["created_at"],
            expires_at=row["expires_at"],
        )

    async def upsert_cached_results(self, entry: CachedResultSet) -> None:
        payload = json.dumps(
            [record.model_dump(mode="json", by_alias=True) for record in entry.results],
            ensure_ascii=False,
        )
        pool = await self._get_pool()
        try:
            await pool.execute(
                """
                insert into search_cache (search_query, results, created_at, expires_at)
                values ($1, $2::jsonb, $3, $4)
                on conflict (search_query) do update
                set
                  results = excluded.results,
                  created_at = excluded.created_at,
                  expires_at = excluded.expires_at
                """,
                entry.query_key,
                payload,
                entry.created_at,
                entry.expires_at,
            )
        except _QUERY_ERRORS as exc:
            raise RepositoryUnavailableError("cache write failed") from exc

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("ISO_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=self.command_timeout_seconds,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc

    @classmethod
    def _row_to_record(cls, row: Any) -> CertificationRecord | None:
        try:
            return CertificationRecord(
                company_name=row["company_name"],
                certification_types=cls._decode_json(row["certification_types"], default=[]),
                certification_bodies=cls._coerce_bodies(cls._decode_json(row["certification_bodies"], default=[])),
                issued_date=row["issued_date"],
                expiry_date=row["expiry_date"],
                status=row["status"],
                sources=cls._decode_json(row["sources"], default=[]),
            )
        except ValidationError as exc:
            logger.warning("skipping malformed certification row company=%s error=%s", row["company_name"], exc)
            return None

    @staticmethod
    def _coerce_bodies(value: Any) -> list[dict[str, Any]]:
        # Seeded rows store plain body names; structured rows store objects.
        if not isinstance(value, list):
            return []
        bodies: list[dict[str, Any]] = []
        for item in value:
            if isinstance(item, str) and item.strip():
                bodies.append({"name": item.strip()})
            elif isinstance(item, dict):
                bodies.append(item)
        return bodies

    @staticmethod
    def _decode_json(value: Any, *, default: Any) -> Any:
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return default
        if value is None:
            return default
        return value
