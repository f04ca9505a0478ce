from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from opentelemetry import trace

from isocert.schemas.certifications import SearchResponse
from isocert.services.aggregator import AggregationEngine
from isocert.services.cache import CacheGate

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class CertificationSearchService:
    """Caller-facing lookup: cache first, live aggregation on a miss."""

    def __init__(
        self,
        *,
        engine: AggregationEngine,
        cache: CacheGate,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.engine = engine
        self.cache = cache
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def search(self, company_name: str) -> SearchResponse:
        query = company_name.strip()
        if not query:
            return SearchResponse(results=[], from_cache=False, timestamp=self._clock())

        with tracer.start_as_current_span("search") as span:
            cached = await self.cache.get(query)
            if cached is not None:
                span.set_attribute("isocert.from_cache", True)
                return SearchResponse(results=cached, from_cache=True, timestamp=self._clock())

            span.set_attribute("isocert.from_cache", False)
            results = await self.engine.aggregate(query)
            if results:
                await self.cache.put(query, results)
            else:
                logger.info("no certifications found company=%s", query)
            return SearchResponse(results=results, from_cache=False, timestamp=self._clock())
