from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Literal, Protocol

from opentelemetry import trace

from isocert.schemas.certifications import CertificationRecord
from isocert.services.merge import merge_records

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SourceFamily = Literal["relational", "scraped", "llm"]
SourceErrorKind = Literal["timeout", "failure"]


class RelationalSource(Protocol):
    async def search_certifications(self, company_name: str) -> list[CertificationRecord]: ...


class ScrapedSource(Protocol):
    async def fetch_records(self, company_name: str) -> list[CertificationRecord]: ...


class LLMSource(Protocol):
    async def lookup(self, company_name: str) -> list[CertificationRecord]: ...


@dataclass(slots=True)
class SourceError:
    kind: SourceErrorKind
    message: str


@dataclass(slots=True)
class SourceOutcome:
    family: SourceFamily
    records: list[CertificationRecord] = field(default_factory=list)
    error: SourceError | None = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class AggregationResult:
    records: list[CertificationRecord]
    outcomes: list[SourceOutcome]


class AggregationEngine:
    """Merges relational, scraped and LLM records under a wall-clock deadline.

    The relational lookup runs first with no deadline. The scraper pool and the
    LLM lookup then run concurrently, each cancelled independently once
    ``deadline_seconds`` elapses. Every failure or timeout becomes an empty
    :class:`SourceOutcome` here, so one source can never fail the whole call.
    """

    def __init__(
        self,
        *,
        relational: RelationalSource,
        scrapers: ScrapedSource,
        llm: LLMSource,
        deadline_seconds: float,
    ) -> None:
        self.relational = relational
        self.scrapers = scrapers
        self.llm = llm
        self.deadline_seconds = deadline_seconds

    async def aggregate(self, company_name: str) -> list[CertificationRecord]:
        result = await self.aggregate_with_outcomes(company_name)
        return result.records

    async def aggregate_with_outcomes(self, company_name: str) -> AggregationResult:
        with tracer.start_as_current_span("aggregate") as span:
            span.set_attribute("isocert.deadline_seconds", self.deadline_seconds)

            relational = await self._collect(
                "relational",
                lambda: self.relational.search_certifications(company_name),
                timeout=None,
            )
            scraped, llm = await asyncio.gather(
                self._collect(
                    "scraped",
                    lambda: self.scrapers.fetch_records(company_name),
                    timeout=self.deadline_seconds,
                ),
                self._collect(
                    "llm",
                    lambda: self.llm.lookup(company_name),
                    timeout=self.deadline_seconds,
                ),
            )

            outcomes = [relational, scraped, llm]
            # Family order decides which record seeds each merged entity.
            candidates = [record for outcome in outcomes for record in outcome.records]
            merged = merge_records(candidates)

            span.set_attribute("isocert.candidate_count", len(candidates))
            span.set_attribute("isocert.result_count", len(merged))
            logger.info(
                "aggregated company=%s candidates=%s merged=%s failed_families=%s",
                company_name,
                len(candidates),
                len(merged),
                [outcome.family for outcome in outcomes if not outcome.ok],
            )
            return AggregationResult(records=merged, outcomes=outcomes)

    async def _collect(
        self,
        family: SourceFamily,
        call: Callable[[], Awaitable[list[CertificationRecord]]],
        *,
        timeout: float | None,
    ) -> SourceOutcome:
        started_at = time.perf_counter()
        with tracer.start_as_current_span(f"source.{family}") as span:
            try:
                if timeout is None:
                    records = await call()
                else:
                    records = await asyncio.wait_for(call(), timeout=timeout)
            except asyncio.TimeoutError as exc:
                elapsed_ms = (time.perf_counter() - started_at) * 1000.0
                if timeout is None:
                    # Raised by the source itself; no deadline applies to this family.
                    logger.warning("source failed family=%s error=%r", family, exc)
                    span.set_attribute("isocert.source_error", "failure")
                    return SourceOutcome(
                        family=family,
                        error=SourceError(kind="failure", message=str(exc) or "source raised TimeoutError"),
                        elapsed_ms=elapsed_ms,
                    )
                logger.warning("source timed out family=%s timeout_s=%.2f", family, timeout)
                span.set_attribute("isocert.source_error", "timeout")
                return SourceOutcome(
                    family=family,
                    error=SourceError(kind="timeout", message=f"timed out after {timeout}s"),
                    elapsed_ms=elapsed_ms,
                )
            except Exception as exc:
                elapsed_ms = (time.perf_counter() - started_at) * 1000.0
                logger.warning("source failed family=%s error=%r", family, exc)
                span.set_attribute("isocert.source_error", "failure")
                return SourceOutcome(
                    family=family,
                    error=SourceError(kind="failure", message=str(exc) or type(exc).__name__),
                    elapsed_ms=elapsed_ms,
                )

            elapsed_ms = (time.perf_counter() - started_at) * 1000.0
            span.set_attribute("isocert.record_count", len(records))
            return SourceOutcome(family=family, records=list(records), elapsed_ms=elapsed_ms)
