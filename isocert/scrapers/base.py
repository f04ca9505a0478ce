from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx
from bs4 import BeautifulSoup

from isocert.core.config import DEFAULT_USER_AGENT
from isocert.schemas.certifications import (
    CertificationBody,
    CertificationRecord,
    CertificationSource,
    CertificationStatus,
)


class ScraperError(Exception):
    """Raised when a source page cannot be fetched or understood."""


@dataclass(slots=True)
class RawCertification:
    company_name: str
    certification_types: list[str]
    source: str
    source_url: str
    retrieved_at: datetime
    certification_bodies: list[CertificationBody] = field(default_factory=list)
    issued_date: str | None = None
    expiry_date: str | None = None
    status: CertificationStatus = "unknown"

    def to_record(self) -> CertificationRecord:
        return CertificationRecord(
            company_name=self.company_name,
            certification_types=list(self.certification_types),
            certification_bodies=[body.model_copy() for body in self.certification_bodies],
            issued_date=self.issued_date,
            expiry_date=self.expiry_date,
            status=self.status,
            sources=[
                CertificationSource(
                    url=self.source_url,
                    source=self.source,
                    retrieved_at=self.retrieved_at,
                )
            ],
        )


class BaseScraper:
    name = "scraper"

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.client = client
        self.user_agent = user_agent
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def fetch(self, company_name: str) -> list[RawCertification]:
        raise NotImplementedError

    def now(self) -> datetime:
        return self._clock()

    async def get_html(self, url: str, *, headers: dict[str, str] | None = None) -> str:
        request_headers = {"User-Agent": self.user_agent}
        if headers:
            request_headers.update(headers)
        response = await self.client.get(url, headers=request_headers)
        if response.status_code >= 400:
            raise ScraperError(f"{self.name} returned HTTP {response.status_code} for {url}")
        return response.text


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


def first_text(element: Any, selectors: Sequence[str]) -> str:
    """Text of the first selector (in order) that matches anything non-blank."""
    for selector in selectors:
        text = " ".join(node.get_text(" ", strip=True) for node in element.select(selector)).strip()
        if text:
            return text
    return ""


def first_attr(element: Any, candidates: Sequence[tuple[str, str]]) -> str:
    for selector, attribute in candidates:
        for node in element.select(selector):
            value = node.get(attribute)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return ""
