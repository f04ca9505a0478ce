from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol

import httpx

from isocert.core.config import DEFAULT_USER_AGENT
from isocert.schemas.certifications import CertificationRecord
from isocert.scrapers.base import RawCertification
from isocert.scrapers.company_site import CompanyWebsiteScraper
from isocert.scrapers.headlines import GoogleNewsScraper, NaverBlogScraper, NaverNewsScraper
from isocert.scrapers.ksa import KSAScraper

logger = logging.getLogger(__name__)


class Scraper(Protocol):
    name: str

    async def fetch(self, company_name: str) -> list[RawCertification]: ...


class ScraperPool:
    """Runs every scraper concurrently; one scraper failing never hides the others."""

    def __init__(self, scrapers: Sequence[Scraper]) -> None:
        self.scrapers = list(scrapers)

    async def fetch_all(self, company_name: str) -> list[RawCertification]:
        outcomes = await asyncio.gather(
            *(scraper.fetch(company_name) for scraper in self.scrapers),
            return_exceptions=True,
        )

        # Results are concatenated in scraper order, not completion order.
        results: list[RawCertification] = []
        for scraper, outcome in zip(self.scrapers, outcomes):
            if isinstance(outcome, Exception):
                logger.warning("scraper failed name=%s error=%r", scraper.name, outcome)
                continue
            if isinstance(outcome, asyncio.CancelledError):
                logger.warning("scraper cancelled name=%s", scraper.name)
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            logger.info("scraper finished name=%s count=%s", scraper.name, len(outcome))
            results.extend(outcome)

        logger.info("scraper pool collected %s raw certifications", len(results))
        return results

    async def fetch_records(self, company_name: str) -> list[CertificationRecord]:
        return [raw.to_record() for raw in await self.fetch_all(company_name)]


def build_default_scrapers(
    client: httpx.AsyncClient,
    *,
    user_agent: str = DEFAULT_USER_AGENT,
) -> list[Scraper]:
    return [
        KSAScraper(client, user_agent=user_agent),
        GoogleNewsScraper(client, user_agent=user_agent),
        NaverNewsScraper(client, user_agent=user_agent),
        CompanyWebsiteScraper(client, user_agent=user_agent),
        NaverBlogScraper(client, user_agent=user_agent),
    ]
