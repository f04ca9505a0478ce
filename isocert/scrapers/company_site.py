from __future__ import annotations

import logging

import httpx

from isocert.scrapers.base import BaseScraper, RawCertification, ScraperError, parse_html
from isocert.scrapers.extract import extract_certification_bodies, extract_iso_types, slugify_company_name

logger = logging.getLogger(__name__)

SECTION_SELECTOR = ".certification, .cert-section, [data-certification], .quality, .iso-info"


def candidate_urls(company_name: str) -> list[str]:
    slug = slugify_company_name(company_name)
    if not slug:
        return []
    return [
        f"https://www.{slug}.com",
        f"https://{slug}.co.kr",
        f"https://www.{slug}.co.kr",
    ]


class CompanyWebsiteScraper(BaseScraper):
    """Guesses the company homepage and reads its certification sections."""

    name = "Company Website"

    async def fetch(self, company_name: str) -> list[RawCertification]:
        for url in candidate_urls(company_name):
            try:
                html = await self.get_html(url)
            except (httpx.HTTPError, httpx.InvalidURL, ScraperError, UnicodeError) as exc:
                logger.debug("company website probe failed url=%s error=%s", url, exc)
                continue

            results = self._extract(company_name, url, html)
            if results:
                logger.info("company website scraper found certifications at %s", url)
                return results
        return []

    def _extract(self, company_name: str, url: str, html: str) -> list[RawCertification]:
        retrieved_at = self.now()
        results: list[RawCertification] = []
        for section in parse_html(html).select(SECTION_SELECTOR):
            text = section.get_text(" ", strip=True)
            types = extract_iso_types(text)
            if not types:
                continue
            results.append(
                RawCertification(
                    company_name=company_name,
                    certification_types=types,
                    certification_bodies=extract_certification_bodies(text),
                    source=self.name,
                    source_url=url,
                    retrieved_at=retrieved_at,
                )
            )
        return results
