from __future__ import annotations

import logging

from isocert.core.dates import normalize_date
from isocert.scrapers.base import BaseScraper, RawCertification, first_text, parse_html
from isocert.scrapers.extract import determine_status, extract_certification_bodies, extract_iso_types

logger = logging.getLogger(__name__)

KSA_LISTING_URL = "https://ksa.or.kr/ksa_kr/876/subview.do"
ROW_SELECTOR = "table tbody tr, .cert-list li, .certification-item, [data-certification]"
COMPANY_SELECTORS = ("td:nth-child(1), .company-name, [data-company]", "strong")
TYPE_SELECTORS = ("td:nth-child(2), .cert-type, [data-cert-type]", ".iso-type")
BODY_SELECTORS = ("td:nth-child(3), .cert-body, [data-cert-body]", ".cert-agency")
ISSUED_SELECTORS = ("td:nth-child(4), .issued-date, [data-issued]",)
EXPIRY_SELECTORS = ("td:nth-child(5), .expiry-date, [data-expiry]",)


class KSAScraper(BaseScraper):
    """Korean Standards Association certified-company listing."""

    name = "KSA"

    async def fetch(self, company_name: str) -> list[RawCertification]:
        html = await self.get_html(
            KSA_LISTING_URL,
            headers={
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "ko-KR,ko;q=0.9",
            },
        )
        rows = parse_html(html).select(ROW_SELECTOR)
        if not rows:
            logger.info("ksa listing has no certification rows")
            return []

        needle = company_name.casefold()
        retrieved_at = self.now()
        today = retrieved_at.date()
        results: list[RawCertification] = []
        for row in rows:
            company_text = first_text(row, COMPANY_SELECTORS)
            if not company_text or needle not in company_text.casefold():
                continue

            types = extract_iso_types(first_text(row, TYPE_SELECTORS))
            if not types:
                continue

            expiry_text = first_text(row, EXPIRY_SELECTORS)
            results.append(
                RawCertification(
                    company_name=company_text,
                    certification_types=types,
                    certification_bodies=extract_certification_bodies(first_text(row, BODY_SELECTORS)),
                    issued_date=normalize_date(first_text(row, ISSUED_SELECTORS)),
                    expiry_date=normalize_date(expiry_text),
                    status=determine_status(expiry_text, today=today),
                    source=self.name,
                    source_url=KSA_LISTING_URL,
                    retrieved_at=retrieved_at,
                )
            )

        logger.info("ksa scraper found %s certifications", len(results))
        return results
