from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import httpx

from isocert.scrapers.base import RawCertification
from isocert.scrapers.company_site import CompanyWebsiteScraper, candidate_urls
from isocert.scrapers.headlines import GoogleNewsScraper, NaverBlogScraper, NaverNewsScraper
from isocert.scrapers.ksa import KSA_LISTING_URL, KSAScraper
from isocert.scrapers.pool import ScraperPool

FIXED_NOW = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)

KSA_HTML = """
<html><body>
<table>
  <thead><tr><th>Company</th><th>Type</th><th>Body</th><th>Issued</th><th>Expiry</th></tr></thead>
  <tbody>
    <tr>
      <td>삼성전자</td><td>ISO 9001:2015, ISO 14001:2015</td><td>한국표준협회</td>
      <td>2022.06.10</td><td>2025.06.09</td>
    </tr>
    <tr>
      <td>삼성전자 반도체</td><td>ISO 45001:2018</td><td>Unknown Registrar</td>
      <td>2020-01-01</td><td>2023-01-01</td>
    </tr>
    <tr>
      <td>LG전자</td><td>ISO 9001:2015</td><td>DQS</td><td>2021-09-20</td><td>2024-09-19</td>
    </tr>
    <tr>
      <td>삼성전자</td><td>품질경영 인증</td><td>KSA</td><td></td><td></td>
    </tr>
  </tbody>
</table>
</body></html>
"""

GOOGLE_HTML = """
<html><body>
  <article><h3>삼성전자, ISO 27001:2013 인증 획득 (DNV)</h3><a href="./articles/abc">read</a></article>
  <article><h3>삼성전자 실적 발표</h3><a href="./articles/def">read</a></article>
  <article><h3>ISO 관련 소식</h3><a href="./articles/ghi">read</a></article>
</body></html>
"""

NAVER_NEWS_HTML = """
<html><body>
  <div class="news_item"><a class="news_tit" href="https://news.example.kr/1">삼성전자 ISO 14001 재인증 KSA</a></div>
  <div class="news_item"><a class="news_tit" href="https://news.example.kr/2">삼성전자 신제품</a></div>
</body></html>
"""

BLOG_HTML = """
<html><body>
  <div class="post_item"><span class="title">ISO 9001:2015 취득 후기</span><span data-url="https://blog.example/9">link</span></div>
</body></html>
"""

COMPANY_HTML = """
<html><body>
  <section class="certification">We hold ISO 9001:2015 and ISO 14001:2015 certified by TUV.</section>
  <section class="quality">Quality first.</section>
</body></html>
"""


def test_ksa_scraper_extracts_matching_rows() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == KSA_LISTING_URL
        assert request.headers["Accept-Language"].startswith("ko-KR")
        return httpx.Response(200, text=KSA_HTML, request=request)

    results = _run_scraper(KSAScraper, handler, "삼성전자")

    assert [row.company_name for row in results] == ["삼성전자", "삼성전자 반도체"]
    first, second = results
    assert first.certification_types == ["ISO 9001:2015", "ISO 14001:2015"]
    assert [body.code for body in first.certification_bodies] == ["KSA"]
    assert first.issued_date == "2022-06-10"
    assert first.expiry_date == "2025-06-09"
    assert first.status == "valid"
    assert first.source == "KSA"
    assert first.source_url == KSA_LISTING_URL
    assert second.certification_bodies == []
    assert second.status == "expired"


def test_google_news_scraper_reads_iso_headlines_and_resolves_links() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "news.google.com"
        assert request.url.params["hl"] == "ko"
        assert request.url.params["q"] == "삼성전자 ISO 인증"
        return httpx.Response(200, text=GOOGLE_HTML, request=request)

    results = _run_scraper(GoogleNewsScraper, handler, "삼성전자")

    assert len(results) == 1
    article = results[0]
    assert article.company_name == "삼성전자"
    assert article.certification_types == ["ISO 27001:2013"]
    assert [body.code for body in article.certification_bodies] == ["DNV"]
    assert article.status == "unknown"
    assert article.source == "Google News"
    assert article.source_url == "https://news.google.com/articles/abc"


def test_naver_news_scraper() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "search.naver.com"
        assert request.url.params["where"] == "news"
        return httpx.Response(200, text=NAVER_NEWS_HTML, request=request)

    results = _run_scraper(NaverNewsScraper, handler, "삼성전자")

    assert len(results) == 1
    assert results[0].certification_types == ["ISO 14001"]
    assert results[0].source_url == "https://news.example.kr/1"
    assert [body.code for body in results[0].certification_bodies] == ["KSA"]


def test_naver_blog_scraper_uses_data_url_link() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "section.blog.naver.com"
        return httpx.Response(200, text=BLOG_HTML, request=request)

    results = _run_scraper(NaverBlogScraper, handler, "Acme")

    assert len(results) == 1
    assert results[0].source == "Naver Blog"
    assert results[0].source_url == "https://blog.example/9"
    assert results[0].retrieved_at == FIXED_NOW


def test_company_website_scraper_falls_through_candidate_urls() -> None:
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url).rstrip("/"))
        if request.url.host == "www.acme.com":
            raise httpx.ConnectError("no route", request=request)
        if request.url.host == "acme.co.kr":
            return httpx.Response(200, text=COMPANY_HTML, request=request)
        return httpx.Response(404, request=request)

    results = _run_scraper(CompanyWebsiteScraper, handler, "Acme")

    assert requested == ["https://www.acme.com", "https://acme.co.kr"]
    assert len(results) == 1
    assert results[0].certification_types == ["ISO 9001:2015", "ISO 14001:2015"]
    assert [body.code for body in results[0].certification_bodies] == ["TUV"]
    assert results[0].source_url == "https://acme.co.kr"


def test_company_website_scraper_returns_empty_when_nothing_answers() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, request=request)

    assert _run_scraper(CompanyWebsiteScraper, handler, "Acme") == []


def test_candidate_urls() -> None:
    assert candidate_urls("Acme Corp") == [
        "https://www.acmecorp.com",
        "https://acmecorp.co.kr",
        "https://www.acmecorp.co.kr",
    ]
    assert candidate_urls("   ") == []


def test_scraper_pool_isolates_failing_scraper() -> None:
    class Exploding:
        name = "Exploding"

        async def fetch(self, company_name: str) -> list[RawCertification]:
            raise httpx.ReadTimeout("too slow")

    class Working:
        name = "Working"

        def __init__(self, url: str) -> None:
            self.url = url

        async def fetch(self, company_name: str) -> list[RawCertification]:
            await asyncio.sleep(0)
            return [
                RawCertification(
                    company_name=company_name,
                    certification_types=["ISO 9001:2015"],
                    source=self.name,
                    source_url=self.url,
                    retrieved_at=FIXED_NOW,
                )
            ]

    pool = ScraperPool([Working("https://a.example"), Exploding(), Working("https://b.example")])

    records = asyncio.run(pool.fetch_records("Acme"))

    assert [record.sources[0].url for record in records] == ["https://a.example", "https://b.example"]
    assert records[0].sources[0].retrieved_at == FIXED_NOW


def test_scraper_http_error_status_raises_for_pool_to_absorb() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, request=request)

    async def run() -> list[Any]:
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport) as client:
            pool = ScraperPool([KSAScraper(client, clock=lambda: FIXED_NOW)])
            return await pool.fetch_all("삼성전자")

    assert asyncio.run(run()) == []


def _run_scraper(
    scraper_cls: Callable[..., Any],
    handler: Callable[[httpx.Request], httpx.Response],
    company_name: str,
) -> list[RawCertification]:
    async def run() -> list[RawCertification]:
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport) as client:
            scraper = scraper_cls(client, clock=lambda: FIXED_NOW)
            return await scraper.fetch(company_name)

    return asyncio.run(run())
