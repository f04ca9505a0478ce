from __future__ import annotations

import logging
from urllib.parse import quote, urljoin

from isocert.scrapers.base import BaseScraper, RawCertification, first_attr, first_text, parse_html
from isocert.scrapers.extract import extract_certification_bodies, extract_iso_types

logger = logging.getLogger(__name__)


def certification_query(company_name: str) -> str:
    return quote(f"{company_name} ISO 인증", safe="")


class HeadlineScraper(BaseScraper):
    """Search-result page where each hit is a headline that may mention ISO types.

    Subclasses pick the search URL and the selectors; a hit only counts when its
    headline contains ``ISO`` followed by a recognizable standard number.
    """

    item_selector = ""
    title_selectors: tuple[str, ...] = ()
    link_selectors: tuple[tuple[str, str], ...] = ()
    use_item_text_fallback = False

    def search_url(self, company_name: str) -> str:
        raise NotImplementedError

    async def fetch(self, company_name: str) -> list[RawCertification]:
        url = self.search_url(company_name)
        soup = parse_html(await self.get_html(url))
        retrieved_at = self.now()

        results: list[RawCertification] = []
        for item in soup.select(self.item_selector):
            title = first_text(item, self.title_selectors)
            if not title and self.use_item_text_fallback:
                title = item.get_text(" ", strip=True)
            if not title or "ISO" not in title:
                continue

            types = extract_iso_types(title)
            if not types:
                continue

            href = first_attr(item, self.link_selectors)
            results.append(
                RawCertification(
                    company_name=company_name,
                    certification_types=types,
                    certification_bodies=extract_certification_bodies(title),
                    source=self.name,
                    source_url=urljoin(url, href) if href else url,
                    retrieved_at=retrieved_at,
                )
            )

        logger.info("%s scraper found %s headlines", self.name, len(results))
        return results


class GoogleNewsScraper(HeadlineScraper):
    name = "Google News"
    item_selector = "article, .article-item, [data-article], .news-item"
    title_selectors = ("h3, h2, .headline, [data-headline]",)
    link_selectors = (("a", "href"), ("[data-url]", "data-url"))
    use_item_text_fallback = True

    def search_url(self, company_name: str) -> str:
        return f"https://news.google.com/search?q={certification_query(company_name)}&hl=ko"


class NaverNewsScraper(HeadlineScraper):
    name = "Naver News"
    item_selector = ".news_item, .news-item, .api_list_item, [data-news-item]"
    title_selectors = (".news_tit, .title, h3, [data-title]", "a")
    link_selectors = ((".news_tit, a", "href"), ("[data-url]", "data-url"))

    def search_url(self, company_name: str) -> str:
        return f"https://search.naver.com/search.naver?where=news&query={certification_query(company_name)}"


class NaverBlogScraper(HeadlineScraper):
    name = "Naver Blog"
    item_selector = ".post_item, .blog_item, [data-post-item], .search_result_item"
    title_selectors = (".post_tit, .title, h3, [data-title]", "a")
    link_selectors = ((".post_tit, a", "href"), ("[data-url]", "data-url"))

    def search_url(self, company_name: str) -> str:
        return (
            "https://section.blog.naver.com/Search/Post.naver"
            f"?pageNo=1&rangeType=ALL&orderBy=sim&keyword={certification_query(company_name)}"
        )
