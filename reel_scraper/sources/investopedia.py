"""Investopedia news sections: finance articles via text generation."""

import logging
import random
import re
from typing import Generator, List, Tuple

import httpx

from ..models import ContentRecord, GeneratedContent, ScrapeResult
from .base import BaseSource

logger = logging.getLogger("reel_scraper")

ARTICLE_LINK_RE = re.compile(r'href="(https://www\.investopedia\.com/[^"]+?)"')
HEADING_RE = re.compile(r"^#\s+(.+)$", re.M)


class InvestopediaSource(BaseSource):
    name = "investopedia"
    content_type = "finance_article"
    site_url = "https://www.investopedia.com"

    SECTION_URLS = [
        "https://www.investopedia.com/news",
        "https://www.investopedia.com/markets-news-4427704",
    ]
    ARTICLE_PATHS = ("/news/", "/markets/", "/economy/")

    def discover(self) -> Generator[Tuple[str, dict], None, None]:
        urls = []
        for section_url in self.SECTION_URLS:
            try:
                html = self.client.fetch_text(section_url, self.name)
            except httpx.HTTPError as e:
                logger.error(f"[{self.name}] Section {section_url} failed: {e}")
                continue
            found = [u for u in ARTICLE_LINK_RE.findall(html)
                     if any(p in u for p in self.ARTICLE_PATHS)]
            random.shuffle(found)
            logger.info(f"[{self.name}] Found {len(found)} articles in {section_url}")
            urls.extend(found)

        for url in list(dict.fromkeys(urls))[:self.source_config.limit]:
            yield url, {}

    def build_records(self, url: str, meta: dict, entity: GeneratedContent,
                      result: ScrapeResult) -> List[ContentRecord]:
        m = HEADING_RE.search(result.page_text)
        page_title = m.group(1).strip() if m else "Finance Article"
        return [self.generated_record(
            url, entity,
            title=entity.title or page_title,
            raw_data={"title": page_title, "url": url},
        )]
