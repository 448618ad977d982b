"""Four Minute Books: book summaries via text generation."""

import logging
import re
from typing import Generator, List, Tuple

import httpx

from ..errors import SourceError
from ..models import ContentRecord, GeneratedContent, ScrapeResult
from .base import BaseSource

logger = logging.getLogger("reel_scraper")

SUMMARY_LINK_RE = re.compile(r'href="(https://fourminutebooks\.com/[^"/]+-summary/)"')
TITLE_BY_RE = re.compile(r"#\s+(.+?)\s+by\s+(.+)")
BY_RE = re.compile(r"by\s+([^\n]+)")


def parse_title_author(text: str) -> Tuple[str, str]:
    m = TITLE_BY_RE.search(text)
    if m:
        return m.group(1).replace(" Summary", "").strip() or "Book Summary", m.group(2).strip()
    m = BY_RE.search(text)
    if m:
        return "Book Summary", m.group(1).strip()
    return "Book Summary", "Unknown"


class FourMinuteBooksSource(BaseSource):
    name = "fourminutebooks"
    content_type = "book_summary"
    site_url = "https://fourminutebooks.com"

    INDEX_URL = "https://fourminutebooks.com/book-summaries/"

    def discover(self) -> Generator[Tuple[str, dict], None, None]:
        try:
            html = self.client.fetch_text(self.INDEX_URL, self.name)
        except httpx.HTTPError as e:
            raise SourceError(f"[{self.name}] index page failed: {e}") from e

        urls = list(dict.fromkeys(SUMMARY_LINK_RE.findall(html)))
        logger.info(f"[{self.name}] Found {len(urls)} book summaries")
        for url in urls[:self.source_config.limit]:
            yield url, {}

    def build_records(self, url: str, meta: dict, entity: GeneratedContent,
                      result: ScrapeResult) -> List[ContentRecord]:
        title, author = parse_title_author(result.page_text)
        return [self.generated_record(
            url, entity,
            title=f"{title} by {author}",
            author=author,
            raw_data={"title": title, "author": author, "url": url},
        )]
