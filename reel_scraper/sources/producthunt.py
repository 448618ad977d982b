"""Product Hunt: launches from the RSS feed, summarised by text generation."""

import logging
import random
import re
from typing import Dict, Generator, List, Tuple

import httpx

from ..errors import SourceError
from ..extractors.html import strip_tags
from ..models import ContentRecord, GeneratedContent, ScrapeResult
from .base import BaseSource

logger = logging.getLogger("reel_scraper")

ITEM_RE = re.compile(
    r"<item>.*?<title>(.*?)</title>.*?<link>(.*?)</link>.*?"
    r"<description>(.*?)</description>.*?</item>",
    re.S | re.I,
)
CDATA_RE = re.compile(r"<!\[CDATA\[|\]\]>")


def parse_feed_items(xml: str) -> List[Dict[str, str]]:
    """Title, link and plain-text description of every ``<item>``."""
    items = []
    for title, link, description in ITEM_RE.findall(xml):
        items.append({
            "title": CDATA_RE.sub("", title).strip(),
            "link": link.strip(),
            "description": strip_tags(CDATA_RE.sub("", description)),
        })
    return items


class ProductHuntSource(BaseSource):
    name = "producthunt"
    content_type = "tech_article"
    site_url = "https://www.producthunt.com"

    FEED_URL = "https://www.producthunt.com/feed"
    CANDIDATES = 200

    def discover(self) -> Generator[Tuple[str, dict], None, None]:
        try:
            xml = self.client.fetch_text(self.FEED_URL, self.name)
        except httpx.HTTPError as e:
            raise SourceError(f"[{self.name}] feed failed: {e}") from e

        items = [item for item in parse_feed_items(xml)[:self.CANDIDATES] if item["link"]]
        random.shuffle(items)
        logger.info(f"[{self.name}] Found {len(items)} feed items")

        seen = set()
        for item in items:
            if item["link"] in seen:
                continue
            seen.add(item["link"])
            yield item["link"], item
            if len(seen) >= self.source_config.limit:
                break

    def build_records(self, url: str, meta: dict, entity: GeneratedContent,
                      result: ScrapeResult) -> List[ContentRecord]:
        return [self.generated_record(
            url, entity,
            title=entity.title or meta.get("title") or "Product Launch",
            raw_data=dict(meta),
        )]
