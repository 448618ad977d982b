"""HackerNews top stories: linked articles summarised by text generation."""

import logging
import random
from datetime import datetime, timezone
from typing import Generator, List, Tuple

import httpx

from ..errors import SourceError
from ..models import ContentRecord, GeneratedContent, ScrapeResult
from .base import BaseSource

logger = logging.getLogger("reel_scraper")


class HackerNewsSource(BaseSource):
    name = "hackernews"
    content_type = "tech_article"
    site_url = "https://news.ycombinator.com"

    API_BASE = "https://hacker-news.firebaseio.com/v0"
    MIN_SCORE = 100
    CANDIDATES = 200

    def discover(self) -> Generator[Tuple[str, dict], None, None]:
        try:
            ids = self.client.fetch_json(f"{self.API_BASE}/topstories.json", self.name)
        except (httpx.HTTPError, ValueError) as e:
            raise SourceError(f"[{self.name}] topstories failed: {e}") from e

        stories = []
        for story_id in ids[:self.CANDIDATES]:
            try:
                story = self.client.fetch_json(f"{self.API_BASE}/item/{story_id}.json", self.name)
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"[{self.name}] Skipping story {story_id}: {e}")
                continue
            if (story and story.get("url") and story.get("type") == "story"
                    and story.get("score", 0) > self.MIN_SCORE):
                stories.append(story)
            if len(stories) >= self.source_config.limit * 2:
                break

        random.shuffle(stories)
        for story in stories[:self.source_config.limit]:
            yield story["url"], {
                "id": story.get("id"),
                "title": story.get("title", ""),
                "by": story.get("by"),
                "score": story.get("score"),
                "time": story.get("time"),
            }

    def build_records(self, url: str, meta: dict, entity: GeneratedContent,
                      result: ScrapeResult) -> List[ContentRecord]:
        raw = dict(meta)
        if meta.get("time"):
            raw["published_at"] = datetime.fromtimestamp(meta["time"], tz=timezone.utc).isoformat()
        return [self.generated_record(
            url, entity,
            title=entity.title or meta.get("title") or "Tech Article",
            author=meta.get("by"),
            raw_data=raw,
        )]
