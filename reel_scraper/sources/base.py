"""Abstract base class for all content sources."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Generator, List, Tuple

from ..config import SourceConfig
from ..models import ContentRecord, ErrorCode, GeneratedContent, ScrapeResult

logger = logging.getLogger("reel_scraper")


class BaseSource(ABC):
    name: str = ""
    content_type: str = ""
    site_url: str = ""
    default_headers: Dict[str, str] = {}
    # Records are keyed "<page url>#<fragment>", several per page
    multi_record: bool = False

    def __init__(self, session):
        self.session = session
        self.config = session.config
        self.client = session.client
        self.source_config: SourceConfig = session.config.source(self.name)

    @abstractmethod
    def discover(self) -> Generator[Tuple[str, dict], None, None]:
        """Yield (url, metadata) tuples for pages to scrape."""
        ...

    @abstractmethod
    def build_records(self, url: str, meta: dict, entity, result: ScrapeResult) -> List[ContentRecord]:
        """Turn an extracted entity into content records keyed under ``url``."""
        ...

    def request_headers(self) -> Dict[str, str]:
        headers = dict(self.default_headers)
        headers.update(self.source_config.headers)
        return headers

    def fetch_page(self, url: str, meta: dict, job_id: int) -> ScrapeResult:
        return self.client.scrape_with_retry(
            url, self.name, job_id,
            cookies=self.source_config.cookies or None,
            headers=self.request_headers() or None,
        )

    def remediation(self, reason: str, job_id: int) -> List[str]:
        cookie_env = f"{self.name.upper()}_COOKIES"
        resume = f"4. Resume the job: python -m reel_scraper.main --resume {job_id}"
        if reason == ErrorCode.CAPTCHA:
            return [
                f"1. Open {self.site_url or 'the site'} in your browser and solve the challenge",
                "2. Copy fresh cookies from browser DevTools (Application > Cookies)",
                f"3. Set {cookie_env} with the fresh cookies",
                resume,
            ]
        return [
            f"1. Check the rendering backend ({self.config.rendering.mode}) is reachable",
            "2. Switch RENDER_MODE or wait for the block to lift",
            f"3. Refresh {cookie_env} if the site needs a logged-in session",
            resume,
        ]

    @staticmethod
    def summarize(text: str, limit: int = 200) -> str:
        text = " ".join(text.split())
        return text[:limit] + ("..." if len(text) > limit else "")

    def generated_record(self, url: str, content: GeneratedContent, **fields) -> ContentRecord:
        values = dict(
            type=self.content_type,
            title=content.title,
            summary=content.summary,
            body=content.body,
            key_points=content.key_points,
            tags=content.tags,
            read_time_minutes=content.read_time_minutes,
            source_name=self.name,
            source_url=url,
        )
        values.update(fields)
        return ContentRecord(**values)
