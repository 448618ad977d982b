"""Long-form articles split into one section per sub-heading."""

from ..errors import ParseFailure
from ..models import Article, ScrapeResult
from .base import Extractor
from .html import bounded_subtree, clean_text, soup_of
from .sections import segment_sections


class ArticleSectionExtractor(Extractor):
    name = "article"

    def __init__(self, top_level: str = "h2", sub_level: str = "h3"):
        self.top_level = top_level
        self.sub_level = sub_level

    def extract(self, result: ScrapeResult, url: str, meta: dict) -> Article:
        html = self.require_payload(result.page_html, url)
        root = bounded_subtree(html, "article")
        if root is None:
            raise ParseFailure(f"No article element at {url}")

        title = meta.get("title") or self._title(root, html)
        sections = segment_sections(root, self.top_level, self.sub_level)
        if not sections:
            raise ParseFailure(f"No {self.sub_level} sections in article at {url}")

        for section in sections:
            if not section.chapter:
                section.chapter = title
        return Article(title=title, sections=sections)

    @staticmethod
    def _title(root, html: str) -> str:
        h1 = root.find("h1")
        if h1 is not None:
            return clean_text(h1)
        page_title = soup_of(html).find("title")
        return clean_text(page_title) if page_title is not None else ""
