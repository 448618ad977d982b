"""Codeforces editorial blog entries, split per problem."""

import re
from typing import Optional

from ..errors import ParseFailure
from ..models import ScrapeResult, Tutorial, TutorialSection
from .base import Extractor
from .html import bounded_subtree, clean_text, html_to_markdown, image_sources, soup_of
from .sections import segment_sections

PROBLEM_LINK_RE = re.compile(r"/problem/([A-Z]\d?)\b")
HEADING_INDEX_RE = re.compile(r"^\s*(?:Problem\s+)?([A-Z]\d?)\s*[.:)\-]")
TUTORIAL_LINK_RE = re.compile(
    r"""href=["'](/blog/entry/\d+)["'][^>]*>[^<]*(?:Tutorial|Editorial|Разбор)""", re.I)
IMAGE_EXCLUDE = ("userpic", "flags/")


def find_tutorial_url(html: str, base: str = "https://codeforces.com") -> Optional[str]:
    """First blog entry linked as a tutorial or editorial from a contest page."""
    m = TUTORIAL_LINK_RE.search(html or "")
    return f"{base}{m.group(1)}" if m else None


def problem_index(heading_html: str, title: str) -> str:
    m = PROBLEM_LINK_RE.search(heading_html)
    if m:
        return m.group(1)
    m = HEADING_INDEX_RE.match(title)
    return m.group(1) if m else ""


class TutorialExtractor(Extractor):
    name = "tutorial"

    def extract(self, result: ScrapeResult, url: str, meta: dict) -> Tutorial:
        html = self.require_payload(result.page_html, url)
        root = bounded_subtree(html, "div", "ttypography")
        if root is None:
            raise ParseFailure(f"No ttypography region at {url}")

        title = self._title(html) or meta.get("name", "")
        tutorial = Tutorial(title=title)
        seen = set()
        for section in segment_sections(root, "h2", "h3"):
            index = problem_index(section.heading_html, section.title)
            if not index or index in seen:
                continue
            seen.add(index)
            tutorial.sections.append(TutorialSection(
                problem_index=index,
                title=section.title,
                content_html=section.content_html,
                content_markdown=section.content_markdown,
                images=image_sources(soup_of(section.content_html), exclude=IMAGE_EXCLUDE),
            ))

        if not tutorial.sections:
            # Unstructured editorial: keep it whole
            content_html = "".join(str(c) for c in root.contents).strip()
            if not clean_text(content_html):
                raise ParseFailure(f"Empty editorial at {url}")
            tutorial.sections.append(TutorialSection(
                problem_index="",
                title=title,
                content_html=content_html,
                content_markdown=html_to_markdown(content_html),
                images=image_sources(root, exclude=IMAGE_EXCLUDE),
            ))
        return tutorial

    @staticmethod
    def _title(html: str) -> str:
        region = bounded_subtree(html, "p", "title") or bounded_subtree(html, "div", "title")
        return clean_text(region) if region is not None else ""
