"""Heading-based section segmentation over a parsed subtree."""

import re
from typing import List, Optional

from bs4 import NavigableString, Tag
from bs4.element import Comment

from ..models import ArticleSection
from .html import clean_text, html_to_markdown

HEADING_RE = re.compile(r"^h([1-6])$")
SKIP_TAGS = {"script", "style", "noscript", "nav", "button", "form"}
MATH_MARKERS = ("MathJax", "\\(", "\\[", "$$", "<math")


def heading_level(node) -> Optional[int]:
    if not isinstance(node, Tag):
        return None
    m = HEADING_RE.match(node.name.lower())
    return int(m.group(1)) if m else None


def section_metrics(content_html: str) -> dict:
    markdown = html_to_markdown(content_html)
    return {
        "content_markdown": markdown,
        "word_count": len(clean_text(content_html).split()),
        "has_code": "<pre" in content_html or "<code" in content_html,
        "has_math": any(marker in content_html for marker in MATH_MARKERS),
        "has_images": "<img" in content_html,
    }


class SectionSegmenter:
    """Walks a subtree in document order and cuts it at sub-level headings.

    A top-level heading (or anything above it) starts a new chapter; a
    sub-level heading starts a new section. Headings between the two levels
    close the current section without opening one. Content nodes are kept
    only while a section is open, so text before the first sub-heading is
    dropped.
    """

    def __init__(self, top_level: str = "h2", sub_level: str = "h3"):
        self.top = int(top_level[1:])
        self.sub = int(sub_level[1:])
        if self.top >= self.sub:
            raise ValueError(f"top level {top_level} must be above sub level {sub_level}")

    def segment(self, root) -> List[ArticleSection]:
        self.sections: List[ArticleSection] = []
        self.chapter = ""
        self.order = 0
        self.order_in_chapter = 0
        self.current: Optional[dict] = None
        self._walk(root)
        self._flush()
        return self.sections

    def _walk(self, node):
        for child in list(node.children):
            if isinstance(child, Comment):
                continue
            if isinstance(child, NavigableString):
                if self.current is not None and child.strip():
                    self.current["parts"].append(str(child))
                continue
            if not isinstance(child, Tag) or child.name.lower() in SKIP_TAGS:
                continue

            level = heading_level(child)
            if level is not None and level <= self.sub:
                self._heading(child, level)
            elif self._holds_heading(child):
                self._walk(child)
            elif self.current is not None:
                self.current["parts"].append(str(child))

    def _holds_heading(self, node: Tag) -> bool:
        names = [f"h{n}" for n in range(1, self.sub + 1)]
        return node.find(names) is not None

    def _heading(self, node: Tag, level: int):
        self._flush()
        title = clean_text(node)
        if level <= self.top:
            self.chapter = title
            self.order_in_chapter = 0
            self.current = None
        elif level == self.sub:
            self.order += 1
            self.order_in_chapter += 1
            self.current = {
                "title": title,
                "heading_html": str(node),
                "order": self.order,
                "order_in_chapter": self.order_in_chapter,
                "parts": [],
            }
        else:
            self.current = None

    def _flush(self):
        current, self.current = self.current, None
        if current is None:
            return
        content_html = "".join(current["parts"]).strip()
        if not content_html:
            return
        self.sections.append(ArticleSection(
            title=current["title"],
            chapter=self.chapter,
            order=current["order"],
            order_in_chapter=current["order_in_chapter"],
            content_html=content_html,
            heading_html=current["heading_html"],
            **section_metrics(content_html),
        ))


def segment_sections(root, top_level: str = "h2", sub_level: str = "h3") -> List[ArticleSection]:
    return SectionSegmenter(top_level, sub_level).segment(root)
