"""Aman.ai AI primers: one card per h3 section of each primer article."""

import logging
import math
from typing import Generator, List, Tuple
from urllib.parse import urljoin

import httpx

from ..errors import SourceError
from ..extractors.html import bounded_subtree, clean_text
from ..models import Article, ArticleSection, ContentRecord, ScrapeResult
from .base import BaseSource

logger = logging.getLogger("reel_scraper")

ADVANCED_TERMS = [
    "theorem", "proof", "derivation", "optimization", "convergence",
    "gradient", "jacobian", "hessian", "eigenvalue", "manifold",
    "attention mechanism", "transformer", "backpropagation",
    "regularization", "hyperparameter", "architecture",
]

ML_TERMS = [
    "neural network", "deep learning", "machine learning", "transformer",
    "attention", "embedding", "convolution", "cnn", "rnn", "lstm", "gru",
    "bert", "gpt", "llm", "nlp", "computer vision", "reinforcement learning",
    "supervised learning", "unsupervised learning", "optimization",
    "gradient descent", "backpropagation", "loss function", "activation",
    "regularization", "dropout", "batch normalization", "fine-tuning",
    "transfer learning", "data augmentation", "cross-validation",
]

MAX_TAGS = 8


def infer_difficulty(section: ArticleSection) -> int:
    """1 (intro) to 5 (advanced), from position and vocabulary."""
    difficulty = 2.0
    if section.order > 15:
        difficulty += 1
    if section.order > 30:
        difficulty += 1

    text = section.content_markdown.lower()
    matches = sum(1 for term in ADVANCED_TERMS if term in text)
    if matches >= 3:
        difficulty += 1
    if matches >= 6:
        difficulty += 1
    if section.has_math:
        difficulty += 0.5
    if section.has_code:
        difficulty += 0.5
    return min(5, max(1, int(difficulty + 0.5)))


def extract_tags(section: ArticleSection, category: str) -> List[str]:
    tags = []
    cat = "".join(ch for ch in category.lower() if ch.isalpha() or ch.isspace()).strip()
    if cat:
        tags.append(cat)
    text = section.content_markdown.lower()
    for term in ML_TERMS:
        if term in text and term not in tags:
            tags.append(term)
    return tags[:MAX_TAGS]


class AmanAISource(BaseSource):
    name = "aman_ai"
    content_type = "ai_primer"
    multi_record = True
    site_url = "https://aman.ai"

    INDEX_URL = "https://aman.ai/primers/ai/"

    def discover(self) -> Generator[Tuple[str, dict], None, None]:
        try:
            html = self.client.fetch_text(self.INDEX_URL, self.name)
        except httpx.HTTPError as e:
            raise SourceError(f"[{self.name}] index page failed: {e}") from e

        root = bounded_subtree(html, "article")
        if root is None:
            raise SourceError(f"[{self.name}] No article element on index page")

        category = "Uncategorized"
        seen = set()
        for child in root.find_all(recursive=False):
            if child.name in ("h2", "h3"):
                heading = clean_text(child)
                if heading and heading != "Overview":
                    category = heading
                continue
            if child.name not in ("ul", "ol"):
                continue
            for link in child.find_all("a", href=True):
                href = link["href"]
                title = clean_text(link)
                if "/ai/" not in href or len(title) < 3:
                    continue
                url = urljoin(self.INDEX_URL, href)
                if not url.endswith("/"):
                    url += "/"
                if url == self.INDEX_URL or url in seen:
                    continue
                seen.add(url)
                slug = url.rstrip("/").rsplit("/", 1)[-1]
                yield url, {"title": title, "slug": slug, "category": category}
                if len(seen) >= self.source_config.limit:
                    return

    def build_records(self, url: str, meta: dict, entity: Article,
                      result: ScrapeResult) -> List[ContentRecord]:
        category = meta.get("category", "")
        records = []
        anchors = set()
        for section in entity.sections:
            anchor = section.anchor
            if anchor in anchors:
                anchor = f"{anchor}-{section.order}"
            anchors.add(anchor)
            subtitle = section.chapter if section.chapter != entity.title else None
            records.append(ContentRecord(
                type=self.content_type,
                title=section.title,
                summary=self.summarize(section.content_markdown),
                body=section.content_markdown,
                key_points=[p for p in (entity.title, subtitle) if p],
                tags=extract_tags(section, category),
                read_time_minutes=max(1, math.ceil(section.word_count / 200)),
                source_name=self.name,
                source_url=f"{url}#{anchor}",
                raw_data={
                    "article": entity.title,
                    "slug": meta.get("slug"),
                    "category": category,
                    "chapter": section.chapter,
                    "order": section.order,
                    "orderInChapter": section.order_in_chapter,
                    "difficulty": infer_difficulty(section),
                    "hasCode": section.has_code,
                    "hasMath": section.has_math,
                    "hasImages": section.has_images,
                    "wordCount": section.word_count,
                },
            ))
        return records
