"""Extractor registry, keyed by source name."""

from .article import ArticleSectionExtractor
from .base import Extractor
from .generated import GeneratedContentExtractor
from .problem import ProblemExtractor
from .tutorial import TutorialExtractor

EXTRACTORS = {
    "codeforces": lambda textgen: ProblemExtractor(),
    "codeforces_editorials": lambda textgen: TutorialExtractor(),
    "aman_ai": lambda textgen: ArticleSectionExtractor("h2", "h3"),
    "hackernews": lambda textgen: GeneratedContentExtractor(textgen, "tech", 100),
    "investopedia": lambda textgen: GeneratedContentExtractor(textgen, "finance", 100),
    "fourminutebooks": lambda textgen: GeneratedContentExtractor(textgen, "book", 200),
    "producthunt": lambda textgen: GeneratedContentExtractor(textgen, "tech", 100),
}


def get_extractor(source_name: str, textgen=None) -> Extractor:
    try:
        factory = EXTRACTORS[source_name]
    except KeyError:
        raise ValueError(f"No extractor registered for source: {source_name}") from None
    return factory(textgen)


__all__ = [
    "ArticleSectionExtractor",
    "EXTRACTORS",
    "Extractor",
    "GeneratedContentExtractor",
    "ProblemExtractor",
    "TutorialExtractor",
    "get_extractor",
]
