"""Sources without stable markup: raw page text goes through text generation."""

from ..models import GeneratedContent, ScrapeResult
from ..textgen import TextGenerator
from .base import Extractor


class GeneratedContentExtractor(Extractor):
    name = "generated"

    def __init__(self, textgen: TextGenerator, content_type: str = "tech", min_length: int = 100):
        self.textgen = textgen
        self.content_type = content_type
        self.min_length = min_length

    def extract(self, result: ScrapeResult, url: str, meta: dict) -> GeneratedContent:
        text = self.require_payload(result.page_text, url)
        return self.textgen.generate(text, self.content_type)
