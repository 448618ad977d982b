"""Abstract base class for page extractors."""

from abc import ABC, abstractmethod

from ..errors import ParseFailure
from ..models import ScrapeResult


class Extractor(ABC):
    """Turns one scraped page into a structured entity.

    ``extract`` raises ParseFailure when the page's mandatory region is
    missing; optional fields default to empty values.
    """

    name: str = ""
    min_length: int = 100

    @abstractmethod
    def extract(self, result: ScrapeResult, url: str, meta: dict):
        ...

    def require_payload(self, payload: str, url: str) -> str:
        if not payload or len(payload) < self.min_length:
            raise ParseFailure(f"{self.name}: insufficient content at {url}")
        return payload
