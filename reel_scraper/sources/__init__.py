"""Source registry."""

from .aman_ai import AmanAISource
from .codeforces import CodeforcesSource
from .codeforces_editorials import CodeforcesEditorialsSource
from .fourminutebooks import FourMinuteBooksSource
from .hackernews import HackerNewsSource
from .investopedia import InvestopediaSource
from .producthunt import ProductHuntSource

ALL_SOURCES = {
    "codeforces": CodeforcesSource,
    "codeforces_editorials": CodeforcesEditorialsSource,
    "aman_ai": AmanAISource,
    "hackernews": HackerNewsSource,
    "investopedia": InvestopediaSource,
    "fourminutebooks": FourMinuteBooksSource,
    "producthunt": ProductHuntSource,
}
