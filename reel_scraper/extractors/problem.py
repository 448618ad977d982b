"""Codeforces problem pages: div.problem-statement into a Problem."""

import re

from ..errors import ParseFailure
from ..models import Problem, Sample, ScrapeResult
from .base import Extractor
from .html import bounded_subtree, clean_text, image_sources, pre_text

TITLE_INDEX_RE = re.compile(r"^[A-Z]\d*\.\s*")
SPEC_CLASSES = {"header", "input-specification", "output-specification", "sample-tests", "note"}
IMAGE_EXCLUDE = ("flags/", "icons/")

MAX_STATEMENT = 3000
MAX_SPEC = 800
MAX_SAMPLE = 2000
MAX_NOTE = 1000


def _classes(node) -> set:
    return set(node.get("class") or [])


def _without_title(node, title_class: str) -> str:
    """Text of a block minus its label element."""
    if node is None:
        return ""
    label = node.find(class_=title_class)
    text = clean_text(node)
    if label is not None:
        label_text = clean_text(label)
        if text.startswith(label_text):
            text = text[len(label_text):]
    return text.strip()


class ProblemExtractor(Extractor):
    name = "problem"

    def extract(self, result: ScrapeResult, url: str, meta: dict) -> Problem:
        html = self.require_payload(result.page_html, url)
        root = bounded_subtree(html, "div", "problem-statement")
        if root is None:
            raise ParseFailure(f"No problem-statement region at {url}")

        problem = Problem()
        header = root.find("div", class_="header", recursive=False) or root.find("div", class_="header")
        if header is not None:
            title = header.find("div", class_="title")
            if title is not None:
                problem.title = TITLE_INDEX_RE.sub("", clean_text(title)).strip()
            problem.time_limit = _without_title(header.find("div", class_="time-limit"), "property-title")
            problem.memory_limit = _without_title(header.find("div", class_="memory-limit"), "property-title")
        if not problem.title:
            problem.title = meta.get("name", "")

        self._statement(root, problem)
        problem.input_spec = _without_title(
            root.find("div", class_="input-specification"), "section-title")[:MAX_SPEC]
        problem.output_spec = _without_title(
            root.find("div", class_="output-specification"), "section-title")[:MAX_SPEC]
        problem.samples = self._samples(root)
        problem.note = _without_title(root.find("div", class_="note"), "section-title")[:MAX_NOTE]
        problem.images = image_sources(root, exclude=IMAGE_EXCLUDE)
        return problem

    @staticmethod
    def _statement(root, problem: Problem):
        # Legend blocks are the direct children that are not a labelled section
        blocks = [child for child in root.find_all(recursive=False)
                  if not _classes(child) & SPEC_CLASSES]
        paragraphs = []
        for block in blocks:
            found = block.find_all("p") if block.name != "p" else [block]
            for p in found:
                text = clean_text(p)
                if len(text) > 10:
                    paragraphs.append(text)
        if paragraphs:
            problem.statement = "\n\n".join(paragraphs)[:MAX_STATEMENT]
        else:
            problem.statement = " ".join(clean_text(b) for b in blocks).strip()[:MAX_STATEMENT]
        problem.statement_html = "".join(str(b) for b in blocks)

    @staticmethod
    def _samples(root) -> list:
        tests = root.find("div", class_="sample-tests")
        if tests is None:
            return []
        inputs = [pre_text(pre) for pre in tests.select("div.input pre")]
        outputs = [pre_text(pre) for pre in tests.select("div.output pre")]
        return [Sample(i[:MAX_SAMPLE], o[:MAX_SAMPLE])
                for i, o in zip(inputs, outputs) if i and o]
