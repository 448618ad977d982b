"""HTML helpers shared by the extractors.

``find_balanced_region`` works on the raw markup so the returned span is the
exact source text of the element; everything downstream parses that span
with BeautifulSoup and never looks outside it.
"""

import copy
import re
from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup
from markdownify import markdownify

# Comments and raw-text elements are consumed whole so tags inside them are not counted.
TOKEN_RE = re.compile(
    r"<!--.*?-->"
    r"|<(script|style)\b[^>]*>.*?</\1\s*>"
    r"|<(/?)([a-zA-Z][a-zA-Z0-9:-]*)((?:\"[^\"]*\"|'[^']*'|[^'\">])*)>",
    re.S | re.I,
)
CLASS_RE = re.compile(r"""\bclass\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+))""", re.I)


@dataclass
class Region:
    start: int
    end: int
    html: str
    closed: bool = True


def _has_class(attrs: str, css_class: str) -> bool:
    m = CLASS_RE.search(attrs or "")
    if not m:
        return False
    value = m.group(1) or m.group(2) or m.group(3) or ""
    return css_class in value.split()


def find_balanced_region(html: str, tag: str = "div", css_class: Optional[str] = None,
                         start: int = 0) -> Optional[Region]:
    """Locate the first ``<tag class="css_class">`` and its true closing tag.

    Nested elements of the same tag are counted so the span ends at the
    matching close, not the first ``</tag>`` after the opener. If the
    document ends before the element closes, the region runs to the end
    of the input and ``closed`` is False.
    """
    if not html:
        return None
    tag = tag.lower()
    region_start = None
    depth = 0

    for m in TOKEN_RE.finditer(html, start):
        name = m.group(3)
        if not name or name.lower() != tag:
            continue
        is_close = m.group(2) == "/"
        attrs = m.group(4) or ""
        self_closing = attrs.rstrip().endswith("/")

        if region_start is None:
            if is_close or self_closing:
                continue
            if css_class is None or _has_class(attrs, css_class):
                region_start = m.start()
                depth = 1
            continue

        if is_close:
            depth -= 1
            if depth == 0:
                return Region(region_start, m.end(), html[region_start:m.end()])
        elif not self_closing:
            depth += 1

    if region_start is None:
        return None
    return Region(region_start, len(html), html[region_start:], closed=False)


def soup_of(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def clean_text(fragment) -> str:
    """Visible text of an HTML string or tag, with <br> kept as newlines."""
    if fragment is None:
        return ""
    node = soup_of(fragment) if isinstance(fragment, str) else copy.copy(fragment)
    for br in node.find_all("br"):
        br.replace_with("\n")
    text = node.get_text(" ")
    lines = [" ".join(line.split()) for line in text.split("\n")]
    return "\n".join(line for line in lines if line).strip()


def pre_text(pre) -> str:
    """Text of a <pre> block; Codeforces wraps each sample line in its own div."""
    pre = copy.copy(pre)
    lines = pre.find_all("div", recursive=False)
    if lines:
        return "\n".join(line.get_text().rstrip() for line in lines).strip()
    for br in pre.find_all("br"):
        br.replace_with("\n")
    return pre.get_text().strip()


def strip_tags(html: str, limit: int = 15000) -> str:
    """Flatten a page to plain text for the direct-fetch fallback."""
    soup = soup_of(html)
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return " ".join(soup.get_text(" ").split())[:limit]


def html_to_markdown(html: str) -> str:
    if not html:
        return ""
    html = html.replace("<br />", "<br>").replace("<br/>", "<br>")
    md = markdownify(html, heading_style="ATX", bullets="-")
    return re.sub(r"\n{3,}", "\n\n", md).strip()


def image_sources(node, exclude=()) -> list:
    urls = []
    for img in node.find_all("img"):
        src = img.get("src")
        if not src or any(part in src for part in exclude):
            continue
        if src.startswith("//"):
            src = "https:" + src
        if src not in urls:
            urls.append(src)
    return urls


def bounded_subtree(html: str, tag: str = "div", css_class: Optional[str] = None):
    """Parse only the balanced region and return its root element, or None."""
    region = find_balanced_region(html, tag, css_class)
    if region is None:
        return None
    return soup_of(region.html).find(tag)
