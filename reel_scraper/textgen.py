"""Text-generation collaborator: turns raw scraped text into card fields.

Best-effort: any failure or unparseable output falls back to fields cut
directly from the raw text, so a card is still produced.
"""

import json
import logging
import re
from typing import Optional

import httpx

from .config import TextGenConfig
from .models import GeneratedContent

logger = logging.getLogger("reel_scraper")

CONTENT_TYPES = ("tech", "finance", "book")

PROMPT_TEMPLATE = """Extract the following information from this {kind} and return ONLY valid JSON:

{kind_upper}:
{content}

Return this exact JSON structure (no other text, no markdown, just JSON):
{{
  "title": "{title_hint}",
  "summary": "brief 2-3 sentence summary",
  "body": "full text with key details, formatted as markdown",
  "key_points": ["point 1", "point 2", "point 3"],
  "tags": ["tag1", "tag2", "tag3"],
  "read_time_minutes": 5
}}"""

KIND_BY_TYPE = {
    "tech": ("article", "article title here"),
    "finance": ("finance article", "clear title without clickbait"),
    "book": ("book summary", "Book Title by Author"),
}

SYSTEM_PROMPT = "You are a content curator. Reply with a single JSON object and nothing else."

JSON_BLOCK_RE = re.compile(r"\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\}", re.S)


def build_prompt(content: str, content_type: str, max_chars: int = 6000) -> str:
    kind, title_hint = KIND_BY_TYPE.get(content_type, KIND_BY_TYPE["tech"])
    return PROMPT_TEMPLATE.format(
        kind=kind,
        kind_upper=kind.upper(),
        content=content[:max_chars],
        title_hint=title_hint,
    )


def parse_json_reply(text: str) -> Optional[dict]:
    """Recover a JSON object from a model reply, or None."""
    if not text:
        return None
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\s*|\s*```$", "", text)
    try:
        parsed = json.loads(text)
        return parsed if isinstance(parsed, dict) else None
    except ValueError:
        pass

    match = JSON_BLOCK_RE.search(text)
    if not match:
        return None
    cleaned = re.sub(r"\s+", " ", match.group(0))
    cleaned = re.sub(r",\s*}", "}", cleaned)
    cleaned = re.sub(r",\s*]", "]", cleaned)
    try:
        parsed = json.loads(cleaned)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def fallback_content(raw: str, content_type: str) -> GeneratedContent:
    first_line = raw.strip().split("\n")[0] if raw.strip() else ""
    return GeneratedContent(
        title=first_line[:100],
        summary=raw[:300],
        body=raw[:3000],
        key_points=["See full content above"],
        tags=[content_type],
        read_time_minutes=5,
    )


def coerce_content(parsed: dict, raw: str, content_type: str) -> GeneratedContent:
    key_points = parsed.get("key_points")
    tags = parsed.get("tags")
    try:
        read_time = int(parsed.get("read_time_minutes") or 5)
    except (TypeError, ValueError):
        read_time = 5
    return GeneratedContent(
        title=str(parsed.get("title") or ""),
        summary=str(parsed.get("summary") or raw[:200]),
        body=str(parsed.get("body") or raw[:2000]),
        key_points=[str(p) for p in key_points] if isinstance(key_points, list) else ["See full content"],
        tags=[str(t) for t in tags] if isinstance(tags, list) else [content_type],
        read_time_minutes=max(1, read_time),
    )


class TextGenerator:
    def __init__(self, config: TextGenConfig, client: Optional[httpx.Client] = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(timeout=httpx.Timeout(self.config.timeout, connect=10))
        return self._client

    def close(self):
        if self._client and not self._client.is_closed:
            self._client.close()

    def generate(self, raw_text: str, content_type: str = "tech") -> GeneratedContent:
        prompt = build_prompt(raw_text, content_type, self.config.max_input_chars)
        provider = self.config.provider
        try:
            if provider == "anthropic":
                reply = self._anthropic(prompt)
            elif provider == "openai":
                reply = self._openai(prompt)
            else:
                reply = self._ollama(prompt)
        except Exception as e:
            logger.error(f"Text generation via {provider} failed: {e}")
            return fallback_content(raw_text, content_type)

        logger.debug(f"LLM response (first 200 chars): {reply[:200]}")
        parsed = parse_json_reply(reply)
        if parsed is None:
            logger.warning(f"Could not extract valid JSON from {provider} response")
            return fallback_content(raw_text, content_type)
        return coerce_content(parsed, raw_text, content_type)

    def _ollama(self, prompt: str) -> str:
        resp = self.client.post(
            self.config.ollama_url,
            json={
                "model": self.config.ollama_model,
                "prompt": prompt,
                "stream": False,
                "options": {"temperature": 0.1, "num_predict": 2000},
            },
        )
        resp.raise_for_status()
        return resp.json().get("response", "")

    def _anthropic(self, prompt: str) -> str:
        import anthropic

        client = anthropic.Anthropic(api_key=self.config.anthropic_api_key or None)
        message = client.messages.create(
            model=self.config.anthropic_model,
            max_tokens=2048,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(block.text for block in message.content if getattr(block, "type", "") == "text")

    def _openai(self, prompt: str) -> str:
        from openai import OpenAI

        client = OpenAI(api_key=self.config.openai_api_key or None)
        completion = client.chat.completions.create(
            model=self.config.openai_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            max_tokens=2048,
        )
        return completion.choices[0].message.content or ""
