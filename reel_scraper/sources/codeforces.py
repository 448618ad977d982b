"""Codeforces problemset: problem statements via the public API + page scrape."""

import logging
import random
from typing import Generator, List, Tuple

import httpx

from ..errors import SourceError
from ..models import ContentRecord, Problem, ScrapeResult
from .base import BaseSource

logger = logging.getLogger("reel_scraper")


def format_problem_body(problem: Problem, tags: List[str]) -> str:
    body = f"**Problem Statement:**\n\n{problem.statement or 'Problem statement not found'}\n\n"
    if problem.input_spec:
        body += f"**Input Format:**\n{problem.input_spec}\n\n"
    if problem.output_spec:
        body += f"**Output Format:**\n{problem.output_spec}\n\n"
    if problem.samples:
        body += "**Examples:**\n\n"
        for i, sample in enumerate(problem.samples, 1):
            body += f"**Example {i}:**\n"
            body += f"Input:\n```\n{sample.input}\n```\n"
            body += f"Output:\n```\n{sample.output}\n```\n\n"
    if problem.note:
        body += f"**Note:** {problem.note}\n\n"
    body += "**Constraints:**\n"
    body += f"- Time Limit: {problem.time_limit or 'Unknown'}\n"
    body += f"- Memory Limit: {problem.memory_limit or 'Unknown'}\n"
    if tags:
        body += f"- Tags: {', '.join(tags)}\n"
    return body


class CodeforcesSource(BaseSource):
    name = "codeforces"
    content_type = "problem"
    site_url = "https://codeforces.com"

    API_URL = "https://codeforces.com/api/problemset.problems"
    PROBLEM_URL = "https://codeforces.com/problemset/problem/{contest_id}/{index}"

    # Pool of recent problems sampled from
    POOL_SIZE = 500

    default_headers = {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Referer": "https://codeforces.com/",
    }

    def discover(self) -> Generator[Tuple[str, dict], None, None]:
        try:
            data = self.client.fetch_json(self.API_URL, self.name)
        except (httpx.HTTPError, ValueError) as e:
            raise SourceError(f"[{self.name}] problemset API failed: {e}") from e
        if data.get("status") != "OK":
            raise SourceError(f"[{self.name}] problemset API error: {data.get('comment')}")

        problems = [p for p in data["result"]["problems"] if p.get("contestId") and p.get("index")]
        pool = problems[:self.POOL_SIZE]
        random.shuffle(pool)
        for p in pool[:self.source_config.limit]:
            url = self.PROBLEM_URL.format(contest_id=p["contestId"], index=p["index"])
            yield url, {
                "contestId": p["contestId"],
                "index": p["index"],
                "name": p.get("name", ""),
                "rating": p.get("rating"),
                "tags": p.get("tags", []),
            }

    def build_records(self, url: str, meta: dict, entity: Problem,
                      result: ScrapeResult) -> List[ContentRecord]:
        tags = meta.get("tags", [])
        key_points = ["Algorithmic challenge", "Competitive programming"]
        if entity.samples:
            key_points.append(f"{len(entity.samples)} example(s) provided")
        if entity.time_limit:
            key_points.append(f"Time limit: {entity.time_limit}")
        if entity.memory_limit:
            key_points.append(f"Memory limit: {entity.memory_limit}")

        return [ContentRecord(
            type=self.content_type,
            title=entity.title or meta.get("name") or "Untitled Problem",
            summary=self.summarize(entity.statement),
            body=format_problem_body(entity, tags),
            key_points=key_points,
            tags=tags[:5],
            read_time_minutes=max(5, 5 + len(entity.samples)),
            source_name=self.name,
            source_url=url,
            raw_data={
                **meta,
                "parsed": {
                    "timeLimit": entity.time_limit,
                    "memoryLimit": entity.memory_limit,
                    "testCaseCount": len(entity.samples),
                    "images": entity.images,
                },
            },
        )]
