"""Codeforces contest editorials: contest page -> tutorial blog entry -> one
card per problem section."""

import logging
from typing import Generator, List, Tuple

import httpx

from ..errors import ParseFailure, SourceError
from ..extractors.tutorial import find_tutorial_url
from ..models import ContentRecord, ScrapeResult, Tutorial
from .codeforces import CodeforcesSource

logger = logging.getLogger("reel_scraper")


class CodeforcesEditorialsSource(CodeforcesSource):
    name = "codeforces_editorials"
    content_type = "tutorial"
    multi_record = True

    CONTEST_LIST_URL = "https://codeforces.com/api/contest.list?gym=false"
    CONTEST_URL = "https://codeforces.com/contest/{contest_id}"

    def discover(self) -> Generator[Tuple[str, dict], None, None]:
        try:
            data = self.client.fetch_json(self.CONTEST_LIST_URL, self.name)
        except (httpx.HTTPError, ValueError) as e:
            raise SourceError(f"[{self.name}] contest list API failed: {e}") from e
        if data.get("status") != "OK":
            raise SourceError(f"[{self.name}] contest list API error: {data.get('comment')}")

        finished = [c for c in data["result"] if c.get("phase") == "FINISHED"]
        for contest in finished[:self.source_config.limit]:
            yield self.CONTEST_URL.format(contest_id=contest["id"]), {
                "contestId": contest["id"],
                "name": contest.get("name", ""),
            }

    def fetch_page(self, url: str, meta: dict, job_id: int) -> ScrapeResult:
        contest = super().fetch_page(url, meta, job_id)
        if not contest.success:
            return contest

        tutorial_url = find_tutorial_url(contest.page_html)
        if not tutorial_url:
            raise ParseFailure(f"No tutorial link on contest page {url}")
        meta["tutorial_url"] = tutorial_url
        logger.info(f"[{self.name}] Tutorial for {url}: {tutorial_url}")
        return super().fetch_page(tutorial_url, meta, job_id)

    def build_records(self, url: str, meta: dict, entity: Tutorial,
                      result: ScrapeResult) -> List[ContentRecord]:
        contest_name = meta.get("name") or entity.title
        records = []
        for section in entity.sections:
            if section.problem_index:
                source_url = f"{url}#problem-{section.problem_index}"
                title = f"{contest_name}: {section.title}"
            else:
                source_url = f"{url}#editorial"
                title = entity.title or contest_name
            word_count = len(section.content_markdown.split())
            records.append(ContentRecord(
                type=self.content_type,
                title=title,
                summary=self.summarize(section.content_markdown),
                body=section.content_markdown,
                key_points=["Editorial", f"Contest {meta.get('contestId', '')}".strip()],
                tags=["codeforces", "editorial"],
                read_time_minutes=max(1, -(-word_count // 200)),
                source_name=self.name,
                source_url=source_url,
                raw_data={
                    "contestId": meta.get("contestId"),
                    "problemIndex": section.problem_index,
                    "tutorialUrl": meta.get("tutorial_url"),
                    "images": section.images,
                },
            ))
        return records
