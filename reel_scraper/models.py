"""Data models for the scraper."""

import json
from dataclasses import dataclass, field
from typing import Dict, List, Optional


class JobStatus:
    RUNNING = "running"
    PAUSED_CAPTCHA = "paused_captcha"
    PAUSED_BLOCKED = "paused_blocked"
    COMPLETED = "completed"
    FAILED = "failed"

    ACTIVE = (RUNNING, PAUSED_CAPTCHA, PAUSED_BLOCKED)
    PAUSED = (PAUSED_CAPTCHA, PAUSED_BLOCKED)


class ErrorCode:
    CAPTCHA = "CAPTCHA"
    BLOCKED = "BLOCKED"
    RATE_LIMITED = "RATE_LIMITED"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN = "UNKNOWN"
    PARSE_FAILURE = "PARSE_FAILURE"

    # Terminal: need a human before the job can continue
    PAUSING = (CAPTCHA, BLOCKED)
    TRANSIENT = (RATE_LIMITED, NETWORK_ERROR)


def paused_status_for(code: str) -> str:
    if code == ErrorCode.CAPTCHA:
        return JobStatus.PAUSED_CAPTCHA
    if code == ErrorCode.BLOCKED:
        return JobStatus.PAUSED_BLOCKED
    raise ValueError(f"{code} does not pause a job")


@dataclass
class ScrapeJob:
    id: int
    source: str
    urls: List[str]
    current_url: Optional[str] = None
    completed_urls: List[str] = field(default_factory=list)
    failed_urls: List[dict] = field(default_factory=list)  # [{url, error, code}]
    status: str = JobStatus.RUNNING
    pause_reason: Optional[str] = None
    url_meta: Dict[str, dict] = field(default_factory=dict)
    created_at: Optional[str] = None
    last_updated: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "ScrapeJob":
        return cls(
            id=row["id"],
            source=row["source"],
            urls=json.loads(row["urls"] or "[]"),
            current_url=row["current_url"],
            completed_urls=json.loads(row["completed_urls"] or "[]"),
            failed_urls=json.loads(row["failed_urls"] or "[]"),
            status=row["status"],
            pause_reason=row["pause_reason"],
            url_meta=json.loads(row["url_meta"] or "{}"),
            created_at=row["created_at"],
            last_updated=row["last_updated"],
        )

    @property
    def is_paused(self) -> bool:
        return self.status in JobStatus.PAUSED

    @property
    def is_complete(self) -> bool:
        return len(self.completed_urls) >= len(self.urls)

    def failure_count(self, url: str) -> int:
        return sum(1 for f in self.failed_urls if f.get("url") == url)

    def remaining(self) -> List[str]:
        done = set(self.completed_urls)
        return [u for u in self.urls if u not in done]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source": self.source,
            "status": self.status,
            "pause_reason": self.pause_reason,
            "current_url": self.current_url,
            "total": len(self.urls),
            "completed": len(self.completed_urls),
            "failed": len(self.failed_urls),
            "urls": self.urls,
            "completed_urls": self.completed_urls,
            "failed_urls": self.failed_urls,
            "created_at": self.created_at,
            "last_updated": self.last_updated,
        }


@dataclass
class ScrapeResult:
    success: bool
    content: str = ""
    markdown: Optional[str] = None
    html: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    status_code: Optional[int] = None
    retries: int = 0

    @property
    def paused(self) -> bool:
        return not self.success and self.error_code in ErrorCode.PAUSING

    @property
    def page_html(self) -> str:
        return self.html or self.content or ""

    @property
    def page_text(self) -> str:
        return self.markdown or self.content or ""


@dataclass(frozen=True)
class ContentRecord:
    type: str
    title: str
    summary: str
    body: str
    source_name: str
    source_url: str
    key_points: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    read_time_minutes: int = 5
    author: Optional[str] = None
    raw_data: dict = field(default_factory=dict)
    id: Optional[int] = None
    created_at: Optional[str] = None


@dataclass
class Notification:
    source: str
    url: str
    error_type: str
    message: str
    resolved: bool = False
    id: Optional[int] = None
    created_at: Optional[str] = None
    resolved_at: Optional[str] = None


# Extracted entities ---------------------------------------------------------


@dataclass
class Sample:
    input: str
    output: str


@dataclass
class Problem:
    title: str = ""
    time_limit: str = ""
    memory_limit: str = ""
    statement: str = ""
    statement_html: str = ""
    input_spec: str = ""
    output_spec: str = ""
    samples: List[Sample] = field(default_factory=list)
    note: str = ""
    images: List[str] = field(default_factory=list)


@dataclass
class ArticleSection:
    title: str
    chapter: str
    order: int
    order_in_chapter: int
    content_html: str
    content_markdown: str
    word_count: int = 0
    has_code: bool = False
    has_math: bool = False
    has_images: bool = False
    heading_html: str = ""

    @property
    def anchor(self) -> str:
        return "-".join(self.title.lower().split())


@dataclass
class Article:
    title: str
    sections: List[ArticleSection] = field(default_factory=list)


@dataclass
class TutorialSection:
    problem_index: str
    title: str
    content_html: str
    content_markdown: str
    images: List[str] = field(default_factory=list)


@dataclass
class Tutorial:
    title: str
    sections: List[TutorialSection] = field(default_factory=list)


@dataclass
class GeneratedContent:
    title: str
    summary: str
    body: str
    key_points: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    read_time_minutes: int = 5


@dataclass
class RunSummary:
    source: str
    job_id: Optional[int] = None
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    paused: bool = False
    reason: Optional[str] = None
    message: str = ""
    instructions: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        out = {
            "source": self.source,
            "processed": self.processed,
            "failed": self.failed,
            "skipped": self.skipped,
            "jobId": self.job_id,
            "paused": self.paused,
            "message": self.message,
        }
        if self.paused:
            out["reason"] = self.reason
            out["pausedReason"] = self.reason
            out["instructions"] = self.instructions
        return out
