"""Job checkpoints: creation, resume, progress, pause and the status machine.

Every mutation is a read-modify-write against the database. Two runners on
the same source could both process a url; the unique source_url on content
records absorbs that.
"""

import logging
from typing import Dict, List, Optional

from .db import Database
from .errors import InvalidTransition, JobNotFound
from .models import ErrorCode, JobStatus, ScrapeJob, paused_status_for

logger = logging.getLogger("reel_scraper")

TRANSITIONS = {
    JobStatus.RUNNING: {
        JobStatus.RUNNING,
        JobStatus.PAUSED_CAPTCHA,
        JobStatus.PAUSED_BLOCKED,
        JobStatus.COMPLETED,
        JobStatus.FAILED,
    },
    JobStatus.PAUSED_CAPTCHA: {JobStatus.RUNNING},
    JobStatus.PAUSED_BLOCKED: {JobStatus.RUNNING},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


class JobStore:
    def __init__(self, db: Database, max_url_failures: int = 3):
        self.db = db
        self.max_url_failures = max_url_failures

    def get(self, job_id: int) -> ScrapeJob:
        row = self.db.get_job(job_id)
        if row is None:
            raise JobNotFound(job_id)
        return ScrapeJob.from_row(row)

    def find_active(self, source: str) -> Optional[ScrapeJob]:
        row = self.db.find_active_job(source, JobStatus.ACTIVE)
        return ScrapeJob.from_row(row) if row else None

    def get_or_create_job(self, source: str, urls: List[str],
                          url_meta: Dict[str, dict] = None) -> ScrapeJob:
        """Return the source's running or paused job, or start a new one."""
        existing = self.find_active(source)
        if existing:
            logger.info(f"[{source}] Resuming job {existing.id} ({existing.status}, "
                        f"{len(existing.completed_urls)}/{len(existing.urls)} done)")
            return existing

        # Order-preserving dedup
        unique = list(dict.fromkeys(urls))
        job_id = self.db.insert_job(source, unique, url_meta)
        logger.info(f"[{source}] Created job {job_id} with {len(unique)} urls")
        return self.get(job_id)

    def _transition(self, job: ScrapeJob, target: str):
        if target not in TRANSITIONS.get(job.status, set()):
            raise InvalidTransition(job.id, job.status, target)

    def update_progress(self, job_id: int, completed_url: str) -> ScrapeJob:
        """Append ``completed_url`` to the checkpoint and recompute completion."""
        job = self.get(job_id)
        if job.status != JobStatus.RUNNING:
            raise InvalidTransition(job.id, job.status, JobStatus.RUNNING)

        completed = list(job.completed_urls)
        if completed_url in job.urls and completed_url not in completed:
            completed.append(completed_url)

        is_complete = len(completed) >= len(job.urls)
        status = JobStatus.COMPLETED if is_complete else JobStatus.RUNNING
        next_url = None if is_complete else self._next_url(job.urls, completed)

        self.db.update_job(job_id, completed_urls=completed, status=status, current_url=next_url)
        if is_complete:
            logger.info(f"[{job.source}] Job {job_id} completed ({len(completed)} urls)")
        return self.get(job_id)

    @staticmethod
    def _next_url(urls: List[str], completed: List[str]) -> Optional[str]:
        done = set(completed)
        for url in urls:
            if url not in done:
                return url
        return None

    def set_current(self, job_id: int, url: str):
        self.db.update_job(job_id, current_url=url)

    def record_failure(self, job_id: int, url: str, error: str,
                       code: str = ErrorCode.UNKNOWN) -> ScrapeJob:
        job = self.get(job_id)
        failed = list(job.failed_urls)
        failed.append({"url": url, "error": error, "code": code})
        self.db.update_job(job_id, failed_urls=failed)
        return self.get(job_id)

    def is_fatal(self, job: ScrapeJob, url: str) -> bool:
        return job.failure_count(url) >= self.max_url_failures

    def pause(self, job_id: int, reason: str, current_url: str) -> ScrapeJob:
        job = self.get(job_id)
        target = paused_status_for(reason)
        if job.status == target and job.current_url == current_url:
            return job
        self._transition(job, target)
        self.db.update_job(job_id, status=target, pause_reason=reason, current_url=current_url)
        logger.warning(f"[{job.source}] Job {job_id} paused: {reason} at {current_url}")
        return self.get(job_id)

    def resume(self, job_id: int) -> ScrapeJob:
        """External resume: paused_* -> running."""
        job = self.get(job_id)
        if job.status == JobStatus.RUNNING:
            return job
        self._transition(job, JobStatus.RUNNING)
        self.db.update_job(job_id, status=JobStatus.RUNNING, pause_reason=None)
        logger.info(f"[{job.source}] Job {job_id} resumed at {job.current_url}")
        return self.get(job_id)

    def finalize(self, job_id: int) -> ScrapeJob:
        """Close out a running job whose remaining urls have all failed fatally."""
        job = self.get(job_id)
        if job.status != JobStatus.RUNNING:
            return job
        if job.is_complete:
            self.db.update_job(job_id, status=JobStatus.COMPLETED, current_url=None)
            return self.get(job_id)

        remaining = job.remaining()
        if remaining and all(self.is_fatal(job, url) for url in remaining):
            self.db.update_job(job_id, status=JobStatus.FAILED, current_url=None)
            logger.error(f"[{job.source}] Job {job_id} failed: "
                         f"{len(remaining)} urls exhausted {self.max_url_failures} attempts")
            return self.get(job_id)
        return job

    def list(self, source: str = None, status: str = None, limit: int = 50) -> List[ScrapeJob]:
        return [ScrapeJob.from_row(r) for r in self.db.list_jobs(source, status, limit)]
