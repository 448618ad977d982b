"""Per-source pipeline: job checkpointing around scrape -> extract -> persist."""

import logging
import os
from typing import Optional

from .config import AppConfig, load_config
from .errors import ParseFailure
from .extractors import Extractor, get_extractor
from .models import ErrorCode, JobStatus, RunSummary, ScrapeJob
from .session import ScrapeSession
from .sources import ALL_SOURCES
from .sources.base import BaseSource

logger = logging.getLogger("reel_scraper")


class Orchestrator:
    def __init__(self, session: ScrapeSession, source: BaseSource,
                 extractor: Optional[Extractor] = None):
        self.session = session
        self.source = source
        self.jobs = session.jobs
        self.db = session.db
        self.extractor = extractor or get_extractor(source.name, session.textgen)

    @property
    def name(self) -> str:
        return self.source.name

    def run(self) -> RunSummary:
        """Create or resume the source's job and work through its urls.

        Returns early with a paused summary on CAPTCHA/BLOCKED; per-url
        failures are recorded on the job and the loop continues.
        """
        summary = RunSummary(source=self.name)
        logger.info(f"[{self.name}] Run started (session {self.session.session_id})")
        job = self._load_job()
        if job is None:
            summary.message = "No urls discovered"
            logger.info(f"[{self.name}] {summary.message}")
            return summary
        summary.job_id = job.id

        if job.is_paused:
            if not self.session.config.auto_resume:
                logger.warning(f"[{self.name}] Job {job.id} is paused ({job.pause_reason}); "
                               f"resume it before running again")
                return self._paused(summary, job, job.pause_reason, job.current_url)
            job = self.jobs.resume(job.id)

        completed = set(job.completed_urls)
        logger.info(f"[{self.name}] Job {job.id}: {len(job.urls) - len(completed)} of "
                    f"{len(job.urls)} urls remaining")

        for url in job.urls:
            # Content table decides; the checkpoint only saves lookups
            if self.db.content_exists(url, fragments=self.source.multi_record):
                if url not in completed:
                    job = self._advance(job, url)
                summary.skipped += 1
                continue
            if url in completed:
                logger.warning(f"[{self.name}] {url} is checkpointed but has no content; re-processing")
            if self.jobs.is_fatal(job, url):
                summary.skipped += 1
                continue

            self.jobs.set_current(job.id, url)
            meta = job.url_meta.get(url, {})
            try:
                result = self.source.fetch_page(url, meta, job.id)

                if result.paused:
                    return self._paused(summary, self.jobs.get(job.id), result.error_code, url)

                if not result.success:
                    logger.error(f"[{self.name}] Failed to scrape {url}: {result.error}")
                    job = self.jobs.record_failure(job.id, url, result.error or "",
                                                   result.error_code or ErrorCode.UNKNOWN)
                    summary.failed += 1
                    continue

                entity = self.extractor.extract(result, url, meta)
                records = self.source.build_records(url, meta, entity, result)
                if not records:
                    raise ParseFailure(f"No records built from {url}")

                inserted = sum(1 for r in records if self.db.insert_content(r) is not None)
                job = self._advance(job, url)
                summary.processed += 1
                logger.info(f"[{self.name}] Processed: {url} ({inserted} records)")

            except ParseFailure as e:
                logger.error(f"[{self.name}] Parse failure: {e}")
                job = self.jobs.record_failure(job.id, url, str(e), ErrorCode.PARSE_FAILURE)
                summary.failed += 1
            except Exception as e:
                logger.error(f"[{self.name}] Failed: {url}: {e}")
                job = self.jobs.record_failure(job.id, url, str(e), ErrorCode.UNKNOWN)
                summary.failed += 1

        job = self.jobs.finalize(job.id)
        summary.message = (f"Processed {summary.processed} urls, {summary.failed} failed, "
                           f"{summary.skipped} skipped (job {job.status})")
        logger.info(f"[{self.name}] Done: {summary.message}")
        return summary

    def _load_job(self) -> Optional[ScrapeJob]:
        job = self.jobs.find_active(self.name)
        if job is not None:
            # Resumed jobs keep their original url set; no rediscovery
            return job

        logger.info(f"[{self.name}] Starting discovery...")
        discovered = list(self.source.discover())
        if not discovered:
            return None
        urls = [url for url, _ in discovered]
        url_meta = {url: meta for url, meta in discovered}
        return self.jobs.get_or_create_job(self.name, urls, url_meta)

    def _advance(self, job: ScrapeJob, url: str) -> ScrapeJob:
        if job.status != JobStatus.RUNNING:
            return job
        return self.jobs.update_progress(job.id, url)

    def _paused(self, summary: RunSummary, job: ScrapeJob, reason: str, url: str) -> RunSummary:
        if job.current_url != url:
            self.jobs.set_current(job.id, url)
        summary.paused = True
        summary.reason = reason
        summary.message = (f"Job paused due to {reason} at {url}. "
                           f"Check notifications and resume when resolved.")
        summary.instructions = self.source.remediation(reason, job.id)
        logger.warning(f"[{self.name}] {summary.message}")
        for line in summary.instructions:
            logger.warning(f"[{self.name}]    {line}")
        return summary


def run_source(name: str, config: Optional[AppConfig] = None,
               session: Optional[ScrapeSession] = None) -> dict:
    """Run one source pipeline and return its summary dict.

    Needs nothing beyond environment configuration: the config file path
    comes from REEL_CONFIG (default ``config.yaml``).
    """
    if name not in ALL_SOURCES:
        raise ValueError(f"Unknown source: {name}")

    own_session = session is None
    if own_session:
        config = config or load_config(os.environ.get("REEL_CONFIG", "config.yaml"))
        session = ScrapeSession.from_config(config)
    try:
        source = ALL_SOURCES[name](session)
        return Orchestrator(session, source).run().to_dict()
    finally:
        if own_session:
            session.close()
