"""End-to-end pipeline runs against mocked pages: checkpoints, pauses and resumes."""

from __future__ import annotations

import logging

import httpx
import pytest
import respx

from reel_scraper.errors import ParseFailure
from reel_scraper.extractors import Extractor
from reel_scraper.extractors.html import strip_tags
from reel_scraper.models import ContentRecord, ErrorCode, JobStatus
from reel_scraper.orchestrator import Orchestrator, run_source
from reel_scraper.sources.base import BaseSource

BASE = "https://site.test"


def _urls(n: int) -> list[str]:
    return [f"{BASE}/page/{i}" for i in range(1, n + 1)]


def _page(text: str) -> httpx.Response:
    return httpx.Response(200, text=f"<html><body><p>{text}</p></body></html>")


class StubSource(BaseSource):
    name = "test"
    content_type = "note"
    site_url = BASE

    def __init__(self, session, urls):
        super().__init__(session)
        self.urls = urls
        self.discover_calls = 0

    def discover(self):
        self.discover_calls += 1
        for url in self.urls:
            yield url, {}

    def build_records(self, url, meta, entity, result):
        return [ContentRecord(
            type=self.content_type,
            title=f"Page {url.rsplit('/', 1)[-1]}",
            summary=self.summarize(entity, 40),
            body=entity,
            source_name=self.name,
            source_url=url,
        )]


class PageExtractor(Extractor):
    name = "page"
    min_length = 10

    def extract(self, result, url, meta):
        html = self.require_payload(result.page_html, url)
        if "broken" in html:
            raise ParseFailure(f"Broken page at {url}")
        return strip_tags(html)


def _orchestrator(session, urls) -> Orchestrator:
    return Orchestrator(session, StubSource(session, urls), extractor=PageExtractor())


def _seed_content(session, url: str) -> None:
    session.db.insert_content(ContentRecord(
        type="note", title="seeded", summary="", body="", source_name="test", source_url=url))


# ---------------------------------------------------------------------------
# Fresh runs
# ---------------------------------------------------------------------------


class TestFreshRun:
    def test_processes_every_url(self, session) -> None:
        urls = _urls(3)
        with respx.mock:
            for i, url in enumerate(urls, 1):
                respx.get(url).mock(return_value=_page(f"body of page {i}"))
            summary = _orchestrator(session, urls).run()

        assert summary.processed == 3
        assert summary.failed == 0
        assert not summary.paused
        job = session.jobs.get(summary.job_id)
        assert job.status == JobStatus.COMPLETED
        assert job.completed_urls == urls
        records, total = session.db.list_content(source="test")
        assert total == 3
        assert {r.source_url for r in records} == set(urls)

    def test_no_urls_discovered(self, session) -> None:
        summary = _orchestrator(session, []).run()
        assert summary.job_id is None
        assert summary.message == "No urls discovered"
        assert session.jobs.list() == []

    def test_run_logs_session_id(self, session, caplog) -> None:
        caplog.set_level(logging.INFO, logger="reel_scraper")
        _orchestrator(session, []).run()
        assert f"session {session.session_id}" in caplog.text

    def test_parse_failure_does_not_stop_the_loop(self, session) -> None:
        urls = _urls(3)
        with respx.mock:
            respx.get(urls[0]).mock(return_value=_page("first page body"))
            respx.get(urls[1]).mock(return_value=_page("this page is broken"))
            respx.get(urls[2]).mock(return_value=_page("third page body"))
            summary = _orchestrator(session, urls).run()

        assert summary.processed == 2
        assert summary.failed == 1
        job = session.jobs.get(summary.job_id)
        assert job.status == JobStatus.RUNNING
        assert job.failed_urls[0]["code"] == ErrorCode.PARSE_FAILURE
        assert job.remaining() == [urls[1]]

    def test_http_failure_is_recorded(self, session) -> None:
        urls = _urls(2)
        with respx.mock:
            respx.get(urls[0]).mock(return_value=httpx.Response(404))
            respx.get(urls[1]).mock(return_value=_page("second page body"))
            summary = _orchestrator(session, urls).run()

        assert summary.failed == 1
        assert summary.processed == 1
        failure = session.jobs.get(summary.job_id).failed_urls[0]
        assert failure["url"] == urls[0]
        assert failure["code"] == ErrorCode.UNKNOWN


# ---------------------------------------------------------------------------
# Resuming
# ---------------------------------------------------------------------------


class TestResume:
    def test_resume_fetches_only_remaining_urls(self, session) -> None:
        urls = _urls(5)
        job = session.jobs.get_or_create_job("test", urls)
        for url in urls[:2]:
            _seed_content(session, url)
            session.jobs.update_progress(job.id, url)

        orchestrator = _orchestrator(session, urls)
        with respx.mock:
            routes = [respx.get(url).mock(return_value=_page("later page body")) for url in urls[2:]]
            summary = orchestrator.run()

        assert orchestrator.source.discover_calls == 0
        assert summary.job_id == job.id
        assert summary.processed == 3
        assert summary.skipped == 2
        assert all(route.call_count == 1 for route in routes)
        assert session.jobs.get(job.id).status == JobStatus.COMPLETED

    def test_content_beats_checkpoint(self, session) -> None:
        urls = _urls(2)
        job = session.jobs.get_or_create_job("test", urls)
        # Stored but never checkpointed
        _seed_content(session, urls[0])
        # Checkpointed but never stored
        session.jobs.update_progress(job.id, urls[1])

        with respx.mock:
            route = respx.get(urls[1]).mock(return_value=_page("second page body"))
            summary = _orchestrator(session, urls).run()

        assert summary.skipped == 1
        assert summary.processed == 1
        assert route.call_count == 1
        assert session.db.content_exists(urls[1])
        assert session.jobs.get(job.id).status == JobStatus.COMPLETED

    def test_fatal_urls_are_skipped_and_job_fails(self, session) -> None:
        urls = _urls(2)
        job = session.jobs.get_or_create_job("test", urls)
        for _ in range(3):
            session.jobs.record_failure(job.id, urls[0], "HTTP 404")

        with respx.mock:
            respx.get(urls[1]).mock(return_value=_page("second page body"))
            summary = _orchestrator(session, urls).run()

        assert summary.skipped == 1
        assert summary.processed == 1
        job = session.jobs.get(job.id)
        assert job.status == JobStatus.FAILED
        assert "failed" in summary.message


# ---------------------------------------------------------------------------
# Existing-content keys
# ---------------------------------------------------------------------------


class TestContentKeys:
    def test_fragment_records_match_only_on_request(self, session) -> None:
        _seed_content(session, f"{BASE}/post#comments")

        assert not session.db.content_exists(f"{BASE}/post")
        assert session.db.content_exists(f"{BASE}/post", fragments=True)
        assert session.db.content_exists(f"{BASE}/post#comments")
        # LIKE wildcards in the url are literal
        assert not session.db.content_exists(f"{BASE}/p_st", fragments=True)

    def test_fragment_record_does_not_skip_a_single_record_page(self, session) -> None:
        [url] = _urls(1)
        _seed_content(session, f"{url}#comments")

        with respx.mock:
            route = respx.get(url).mock(return_value=_page("a different story"))
            summary = _orchestrator(session, [url]).run()

        assert route.call_count == 1
        assert summary.processed == 1
        assert summary.skipped == 0
        assert session.db.content_exists(url)

    def test_fragment_records_skip_a_multi_record_page(self, session) -> None:
        [url] = _urls(1)
        _seed_content(session, f"{url}#section-1")
        orchestrator = _orchestrator(session, [url])
        orchestrator.source.multi_record = True

        with respx.mock as mock:
            summary = orchestrator.run()

        assert len(mock.calls) == 0
        assert summary.skipped == 1
        assert session.jobs.get(summary.job_id).status == JobStatus.COMPLETED


# ---------------------------------------------------------------------------
# Pausing
# ---------------------------------------------------------------------------


class TestPauseAndResume:
    def test_blocked_run_pauses_then_resumes(self, session) -> None:
        urls = _urls(3)
        with respx.mock:
            first = respx.get(urls[0]).mock(return_value=_page("first page body"))
            second = respx.get(urls[1]).mock(side_effect=[
                httpx.Response(403, text="Forbidden"),
                _page("second page body"),
            ])
            third = respx.get(urls[2]).mock(return_value=_page("third page body"))

            paused = _orchestrator(session, urls).run()

            assert paused.paused
            assert paused.reason == ErrorCode.BLOCKED
            assert paused.processed == 1
            assert paused.failed == 0
            assert third.call_count == 0

            job = session.jobs.get(paused.job_id)
            assert job.status == JobStatus.PAUSED_BLOCKED
            assert job.current_url == urls[1]
            assert job.completed_urls == [urls[0]]
            assert len(session.db.list_notifications(resolved=False)) == 1

            resumed = _orchestrator(session, urls).run()

        assert resumed.job_id == paused.job_id
        assert not resumed.paused
        assert resumed.skipped == 1
        assert resumed.processed == 2
        assert first.call_count == 1
        assert second.call_count == 2
        assert session.jobs.get(paused.job_id).status == JobStatus.COMPLETED

        out = paused.to_dict()
        assert out["paused"] is True
        assert out["reason"] == "BLOCKED"
        assert out["jobId"] == paused.job_id
        assert len(out["instructions"]) == 4

    def test_paused_job_waits_without_auto_resume(self, session) -> None:
        session.config.auto_resume = False
        urls = _urls(2)
        job = session.jobs.get_or_create_job("test", urls)
        session.jobs.pause(job.id, ErrorCode.CAPTCHA, urls[0])

        with respx.mock as mock:
            summary = _orchestrator(session, urls).run()

        assert len(mock.calls) == 0
        assert summary.paused
        assert summary.reason == ErrorCode.CAPTCHA
        assert summary.instructions[2] == "3. Set TEST_COOKIES with the fresh cookies"
        assert summary.instructions[3].endswith(f"--resume {job.id}")
        assert session.jobs.get(job.id).status == JobStatus.PAUSED_CAPTCHA


def test_run_source_rejects_unknown_name(session) -> None:
    with pytest.raises(ValueError):
        run_source("nope", session=session)
