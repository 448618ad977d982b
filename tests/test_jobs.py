"""Tests for the job checkpoint store and its status machine."""

from __future__ import annotations

import pytest

from reel_scraper.errors import InvalidTransition, JobNotFound
from reel_scraper.models import ErrorCode, JobStatus

URLS = ["https://x.test/1", "https://x.test/2", "https://x.test/3"]


class TestGetOrCreate:
    def test_new_job_dedups_in_order(self, store) -> None:
        job = store.get_or_create_job("test", URLS + [URLS[0], URLS[1]])

        assert job.urls == URLS
        assert job.status == JobStatus.RUNNING
        assert job.current_url == URLS[0]
        assert job.completed_urls == []

    def test_returns_active_job(self, store) -> None:
        first = store.get_or_create_job("test", URLS)
        again = store.get_or_create_job("test", ["https://x.test/other"])
        assert again.id == first.id
        assert again.urls == URLS

    def test_returns_paused_job(self, store) -> None:
        first = store.get_or_create_job("test", URLS)
        store.pause(first.id, ErrorCode.CAPTCHA, URLS[0])
        again = store.get_or_create_job("test", URLS)
        assert again.id == first.id
        assert again.status == JobStatus.PAUSED_CAPTCHA

    def test_finished_job_is_not_reused(self, store) -> None:
        first = store.get_or_create_job("test", URLS[:1])
        store.update_progress(first.id, URLS[0])
        second = store.get_or_create_job("test", URLS[:1])
        assert second.id != first.id

    def test_sources_are_independent(self, store) -> None:
        a = store.get_or_create_job("a", URLS)
        b = store.get_or_create_job("b", URLS)
        assert a.id != b.id

    def test_url_meta_round_trips(self, store) -> None:
        job = store.get_or_create_job("test", URLS[:1], {URLS[0]: {"index": "A"}})
        assert store.get(job.id).url_meta == {URLS[0]: {"index": "A"}}


class TestUpdateProgress:
    def test_checkpoint_advances(self, store) -> None:
        job = store.get_or_create_job("test", URLS)
        job = store.update_progress(job.id, URLS[0])

        assert job.completed_urls == [URLS[0]]
        assert job.current_url == URLS[1]
        assert job.status == JobStatus.RUNNING

    def test_idempotent(self, store) -> None:
        job = store.get_or_create_job("test", URLS)
        store.update_progress(job.id, URLS[1])
        job = store.update_progress(job.id, URLS[1])
        assert job.completed_urls == [URLS[1]]
        assert job.current_url == URLS[0]

    def test_completes_when_all_done(self, store) -> None:
        job = store.get_or_create_job("test", URLS)
        for url in URLS:
            job = store.update_progress(job.id, url)
        assert job.status == JobStatus.COMPLETED
        assert job.current_url is None
        assert job.is_complete

    def test_unknown_url_is_ignored(self, store) -> None:
        job = store.get_or_create_job("test", URLS)
        job = store.update_progress(job.id, "https://x.test/stranger")
        assert job.completed_urls == []

    def test_requires_running(self, store) -> None:
        job = store.get_or_create_job("test", URLS)
        store.pause(job.id, ErrorCode.BLOCKED, URLS[0])
        with pytest.raises(InvalidTransition):
            store.update_progress(job.id, URLS[0])


class TestPauseResume:
    def test_pause_records_reason_and_url(self, store) -> None:
        job = store.get_or_create_job("test", URLS)
        job = store.pause(job.id, ErrorCode.BLOCKED, URLS[1])

        assert job.status == JobStatus.PAUSED_BLOCKED
        assert job.pause_reason == ErrorCode.BLOCKED
        assert job.current_url == URLS[1]
        assert job.is_paused

    def test_repeat_pause_is_noop(self, store) -> None:
        job = store.get_or_create_job("test", URLS)
        store.pause(job.id, ErrorCode.CAPTCHA, URLS[0])
        job = store.pause(job.id, ErrorCode.CAPTCHA, URLS[0])
        assert job.status == JobStatus.PAUSED_CAPTCHA

    def test_paused_cannot_switch_reason(self, store) -> None:
        job = store.get_or_create_job("test", URLS)
        store.pause(job.id, ErrorCode.CAPTCHA, URLS[0])
        with pytest.raises(InvalidTransition):
            store.pause(job.id, ErrorCode.BLOCKED, URLS[0])

    def test_only_pausing_codes(self, store) -> None:
        job = store.get_or_create_job("test", URLS)
        with pytest.raises(ValueError):
            store.pause(job.id, ErrorCode.RATE_LIMITED, URLS[0])

    def test_resume_keeps_checkpoint(self, store) -> None:
        job = store.get_or_create_job("test", URLS)
        store.update_progress(job.id, URLS[0])
        store.pause(job.id, ErrorCode.CAPTCHA, URLS[1])

        job = store.resume(job.id)

        assert job.status == JobStatus.RUNNING
        assert job.pause_reason is None
        assert job.completed_urls == [URLS[0]]
        assert job.current_url == URLS[1]

    def test_resume_running_is_noop(self, store) -> None:
        job = store.get_or_create_job("test", URLS)
        assert store.resume(job.id).status == JobStatus.RUNNING

    def test_terminal_states_reject_resume(self, store) -> None:
        job = store.get_or_create_job("test", URLS[:1])
        store.update_progress(job.id, URLS[0])
        with pytest.raises(InvalidTransition):
            store.resume(job.id)
        with pytest.raises(InvalidTransition):
            store.pause(job.id, ErrorCode.CAPTCHA, URLS[0])

    def test_missing_job(self, store) -> None:
        with pytest.raises(JobNotFound):
            store.resume(999)
        with pytest.raises(JobNotFound):
            store.get(999)


class TestFailures:
    def test_record_failure_appends(self, store) -> None:
        job = store.get_or_create_job("test", URLS)
        store.record_failure(job.id, URLS[0], "HTTP 404", ErrorCode.UNKNOWN)
        job = store.record_failure(job.id, URLS[0], "HTTP 404", ErrorCode.UNKNOWN)

        assert job.failure_count(URLS[0]) == 2
        assert job.failed_urls[0] == {"url": URLS[0], "error": "HTTP 404", "code": "UNKNOWN"}
        assert not store.is_fatal(job, URLS[0])

    def test_fatal_after_three(self, store) -> None:
        job = store.get_or_create_job("test", URLS)
        for _ in range(3):
            job = store.record_failure(job.id, URLS[2], "boom")
        assert store.is_fatal(job, URLS[2])

    def test_finalize_fails_job_when_only_fatal_urls_remain(self, store) -> None:
        job = store.get_or_create_job("test", URLS[:2])
        store.update_progress(job.id, URLS[0])
        for _ in range(3):
            store.record_failure(job.id, URLS[1], "boom")

        job = store.finalize(job.id)

        assert job.status == JobStatus.FAILED
        assert job.current_url is None

    def test_finalize_leaves_retriable_job_running(self, store) -> None:
        job = store.get_or_create_job("test", URLS[:2])
        store.record_failure(job.id, URLS[1], "boom")
        assert store.finalize(job.id).status == JobStatus.RUNNING

    def test_finalize_ignores_paused(self, store) -> None:
        job = store.get_or_create_job("test", URLS)
        store.pause(job.id, ErrorCode.BLOCKED, URLS[0])
        assert store.finalize(job.id).status == JobStatus.PAUSED_BLOCKED


class TestListing:
    def test_list_filters(self, store) -> None:
        a = store.get_or_create_job("a", URLS)
        store.get_or_create_job("b", URLS)
        store.pause(a.id, ErrorCode.CAPTCHA, URLS[0])

        assert {j.source for j in store.list()} == {"a", "b"}
        assert [j.id for j in store.list(source="a")] == [a.id]
        assert [j.source for j in store.list(status=JobStatus.PAUSED_CAPTCHA)] == ["a"]
