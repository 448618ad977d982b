"""Shared fixtures: temporary database, direct-mode config and a wired session."""

from __future__ import annotations

import httpx
import pytest

from reel_scraper.config import AppConfig, RenderingConfig, RetryConfig, SourceConfig
from reel_scraper.db import Database
from reel_scraper.jobs import JobStore
from reel_scraper.session import ScrapeSession


class SleepRecorder:
    """Stands in for time.sleep; records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        db_path=str(tmp_path / "reel.db"),
        log_dir=str(tmp_path / "logs"),
        rendering=RenderingConfig(mode="direct", timeout=5),
        retry=RetryConfig(max_attempts=5),
        # No pacing for the "test" source so recorded sleeps are backoff only
        sources={"test": SourceConfig(rate_limit=0.0)},
    )


@pytest.fixture
def db(config):
    database = Database(config.db_path)
    yield database
    database.close()


@pytest.fixture
def store(db) -> JobStore:
    return JobStore(db)


@pytest.fixture
def session(config, db, sleeper):
    http = httpx.Client()
    sess = ScrapeSession.from_config(config, db=db, http=http, sleep=sleeper)
    yield sess
    http.close()
