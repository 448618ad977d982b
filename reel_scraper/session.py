"""One explicit context per invocation, passed to every source and stage."""

import uuid
from dataclasses import dataclass, field
from typing import Optional

import httpx

from .config import AppConfig
from .db import Database
from .jobs import JobStore
from .notify import NotificationDispatcher
from .scraper import ScrapeClient
from .textgen import TextGenerator


@dataclass
class ScrapeSession:
    config: AppConfig
    db: Database
    jobs: JobStore
    notifier: NotificationDispatcher
    client: ScrapeClient
    textgen: TextGenerator
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def from_config(cls, config: AppConfig, db: Optional[Database] = None,
                    http: Optional[httpx.Client] = None, sleep=None) -> "ScrapeSession":
        """Wire the collaborators together.

        ``http`` is shared by the scrape client, the notifier and the Ollama
        client; tests pass one mounted on a mock transport. ``sleep`` replaces
        ``time.sleep`` for pacing and backoff.
        """
        db = db or Database(config.db_path)
        jobs = JobStore(db, config.retry.max_url_failures)
        notifier = NotificationDispatcher(config.notifications, db, client=http)
        kwargs = {"sleep": sleep} if sleep is not None else {}
        client = ScrapeClient(config, job_store=jobs, notifier=notifier, client=http, **kwargs)
        textgen = TextGenerator(config.textgen, client=http)
        return cls(config=config, db=db, jobs=jobs, notifier=notifier,
                   client=client, textgen=textgen)

    def close(self):
        self.client.close()
        self.notifier.close()
        self.textgen.close()
        self.db.close()
