"""Tests for the admin API against a temporary database."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import api.server as server
from reel_scraper.db import Database
from reel_scraper.errors import SourceError
from reel_scraper.jobs import JobStore
from reel_scraper.models import ContentRecord, ErrorCode, Notification

URL = "https://codeforces.com/problemset/problem/1/A"


@pytest.fixture
def client() -> TestClient:
    return TestClient(server.app)


@pytest.fixture
def seeded(tmp_path, monkeypatch):
    path = str(tmp_path / "api.db")
    monkeypatch.setenv("SQLITE_DB_PATH", path)
    db = Database(path)
    store = JobStore(db)

    paused = store.get_or_create_job("codeforces", [URL, URL + "B"])
    store.pause(paused.id, ErrorCode.CAPTCHA, URL)
    done = store.get_or_create_job("aman_ai", ["https://aman.ai/primers/ai/bert/"])
    store.update_progress(done.id, "https://aman.ai/primers/ai/bert/")

    db.insert_notification(Notification("codeforces", URL, ErrorCode.CAPTCHA, "Captcha detected"))
    record_id = db.insert_content(ContentRecord(
        type="problem", title="Watermelon", summary="Divide it.", body="**Problem Statement:**",
        source_name="codeforces", source_url=URL + "#x", tags=["math"]))

    yield {"db": db, "paused": paused.id, "done": done.id, "record": record_id}
    db.close()


class TestReadEndpoints:
    def test_health(self, client) -> None:
        assert client.get("/api/health").json()["status"] == "ok"

    def test_stats_without_database(self, client, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("SQLITE_DB_PATH", str(tmp_path / "missing.db"))
        assert client.get("/api/stats").json()["db_exists"] is False

    def test_jobs_need_database(self, client, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("SQLITE_DB_PATH", str(tmp_path / "missing.db"))
        assert client.get("/api/jobs").status_code == 503

    def test_list_and_get_jobs(self, client, seeded) -> None:
        data = client.get("/api/jobs", params={"source": "codeforces"}).json()
        assert data["total"] == 1
        assert data["jobs"][0]["status"] == "paused_captcha"

        job = client.get(f"/api/jobs/{seeded['paused']}").json()
        assert job["current_url"] == URL
        assert job["pause_reason"] == ErrorCode.CAPTCHA
        assert client.get("/api/jobs/999").status_code == 404

    def test_content(self, client, seeded) -> None:
        data = client.get("/api/content", params={"source": "codeforces"}).json()
        assert data["total"] == 1
        assert data["pages"] == 1
        assert data["content"][0]["title"] == "Watermelon"

        record = client.get(f"/api/content/{seeded['record']}").json()
        assert record["tags"] == ["math"]
        assert client.get("/api/content/999").status_code == 404

    def test_stats(self, client, seeded) -> None:
        data = client.get("/api/stats").json()
        assert data["total_content"] == 1
        assert data["content"] == {"codeforces": {"problem": 1}}
        assert data["jobs"]["codeforces"] == {"paused_captcha": 1}
        assert data["unresolved_notifications"] == 1


class TestControlEndpoints:
    def test_resume_paused_job(self, client, seeded) -> None:
        resp = client.post(f"/api/jobs/{seeded['paused']}/resume")

        assert resp.status_code == 200
        body = resp.json()
        assert body["job"]["status"] == "running"
        assert body["job"]["current_url"] == URL
        assert body["resolved_notifications"] == 1
        assert seeded["db"].list_notifications(resolved=False) == []

    def test_resume_finished_job_conflicts(self, client, seeded) -> None:
        assert client.post(f"/api/jobs/{seeded['done']}/resume").status_code == 409
        assert client.post("/api/jobs/999/resume").status_code == 404

    def test_resolve_notification(self, client, seeded) -> None:
        [notification] = seeded["db"].list_notifications()
        assert client.post(f"/api/notifications/{notification.id}/resolve").status_code == 200
        assert client.post(f"/api/notifications/{notification.id}/resolve").status_code == 404

        data = client.get("/api/notifications", params={"resolved": "true"}).json()
        assert data["total"] == 1

    def test_run_source(self, client, monkeypatch) -> None:
        calls = []

        def fake_run(name):
            calls.append(name)
            return {"source": name, "processed": 3, "paused": False}

        monkeypatch.setattr(server, "run_source", fake_run)

        assert client.post("/api/sources/nope/run").status_code == 404
        assert client.post("/api/sources/hackernews/run", json={"wait": True}).json()["processed"] == 3
        started = client.post("/api/sources/aman_ai/run").json()
        assert started == {"source": "aman_ai", "status": "started"}
        assert calls == ["hackernews", "aman_ai"]

    def test_run_source_discovery_failure_is_bad_gateway(self, client, monkeypatch) -> None:
        def failing(name):
            raise SourceError(f"[{name}] topstories failed: HTTP 503")

        monkeypatch.setattr(server, "run_source", failing)
        resp = client.post("/api/sources/hackernews/run", json={"wait": True})

        assert resp.status_code == 502
        assert resp.json()["detail"] == "[hackernews] topstories failed: HTTP 503"


def test_serve_runs_uvicorn(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(server.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setenv("API_PORT", "9001")
    monkeypatch.delenv("API_HOST", raising=False)

    server.serve()

    [(app, kwargs)] = calls
    assert app == "api.server:app"
    assert kwargs["port"] == 9001
    assert kwargs["host"] == "127.0.0.1"
