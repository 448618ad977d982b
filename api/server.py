"""FastAPI admin API for scrape jobs, notifications and content records."""

import json
import os

from dotenv import load_dotenv
from fastapi import BackgroundTasks, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
import uvicorn

from reel_scraper.db import Database
from reel_scraper.errors import InvalidTransition, JobNotFound, SourceError
from reel_scraper.jobs import JobStore
from reel_scraper.models import JobStatus
from reel_scraper.orchestrator import run_source
from reel_scraper.sources import ALL_SOURCES

load_dotenv()

app = FastAPI(
    title="Reel Scraper Admin API",
    version="0.1.0",
    description=(
        "Monitoring and control for the content acquisition pipeline: "
        "job checkpoints, pause notifications and harvested content records."
    ),
)

# --- Rate limiting ---
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return Response(
        content=json.dumps({"error": "Rate limit exceeded. Please slow down."}),
        status_code=429,
        media_type="application/json",
    )


# --- CORS ---
default_origins = "http://localhost:3000,http://127.0.0.1:3000"
cors_origins = os.environ.get("CORS_ORIGINS", default_origins).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_db() -> Database:
    db_path = os.environ.get("SQLITE_DB_PATH", "reel.db")
    if not os.path.exists(db_path):
        raise HTTPException(status_code=503, detail="Database not found. Run the scraper first.")
    return Database(db_path)


# --- Models ---

class ResumeRequest(BaseModel):
    resolve_notifications: bool = True


class RunRequest(BaseModel):
    wait: bool = False


# --- Routes ---

@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "reel-scraper-api"}


@app.get("/api/jobs")
@limiter.limit("60/minute")
def list_jobs(
    request: Request,
    source: str | None = None,
    status: str | None = None,
    limit: int = Query(50, ge=1, le=200),
):
    """List scrape jobs, newest first."""
    db = get_db()
    try:
        jobs = JobStore(db).list(source=source, status=status, limit=limit)
        return {"jobs": [j.to_dict() for j in jobs], "total": len(jobs)}
    finally:
        db.close()


@app.get("/api/jobs/{job_id}")
@limiter.limit("60/minute")
def get_job(request: Request, job_id: int):
    db = get_db()
    try:
        return JobStore(db).get(job_id).to_dict()
    except JobNotFound:
        raise HTTPException(status_code=404, detail="Job not found")
    finally:
        db.close()


@app.post("/api/jobs/{job_id}/resume")
@limiter.limit("10/minute")
def resume_job(request: Request, job_id: int, req: ResumeRequest | None = None):
    """External resume: paused_* -> running. The next run continues at current_url."""
    req = req or ResumeRequest()
    db = get_db()
    try:
        store = JobStore(db)
        try:
            job = store.resume(job_id)
        except JobNotFound:
            raise HTTPException(status_code=404, detail="Job not found")
        except InvalidTransition as e:
            raise HTTPException(status_code=409, detail=str(e))

        resolved = 0
        if req.resolve_notifications and job.status == JobStatus.RUNNING:
            resolved = db.resolve_notifications_for(job.source)
        return {"job": job.to_dict(), "resolved_notifications": resolved}
    finally:
        db.close()


@app.get("/api/notifications")
@limiter.limit("60/minute")
def list_notifications(
    request: Request,
    resolved: bool | None = None,
    source: str | None = None,
):
    db = get_db()
    try:
        notifications = db.list_notifications(resolved=resolved, source=source)
        return {
            "notifications": [
                {
                    "id": n.id,
                    "source": n.source,
                    "url": n.url,
                    "error_type": n.error_type,
                    "message": n.message,
                    "resolved": n.resolved,
                    "created_at": n.created_at,
                    "resolved_at": n.resolved_at,
                }
                for n in notifications
            ],
            "total": len(notifications),
        }
    finally:
        db.close()


@app.post("/api/notifications/{notification_id}/resolve")
@limiter.limit("30/minute")
def resolve_notification(request: Request, notification_id: int):
    db = get_db()
    try:
        if not db.resolve_notification(notification_id):
            raise HTTPException(status_code=404, detail="Notification not found or already resolved")
        return {"id": notification_id, "resolved": True}
    finally:
        db.close()


@app.get("/api/content")
@limiter.limit("60/minute")
def list_content(
    request: Request,
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    source: str | None = None,
    type: str | None = None,
):
    """List content records with pagination."""
    db = get_db()
    try:
        offset = (page - 1) * per_page
        records, total = db.list_content(source=source, content_type=type,
                                         limit=per_page, offset=offset)
        return {
            "content": [
                {
                    "id": r.id,
                    "type": r.type,
                    "title": r.title,
                    "summary": r.summary,
                    "tags": r.tags,
                    "read_time_minutes": r.read_time_minutes,
                    "source_name": r.source_name,
                    "source_url": r.source_url,
                    "created_at": r.created_at,
                }
                for r in records
            ],
            "total": total,
            "page": page,
            "per_page": per_page,
            "pages": (total + per_page - 1) // per_page,
        }
    finally:
        db.close()


@app.get("/api/content/{record_id}")
@limiter.limit("60/minute")
def get_content(request: Request, record_id: int):
    db = get_db()
    try:
        record = db.get_content(record_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Content record not found")
        return {
            "id": record.id,
            "type": record.type,
            "title": record.title,
            "summary": record.summary,
            "body": record.body,
            "key_points": record.key_points,
            "tags": record.tags,
            "read_time_minutes": record.read_time_minutes,
            "source_name": record.source_name,
            "source_url": record.source_url,
            "author": record.author,
            "raw_data": record.raw_data,
            "created_at": record.created_at,
        }
    finally:
        db.close()


@app.post("/api/sources/{name}/run")
@limiter.limit("5/minute")
def run_pipeline(request: Request, name: str, background_tasks: BackgroundTasks,
                 req: RunRequest | None = None):
    """Trigger one source pipeline. ``wait`` runs it inline and returns the summary."""
    if name not in ALL_SOURCES:
        raise HTTPException(status_code=404, detail=f"Unknown source: {name}")
    req = req or RunRequest()
    if req.wait:
        try:
            return run_source(name)
        except SourceError as e:
            raise HTTPException(status_code=502, detail=str(e)) from e
    background_tasks.add_task(run_source, name)
    return {"source": name, "status": "started"}


@app.get("/api/stats")
def stats():
    """Content counts by source/type and job counts by source/status."""
    db_path = os.environ.get("SQLITE_DB_PATH", "reel.db")
    if not os.path.exists(db_path):
        return {"total_content": 0, "content": {}, "jobs": {}, "db_exists": False}

    db = Database(db_path)
    try:
        content: dict = {}
        total = 0
        for source, content_type, count in db.get_content_stats():
            content.setdefault(source, {})[content_type] = count
            total += count

        jobs: dict = {}
        for source, status, count in db.get_job_stats():
            jobs.setdefault(source, {})[status] = count

        unresolved = len(db.list_notifications(resolved=False))
        return {
            "total_content": total,
            "content": content,
            "jobs": jobs,
            "unresolved_notifications": unresolved,
            "db_exists": True,
        }
    finally:
        db.close()


def serve():
    uvicorn.run(
        "api.server:app",
        host=os.environ.get("API_HOST", "127.0.0.1"),
        port=int(os.environ.get("API_PORT", "8000")),
        log_level=os.environ.get("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    serve()
