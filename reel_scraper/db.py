"""SQLite database for scrape jobs, content records, and notifications."""

import json
import sqlite3
import threading
from typing import Dict, List, Optional, Tuple

from .models import ContentRecord, Notification

JOB_JSON_FIELDS = ("urls", "url_meta", "completed_urls", "failed_urls")
JOB_FIELDS = JOB_JSON_FIELDS + ("current_url", "status", "pause_reason")


def _like_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class Database:
    def __init__(self, db_path: str = "reel.db"):
        self.db_path = db_path
        self._local = threading.local()
        self._init_db()

    @property
    def _conn(self) -> sqlite3.Connection:
        if not hasattr(self._local, "conn") or self._local.conn is None:
            self._local.conn = sqlite3.connect(self.db_path)
            self._local.conn.row_factory = sqlite3.Row
            self._local.conn.execute("PRAGMA journal_mode=WAL")
        return self._local.conn

    def close(self):
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None

    def _init_db(self):
        conn = self._conn
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS scrape_jobs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                source TEXT NOT NULL,
                urls TEXT NOT NULL DEFAULT '[]',
                url_meta TEXT NOT NULL DEFAULT '{}',
                current_url TEXT,
                completed_urls TEXT NOT NULL DEFAULT '[]',
                failed_urls TEXT NOT NULL DEFAULT '[]',
                status TEXT NOT NULL DEFAULT 'running',
                pause_reason TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                last_updated TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE INDEX IF NOT EXISTS idx_jobs_source_status ON scrape_jobs(source, status);

            CREATE TABLE IF NOT EXISTS content_records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                type TEXT NOT NULL,
                title TEXT NOT NULL,
                summary TEXT DEFAULT '',
                body TEXT DEFAULT '',
                key_points TEXT DEFAULT '[]',
                tags TEXT DEFAULT '[]',
                read_time_minutes INTEGER DEFAULT 5,
                source_name TEXT NOT NULL,
                source_url TEXT NOT NULL,
                author TEXT,
                raw_data TEXT DEFAULT '{}',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(source_url)
            );

            CREATE INDEX IF NOT EXISTS idx_content_source ON content_records(source_name);
            CREATE INDEX IF NOT EXISTS idx_content_type ON content_records(type);

            CREATE TABLE IF NOT EXISTS notifications (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                source TEXT NOT NULL,
                url TEXT NOT NULL,
                error_type TEXT NOT NULL,
                message TEXT NOT NULL,
                resolved INTEGER DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                resolved_at TIMESTAMP
            );

            CREATE INDEX IF NOT EXISTS idx_notifications_resolved ON notifications(resolved);
        """)
        conn.commit()

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def insert_job(self, source: str, urls: List[str], url_meta: Dict[str, dict] = None) -> int:
        cur = self._conn.execute(
            """INSERT INTO scrape_jobs (source, urls, url_meta, current_url, status)
               VALUES (?, ?, ?, ?, 'running')""",
            (source, json.dumps(urls), json.dumps(url_meta or {}), urls[0] if urls else None),
        )
        self._conn.commit()
        return cur.lastrowid

    def get_job(self, job_id: int) -> Optional[sqlite3.Row]:
        return self._conn.execute("SELECT * FROM scrape_jobs WHERE id = ?", (job_id,)).fetchone()

    def find_active_job(self, source: str, statuses: Tuple[str, ...]) -> Optional[sqlite3.Row]:
        placeholders = ", ".join("?" for _ in statuses)
        return self._conn.execute(
            f"""SELECT * FROM scrape_jobs WHERE source = ? AND status IN ({placeholders})
                ORDER BY created_at DESC, id DESC LIMIT 1""",
            (source, *statuses),
        ).fetchone()

    def update_job(self, job_id: int, **fields):
        unknown = set(fields) - set(JOB_FIELDS)
        if unknown:
            raise ValueError(f"Unknown job fields: {sorted(unknown)}")
        if not fields:
            return
        assignments = []
        params = []
        for key, value in fields.items():
            assignments.append(f"{key} = ?")
            params.append(json.dumps(value) if key in JOB_JSON_FIELDS else value)
        params.append(job_id)
        self._conn.execute(
            f"""UPDATE scrape_jobs SET {', '.join(assignments)}, last_updated = CURRENT_TIMESTAMP
                WHERE id = ?""",
            params,
        )
        self._conn.commit()

    def list_jobs(self, source: str = None, status: str = None, limit: int = 50) -> List[sqlite3.Row]:
        where = []
        params: list = []
        if source:
            where.append("source = ?")
            params.append(source)
        if status:
            where.append("status = ?")
            params.append(status)
        clause = f"WHERE {' AND '.join(where)}" if where else ""
        return self._conn.execute(
            f"SELECT * FROM scrape_jobs {clause} ORDER BY created_at DESC, id DESC LIMIT ?",
            params + [limit],
        ).fetchall()

    # ------------------------------------------------------------------
    # Content records
    # ------------------------------------------------------------------

    def content_exists(self, url: str, fragments: bool = False) -> bool:
        """True if a record exists for ``url``.

        With ``fragments`` set, records keyed ``url#...`` also count; only
        sources that split one page into several records should ask for that.
        """
        if not fragments:
            row = self._conn.execute(
                "SELECT 1 FROM content_records WHERE source_url = ? LIMIT 1", (url,)
            ).fetchone()
            return row is not None
        row = self._conn.execute(
            """SELECT 1 FROM content_records
               WHERE source_url = ? OR source_url LIKE ? ESCAPE '\\' LIMIT 1""",
            (url, _like_escape(url) + "#%"),
        ).fetchone()
        return row is not None

    def insert_content(self, record: ContentRecord) -> Optional[int]:
        """Insert a record; returns its id, or None if the source_url already exists."""
        cur = self._conn.execute(
            """INSERT OR IGNORE INTO content_records
               (type, title, summary, body, key_points, tags, read_time_minutes,
                source_name, source_url, author, raw_data)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (record.type, record.title, record.summary, record.body,
             json.dumps(record.key_points), json.dumps(record.tags), record.read_time_minutes,
             record.source_name, record.source_url, record.author,
             json.dumps(record.raw_data, default=str)),
        )
        self._conn.commit()
        return cur.lastrowid if cur.rowcount else None

    def get_content(self, record_id: int) -> Optional[ContentRecord]:
        row = self._conn.execute("SELECT * FROM content_records WHERE id = ?", (record_id,)).fetchone()
        return self._row_to_record(row) if row else None

    def list_content(self, source: str = None, content_type: str = None,
                     limit: int = 50, offset: int = 0) -> Tuple[List[ContentRecord], int]:
        where = []
        params: list = []
        if source:
            where.append("source_name = ?")
            params.append(source)
        if content_type:
            where.append("type = ?")
            params.append(content_type)
        clause = f"WHERE {' AND '.join(where)}" if where else ""
        total = self._conn.execute(
            f"SELECT COUNT(*) AS cnt FROM content_records {clause}", params
        ).fetchone()["cnt"]
        rows = self._conn.execute(
            f"""SELECT * FROM content_records {clause}
                ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?""",
            params + [limit, offset],
        ).fetchall()
        return [self._row_to_record(r) for r in rows], total

    @staticmethod
    def _row_to_record(row) -> ContentRecord:
        return ContentRecord(
            id=row["id"],
            type=row["type"],
            title=row["title"],
            summary=row["summary"],
            body=row["body"],
            key_points=json.loads(row["key_points"] or "[]"),
            tags=json.loads(row["tags"] or "[]"),
            read_time_minutes=row["read_time_minutes"],
            source_name=row["source_name"],
            source_url=row["source_url"],
            author=row["author"],
            raw_data=json.loads(row["raw_data"] or "{}"),
            created_at=row["created_at"],
        )

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def insert_notification(self, notification: Notification) -> int:
        cur = self._conn.execute(
            """INSERT INTO notifications (source, url, error_type, message, resolved)
               VALUES (?, ?, ?, ?, ?)""",
            (notification.source, notification.url, notification.error_type,
             notification.message, int(notification.resolved)),
        )
        self._conn.commit()
        return cur.lastrowid

    def list_notifications(self, resolved: Optional[bool] = None,
                           source: str = None) -> List[Notification]:
        where = []
        params: list = []
        if resolved is not None:
            where.append("resolved = ?")
            params.append(int(resolved))
        if source:
            where.append("source = ?")
            params.append(source)
        clause = f"WHERE {' AND '.join(where)}" if where else ""
        rows = self._conn.execute(
            f"SELECT * FROM notifications {clause} ORDER BY created_at DESC, id DESC", params
        ).fetchall()
        return [
            Notification(
                id=r["id"], source=r["source"], url=r["url"], error_type=r["error_type"],
                message=r["message"], resolved=bool(r["resolved"]),
                created_at=r["created_at"], resolved_at=r["resolved_at"],
            )
            for r in rows
        ]

    def resolve_notification(self, notification_id: int) -> bool:
        cur = self._conn.execute(
            """UPDATE notifications SET resolved = 1, resolved_at = CURRENT_TIMESTAMP
               WHERE id = ? AND resolved = 0""",
            (notification_id,),
        )
        self._conn.commit()
        return cur.rowcount > 0

    def resolve_notifications_for(self, source: str) -> int:
        cur = self._conn.execute(
            """UPDATE notifications SET resolved = 1, resolved_at = CURRENT_TIMESTAMP
               WHERE source = ? AND resolved = 0""",
            (source,),
        )
        self._conn.commit()
        return cur.rowcount

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_content_stats(self) -> List[Tuple]:
        rows = self._conn.execute(
            """SELECT source_name, type, COUNT(*) AS cnt
               FROM content_records GROUP BY source_name, type ORDER BY source_name, type"""
        ).fetchall()
        return [tuple(r) for r in rows]

    def get_job_stats(self) -> List[Tuple]:
        rows = self._conn.execute(
            """SELECT source, status, COUNT(*) AS cnt
               FROM scrape_jobs GROUP BY source, status ORDER BY source, status"""
        ).fetchall()
        return [tuple(r) for r in rows]
