"""CLI entry point."""

import argparse
import json
import os
import sys

from .config import load_config
from .db import Database
from .errors import ReelScraperError, SourceError
from .jobs import JobStore
from .logger import setup_logger
from .orchestrator import run_source
from .session import ScrapeSession
from .sources import ALL_SOURCES


def run_pipelines(config, session, source_name=None) -> int:
    """Run one or all sources; returns the number of sources that errored."""
    if source_name:
        sources_to_run = [source_name]
    else:
        sources_to_run = list(ALL_SOURCES)

    errors = 0
    for name in sources_to_run:
        src_config = config.sources.get(name)
        if src_config and not src_config.enabled:
            print(f"[{name}] Disabled in config, skipping.")
            continue

        print(f"\n{'='*60}")
        print(f"  Source: {name}")
        print(f"{'='*60}")

        try:
            summary = run_source(name, session=session)
        except SourceError as e:
            print(f"  [{name}] Discovery failed: {e}")
            errors += 1
            continue

        print(json.dumps(summary, indent=2))
        if summary.get("paused"):
            print(f"\n  [{name}] Paused ({summary['reason']}). To resume:")
            for line in summary.get("instructions", []):
                print(f"    {line}")
    return errors


def show_jobs(store: JobStore, source_name=None):
    print("\n" + "=" * 90)
    print("  SCRAPE JOBS")
    print("=" * 90)
    print(f"{'ID':>5} {'Source':<24} {'Status':<16} {'Progress':>10} {'Failed':>7}  Current URL")
    print("-" * 90)
    for job in store.list(source=source_name):
        progress = f"{len(job.completed_urls)}/{len(job.urls)}"
        print(f"{job.id:>5} {job.source:<24} {job.status:<16} {progress:>10} "
              f"{len(job.failed_urls):>7}  {job.current_url or ''}")
    print()


def show_notifications(db: Database, source_name=None):
    notifications = db.list_notifications(resolved=False, source=source_name)
    print(f"\n{len(notifications)} unresolved notification(s)")
    for n in notifications:
        print(f"  #{n.id} [{n.source}] {n.error_type} at {n.url} ({n.created_at})")
        print(f"      {n.message}")
    print()


def show_stats(db: Database):
    print("\n" + "=" * 60)
    print("  CONTENT STATISTICS")
    print("=" * 60)
    print(f"{'Source':<24} {'Type':<18} {'Count':>8}")
    print("-" * 60)
    total = 0
    for source, content_type, count in db.get_content_stats():
        print(f"{source:<24} {content_type:<18} {count:>8}")
        total += count
    print("-" * 60)
    print(f"{'TOTAL':<24} {'':18} {total:>8}")

    job_stats = db.get_job_stats()
    if job_stats:
        print("\n" + "=" * 60)
        print("  JOB STATISTICS")
        print("=" * 60)
        print(f"{'Source':<24} {'Status':<18} {'Count':>8}")
        print("-" * 60)
        for source, status, count in job_stats:
            print(f"{source:<24} {status:<18} {count:>8}")
    print()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Content acquisition pipeline")
    parser.add_argument("--source", type=str, default=None,
                        choices=list(ALL_SOURCES.keys()),
                        help="Run a single source instead of all")
    parser.add_argument("--config", type=str,
                        default=os.environ.get("REEL_CONFIG", "config.yaml"),
                        help="Path to config file")
    parser.add_argument("--stats", action="store_true",
                        help="Show content and job statistics")
    parser.add_argument("--jobs", action="store_true",
                        help="List scrape jobs")
    parser.add_argument("--resume", type=int, metavar="JOB_ID",
                        help="Move a paused job back to running")
    parser.add_argument("--notifications", action="store_true",
                        help="List unresolved notifications")
    parser.add_argument("--resolve", type=int, metavar="NOTIFICATION_ID",
                        help="Mark a notification resolved")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logger(config.log_dir)
    session = ScrapeSession.from_config(config)

    try:
        if args.stats:
            show_stats(session.db)
            return 0
        if args.jobs:
            show_jobs(session.jobs, args.source)
            return 0
        if args.notifications:
            show_notifications(session.db, args.source)
            return 0
        if args.resolve is not None:
            if session.db.resolve_notification(args.resolve):
                print(f"Notification {args.resolve} resolved.")
                return 0
            print(f"Notification {args.resolve} not found or already resolved.")
            return 1
        if args.resume is not None:
            try:
                job = session.jobs.resume(args.resume)
            except ReelScraperError as e:
                print(f"Cannot resume: {e}")
                return 1
            print(f"Job {job.id} ({job.source}) is {job.status}; "
                  f"next run continues at {job.current_url}")
            return 0

        print("Content acquisition pipeline")
        print(f"Database: {config.db_path}")
        print(f"Rendering: {config.rendering.mode}")

        errors = run_pipelines(config, session, args.source)
        show_stats(session.db)
        return 1 if errors else 0
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
