#!/usr/bin/env python3
"""
Job Runner
Runs one of the periodic jobs once, for cron hosts that call scripts rather
than the internal HTTP endpoints.

Usage:
    python -m scripts.run_job <sentiment-check|followup-sweep|daily-digest>

Example:
    python -m scripts.run_job daily-digest
"""
import asyncio
import json
import logging
import sys
import os

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from saintrix.database import SessionLocal, init_db
from saintrix.logging_config import setup_logging
from saintrix.services.digest import DailyDigestJob
from saintrix.services.followups import FollowupDispatcher
from saintrix.services.notifications import build_mailer
from saintrix.services.sentiment import SentimentTriggerSweep

logger = logging.getLogger("saintrix.jobs")

JOBS = ("sentiment-check", "followup-sweep", "daily-digest")


def run_job(name: str) -> dict:
    """Run a job by name and return its summary."""
    if name == "sentiment-check":
        db = SessionLocal()
        try:
            return SentimentTriggerSweep(db).run()
        finally:
            db.close()

    # Mailers connect on first send; connect failures surface per item or recipient
    if name == "followup-sweep":
        db = SessionLocal()
        mailer = build_mailer()
        try:
            return FollowupDispatcher(db, mailer).run()
        finally:
            mailer.close()
            db.close()

    if name == "daily-digest":
        mailer = build_mailer()
        try:
            return asyncio.run(DailyDigestJob(SessionLocal, mailer).run())
        finally:
            mailer.close()

    raise ValueError(f"Unknown job: {name}")


def main():
    if len(sys.argv) != 2 or sys.argv[1] not in JOBS:
        print(__doc__)
        print(f"Jobs: {', '.join(JOBS)}")
        sys.exit(1)

    setup_logging()
    init_db()

    name = sys.argv[1]
    try:
        summary = run_job(name)
    except Exception:
        logger.exception(f"Job {name} failed")
        sys.exit(1)

    print(json.dumps(summary, indent=2, default=str))


if __name__ == "__main__":
    main()
