"""
Daily Digest Job

Runs once a day (externally scheduled). Summarises the previous calendar day
for every admin:

    1. Compute the window [yesterday 00:00:00, yesterday 23:59:59.999999]
    2. Gather, concurrently, new users, new disputes, pending document uploads,
       `error` admin log entries and the admin recipient list
    3. Render one HTML body
    4. Send it to each admin in turn

Each query runs in its own session on a worker thread. A failed send is
logged and recorded against that recipient; the remaining admins still get
their copy.
"""
import asyncio
from datetime import datetime, date, time, timedelta
from html import escape
from typing import Callable, Dict, Any, List, Optional, Tuple
import logging
import os

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models.db_models import ClientDB, DisputeDB, DocumentDB, AdminLogDB, AdminDB, DocumentStatus
from ...models.schemas import DigestStats, DigestError
from ..notifications.mailer import Mailer, SMTP_FROM

logger = logging.getLogger(__name__)

DASHBOARD_URL = os.getenv("DASHBOARD_URL", "")
DIGEST_SUBJECT = "SAINTRIX Daily Digest"


def compute_window(now: datetime) -> Tuple[datetime, datetime]:
    """Previous calendar day, inclusive at both ends."""
    yesterday = (now - timedelta(days=1)).date()
    return datetime.combine(yesterday, time.min), datetime.combine(yesterday, time.max)


def render_digest_html(stats: DigestStats, report_date: date, dashboard_url: str = DASHBOARD_URL) -> str:
    """Digest email body. Pure: same stats in, same HTML out."""
    parts = [
        "<h1>SAINTRIX Daily Digest</h1>",
        f"<p>Here's your daily summary for {report_date.strftime('%B %d, %Y')}</p>",
        "<h2>Activity Summary</h2>",
        "<ul>",
        f"<li>New Users: {stats.new_users}</li>",
        f"<li>New Disputes: {stats.new_disputes}</li>",
        f"<li>Missing Uploads: {stats.missing_uploads}</li>",
        "</ul>",
    ]
    if stats.errors:
        parts.append("<h2>Errors</h2>")
        parts.append("<ul>")
        for error in stats.errors:
            message = escape(error.message or "Unknown error")
            parts.append(f"<li>{message} at {error.timestamp.strftime('%Y-%m-%d %H:%M:%S')}</li>")
        parts.append("</ul>")
    parts.append(f"<p>View full dashboard: {escape(dashboard_url)}</p>")
    return "\n".join(parts)


class DailyDigestJob:
    """
    Daily admin digest.

    Usage:
        with build_mailer() as mailer:
            result = await DailyDigestJob(SessionLocal, mailer).run()
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        mailer: Mailer,
        sender: str = SMTP_FROM,
        dashboard_url: str = DASHBOARD_URL,
    ):
        self.session_factory = session_factory
        self.mailer = mailer
        self.sender = sender
        self.dashboard_url = dashboard_url

    # =========================================================================
    # QUERIES (one session each)
    # =========================================================================

    def _with_session(self, fn: Callable[[Session], Any]) -> Any:
        db = self.session_factory()
        try:
            return fn(db)
        finally:
            db.close()

    def count_new_users(self, start: datetime, end: datetime) -> int:
        return self._with_session(
            lambda db: db.query(func.count(ClientDB.id))
            .filter(ClientDB.created_at >= start, ClientDB.created_at <= end)
            .scalar()
        )

    def count_new_disputes(self, start: datetime, end: datetime) -> int:
        return self._with_session(
            lambda db: db.query(func.count(DisputeDB.id))
            .filter(DisputeDB.created_at >= start, DisputeDB.created_at <= end)
            .scalar()
        )

    def count_missing_uploads(self) -> int:
        return self._with_session(
            lambda db: db.query(func.count(DocumentDB.id))
            .filter(DocumentDB.status == DocumentStatus.PENDING)
            .scalar()
        )

    def fetch_errors(self, start: datetime, end: datetime) -> List[DigestError]:
        def query(db: Session) -> List[DigestError]:
            rows = (
                db.query(AdminLogDB)
                .filter(
                    AdminLogDB.action == "error",
                    AdminLogDB.timestamp >= start,
                    AdminLogDB.timestamp <= end,
                )
                .order_by(AdminLogDB.timestamp.asc())
                .all()
            )
            return [
                DigestError(message=(r.details or {}).get("message"), timestamp=r.timestamp)
                for r in rows
            ]
        return self._with_session(query)

    def fetch_admin_emails(self) -> List[str]:
        return self._with_session(lambda db: [r[0] for r in db.query(AdminDB.email).all()])

    async def gather_stats(self, now: datetime) -> Tuple[DigestStats, List[str]]:
        start, end = compute_window(now)
        loop = asyncio.get_running_loop()
        new_users, new_disputes, missing_uploads, errors, admins = await asyncio.gather(
            loop.run_in_executor(None, self.count_new_users, start, end),
            loop.run_in_executor(None, self.count_new_disputes, start, end),
            loop.run_in_executor(None, self.count_missing_uploads),
            loop.run_in_executor(None, self.fetch_errors, start, end),
            loop.run_in_executor(None, self.fetch_admin_emails),
        )
        stats = DigestStats(
            window_start=start,
            window_end=end,
            new_users=new_users or 0,
            new_disputes=new_disputes or 0,
            missing_uploads=missing_uploads or 0,
            errors=errors,
        )
        return stats, admins

    # =========================================================================
    # RUN
    # =========================================================================

    async def run(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.utcnow()
        stats, admins = await self.gather_stats(now)
        html_body = render_digest_html(stats, stats.window_start.date(), self.dashboard_url)

        loop = asyncio.get_running_loop()
        sent: List[str] = []
        failed: List[Dict[str, str]] = []
        for email in admins:
            try:
                await loop.run_in_executor(None, self.mailer.send, self.sender, email, DIGEST_SUBJECT, html_body)
            except Exception as e:
                logger.warning(f"Daily digest to {email} failed: {e}")
                failed.append({"recipient": email, "error": str(e)})
                continue
            sent.append(email)

        logger.info(
            f"Daily digest for {stats.window_start.date().isoformat()}: "
            f"{len(sent)} sent, {len(failed)} failed "
            f"(users={stats.new_users}, disputes={stats.new_disputes}, "
            f"missing_uploads={stats.missing_uploads}, errors={len(stats.errors)})"
        )
        return {
            "stats": stats.model_dump(mode="json"),
            "sent": sent,
            "failed": failed,
        }
