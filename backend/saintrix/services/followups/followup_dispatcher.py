"""
Follow-up Dispatcher

Works the due-follow-up queue produced by FollowupScheduler.get_pending_followups.

- email:             sent through the mailer, then marked `sent`;
                     a failed send marks the follow-up `failed`
- letter/phone/fax:  returned as manual work items, left `pending`

One follow-up failing never stops the rest of the queue.
"""
from datetime import datetime
from html import escape
from typing import Dict, Any, Optional
import logging

from sqlalchemy.orm import Session

from ...models.db_models import FollowupStatus, FollowupType
from ...models.schemas import DueFollowup
from ..exceptions import ExternalServiceError
from ..notifications.mailer import Mailer, SMTP_FROM
from .followup_scheduler import FollowupScheduler

logger = logging.getLogger(__name__)


def render_followup_email(followup: DueFollowup) -> str:
    name = followup.dispute.client.full_name or "there"
    body = followup.content or (
        f"We are following up on your dispute with {followup.dispute.bureau}. "
        "Please reply if you have received any correspondence from the bureau."
    )
    return f"<p>Hi {escape(name)},</p><p>{escape(body)}</p><p>- The SAINTRIX team</p>"


class FollowupDispatcher:
    """
    Sends due email follow-ups and surfaces the manual ones.

    Usage:
        with build_mailer() as mailer:
            summary = FollowupDispatcher(db, mailer).run()
    """

    def __init__(self, db: Session, mailer: Mailer, sender: str = SMTP_FROM):
        self.db = db
        self.mailer = mailer
        self.sender = sender
        self.scheduler = FollowupScheduler(db)

    def run(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        due = self.scheduler.get_pending_followups(now=now)
        summary: Dict[str, Any] = {"due": len(due), "sent": [], "failed": [], "manual": [], "errors": []}

        for followup in due:
            if followup.type != FollowupType.EMAIL:
                summary["manual"].append({
                    "id": followup.id,
                    "type": followup.type.value,
                    "recipient": followup.recipient,
                    "dispute_id": followup.dispute_id,
                    "scheduled_date": followup.scheduled_date.isoformat(),
                })
                continue

            try:
                self._send(followup)
            except ExternalServiceError as e:
                logger.error(f"Follow-up {followup.id} to {followup.recipient} failed: {e}")
                summary["failed"].append(followup.id)
                self._mark(followup, FollowupStatus.FAILED, summary)
                continue
            self._mark(followup, FollowupStatus.SENT, summary)
            summary["sent"].append(followup.id)

        logger.info(
            f"Follow-up sweep: {len(summary['sent'])} sent, {len(summary['failed'])} failed, "
            f"{len(summary['manual'])} manual"
        )
        return summary

    def _send(self, followup: DueFollowup) -> None:
        subject = f"Update on your {followup.dispute.bureau} dispute"
        self.mailer.send(self.sender, followup.recipient, subject, render_followup_email(followup))

    def _mark(self, followup: DueFollowup, status: FollowupStatus, summary: Dict[str, Any]) -> None:
        try:
            self.scheduler.update_followup_status(followup.id, status, expected_version=followup.version)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Could not mark follow-up {followup.id} {status.value}: {e}")
            summary["errors"].append({"id": followup.id, "error": str(e)})
