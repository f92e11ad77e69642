"""
Follow-up Scheduler

Creates, reschedules and tracks time-boxed outreach tasks tied to a dispute.

Lifecycle per follow-up:
    pending -> sent        (stamps sent_date)
    pending -> cancelled
    pending -> pending     (reschedule, scheduled_date updated)
    any     + response     (orthogonal: response fields set, status unchanged)

Rescheduling resets status to pending from any prior status, cancelled
included. Every update is conditional on the row version.

Two read views:
- get_dispute_followups: chronological by scheduled_date (scheduling view)
- get_followup_history:  newest-created first (audit view)
"""
from datetime import datetime
from typing import Optional, List, Union
from uuid import uuid4
import logging

from sqlalchemy.orm import Session, joinedload

from ...models.db_models import (
    DisputeFollowupDB, DisputeDB, FollowupStatus, FollowupType,
)
from ...models.schemas import FollowupCreate, Followup, DueFollowup, to_naive_utc
from ..concurrency import check_expected_version, commit_versioned
from ..exceptions import RecordNotFoundError

logger = logging.getLogger(__name__)

TABLE = "dispute_followups"


class FollowupScheduler:
    """
    Manages dispute follow-ups.

    Usage:
        scheduler = FollowupScheduler(db)
        followup = scheduler.schedule_followup(dispute_id, "email", when, "client@x.com")
        due = scheduler.get_pending_followups()
    """

    def __init__(self, db: Session):
        self.db = db

    def _get_row(self, followup_id: str) -> DisputeFollowupDB:
        row = self.db.query(DisputeFollowupDB).get(followup_id)
        if row is None:
            raise RecordNotFoundError(TABLE, followup_id)
        return row

    # =========================================================================
    # CREATION
    # =========================================================================

    def schedule_followup(
        self,
        dispute_id: str,
        type: Union[FollowupType, str],
        scheduled_date: datetime,
        recipient: str,
        content: Optional[str] = None,
    ) -> Followup:
        """Create a follow-up in the pending state."""
        payload = FollowupCreate(
            dispute_id=dispute_id,
            type=type,
            scheduled_date=scheduled_date,
            recipient=recipient,
            content=content,
        )
        return self.create(payload)

    def create(self, payload: FollowupCreate) -> Followup:
        if self.db.query(DisputeDB).get(payload.dispute_id) is None:
            raise RecordNotFoundError("disputes", payload.dispute_id)

        now = datetime.utcnow()
        row = DisputeFollowupDB(
            id=str(uuid4()),
            dispute_id=payload.dispute_id,
            type=payload.type,
            scheduled_date=payload.scheduled_date,
            recipient=payload.recipient,
            content=payload.content,
            status=FollowupStatus.PENDING,
            response_received=False,
            created_at=now,
            updated_at=now,
        )
        self.db.add(row)
        self.db.commit()

        logger.info(
            f"Scheduled {payload.type.value} follow-up {row.id} for dispute {payload.dispute_id} "
            f"at {payload.scheduled_date.isoformat()}"
        )
        return Followup.model_validate(row)

    # =========================================================================
    # READ VIEWS
    # =========================================================================

    def get_followup(self, followup_id: str) -> Followup:
        return Followup.model_validate(self._get_row(followup_id))

    def get_dispute_followups(self, dispute_id: str) -> List[Followup]:
        """All follow-ups for a dispute, ascending by scheduled_date."""
        rows = (
            self.db.query(DisputeFollowupDB)
            .filter(DisputeFollowupDB.dispute_id == dispute_id)
            .order_by(DisputeFollowupDB.scheduled_date.asc(), DisputeFollowupDB.created_at.asc())
            .all()
        )
        return [Followup.model_validate(r) for r in rows]

    def get_pending_followups(self, now: Optional[datetime] = None) -> List[DueFollowup]:
        """
        Due-work queue: pending follow-ups with scheduled_date <= now,
        ascending by scheduled_date, joined to dispute and client identity.
        """
        now = now or datetime.utcnow()
        rows = (
            self.db.query(DisputeFollowupDB)
            .options(joinedload(DisputeFollowupDB.dispute).joinedload(DisputeDB.client))
            .filter(
                DisputeFollowupDB.status == FollowupStatus.PENDING,
                DisputeFollowupDB.scheduled_date <= now,
            )
            .order_by(DisputeFollowupDB.scheduled_date.asc())
            .all()
        )
        return [DueFollowup.model_validate(r) for r in rows]

    def get_followup_history(self, dispute_id: str) -> List[Followup]:
        """All follow-ups for a dispute, newest created first."""
        rows = (
            self.db.query(DisputeFollowupDB)
            .filter(DisputeFollowupDB.dispute_id == dispute_id)
            .order_by(DisputeFollowupDB.created_at.desc())
            .all()
        )
        return [Followup.model_validate(r) for r in rows]

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def update_followup_status(
        self,
        followup_id: str,
        status: Union[FollowupStatus, str],
        response_content: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Followup:
        """
        Set the status. `sent` stamps sent_date; a response, when supplied,
        is recorded independently of the status.
        """
        status = FollowupStatus(status)
        row = self._get_row(followup_id)
        check_expected_version(row, TABLE, expected_version)

        now = datetime.utcnow()
        previous = row.status
        row.status = status
        if status == FollowupStatus.SENT:
            row.sent_date = now
        if response_content:
            row.response_received = True
            row.response_content = response_content
            row.response_date = now
        commit_versioned(self.db, TABLE, followup_id)

        logger.info(f"Follow-up {followup_id}: {previous.value} -> {status.value}"
                    + (" (response recorded)" if response_content else ""))
        return Followup.model_validate(row)

    def record_response(
        self,
        followup_id: str,
        response_content: str,
        expected_version: Optional[int] = None,
    ) -> Followup:
        """Record a response without touching the status or sent_date."""
        row = self._get_row(followup_id)
        check_expected_version(row, TABLE, expected_version)

        row.response_received = True
        row.response_content = response_content
        row.response_date = datetime.utcnow()
        commit_versioned(self.db, TABLE, followup_id)

        logger.info(f"Follow-up {followup_id}: response recorded ({row.status.value})")
        return Followup.model_validate(row)

    def cancel_followup(self, followup_id: str, expected_version: Optional[int] = None) -> Followup:
        """Cancel a follow-up. A cancelled follow-up may still be rescheduled."""
        row = self._get_row(followup_id)
        check_expected_version(row, TABLE, expected_version)

        row.status = FollowupStatus.CANCELLED
        commit_versioned(self.db, TABLE, followup_id)

        logger.info(f"Follow-up {followup_id} cancelled")
        return Followup.model_validate(row)

    def reschedule_followup(
        self,
        followup_id: str,
        new_date: datetime,
        expected_version: Optional[int] = None,
    ) -> Followup:
        """Move the scheduled date and reset status to pending, whatever it was."""
        row = self._get_row(followup_id)
        check_expected_version(row, TABLE, expected_version)

        row.scheduled_date = to_naive_utc(new_date)
        row.status = FollowupStatus.PENDING
        commit_versioned(self.db, TABLE, followup_id)

        logger.info(f"Follow-up {followup_id} rescheduled to {new_date.isoformat()}")
        return Followup.model_validate(row)
