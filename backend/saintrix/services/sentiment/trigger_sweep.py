"""
Sentiment Trigger Sweep

Periodic job (every 6 hours, externally scheduled) that detects behavioral
triggers in the store, logs them through the Sentiment Log Writer and then
evaluates the at-risk threshold for every user it touched.

Detection rules:
- inactivity:        no client activity for INACTIVITY_DAYS
- support_contact:   SUPPORT_TICKET_MIN or more tickets in SUPPORT_WINDOW_DAYS
- missing_docs:      a requested document still missing after MISSING_DOCS_DAYS
- unopened_letters:  a pending dispute whose letter is unopened after UNOPENED_LETTER_DAYS

Each trigger type is logged at most once per user per run. A failure for one
user is logged and counted; the sweep carries on with the rest.
"""
from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional, Set
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models.db_models import (
    ClientDB, DisputeDB, DocumentDB, SupportTicketDB, TriggerType, DisputeStatus,
)
from ...models.schemas import SentimentTrigger
from .sentiment_log import SentimentLogWriter
from .risk_flags import RiskFlagManager

logger = logging.getLogger(__name__)


INACTIVITY_DAYS = 3
SUPPORT_WINDOW_DAYS = 7
SUPPORT_TICKET_MIN = 2
MISSING_DOCS_DAYS = 5
UNOPENED_LETTER_DAYS = 2

TRIGGER_DETAILS = {
    TriggerType.INACTIVITY: f"User has been inactive for {INACTIVITY_DAYS}+ days",
    TriggerType.SUPPORT_CONTACT: "User has submitted multiple support tickets",
    TriggerType.MISSING_DOCS: "User has not uploaded required documents",
    TriggerType.UNOPENED_LETTERS: "User has not opened generated dispute letters",
}


class SentimentTriggerSweep:
    """
    Detects triggers and feeds them into the risk pipeline.

    Usage:
        sweep = SentimentTriggerSweep(db)
        summary = sweep.run()
    """

    def __init__(self, db: Session):
        self.db = db
        self.writer = SentimentLogWriter(db)
        self.flags = RiskFlagManager(db)

    # =========================================================================
    # DETECTION
    # =========================================================================

    def find_inactive_users(self, now: datetime) -> Set[str]:
        cutoff = now - timedelta(days=INACTIVITY_DAYS)
        rows = (
            self.db.query(ClientDB.id)
            .filter(ClientDB.last_activity_at.isnot(None), ClientDB.last_activity_at < cutoff)
            .all()
        )
        return {r[0] for r in rows}

    def find_frequent_support_contacts(self, now: datetime) -> Set[str]:
        since = now - timedelta(days=SUPPORT_WINDOW_DAYS)
        rows = (
            self.db.query(SupportTicketDB.client_id)
            .filter(SupportTicketDB.created_at >= since)
            .group_by(SupportTicketDB.client_id)
            .having(func.count(SupportTicketDB.id) >= SUPPORT_TICKET_MIN)
            .all()
        )
        return {r[0] for r in rows}

    def find_missing_documents(self, now: datetime) -> Set[str]:
        cutoff = now - timedelta(days=MISSING_DOCS_DAYS)
        rows = (
            self.db.query(DocumentDB.client_id)
            .filter(DocumentDB.status.is_(None), DocumentDB.created_at < cutoff)
            .distinct()
            .all()
        )
        return {r[0] for r in rows}

    def find_unopened_letters(self, now: datetime) -> Set[str]:
        cutoff = now - timedelta(days=UNOPENED_LETTER_DAYS)
        rows = (
            self.db.query(DisputeDB.client_id)
            .filter(
                DisputeDB.status == DisputeStatus.PENDING,
                DisputeDB.letter_opened.is_(False),
                DisputeDB.created_at < cutoff,
            )
            .distinct()
            .all()
        )
        return {r[0] for r in rows}

    def detect(self, now: datetime) -> Dict[TriggerType, Set[str]]:
        return {
            TriggerType.INACTIVITY: self.find_inactive_users(now),
            TriggerType.SUPPORT_CONTACT: self.find_frequent_support_contacts(now),
            TriggerType.MISSING_DOCS: self.find_missing_documents(now),
            TriggerType.UNOPENED_LETTERS: self.find_unopened_letters(now),
        }

    # =========================================================================
    # RUN
    # =========================================================================

    def run(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Run one sweep. Returns a summary of triggers logged and flags raised."""
        now = now or datetime.utcnow()
        detected = self.detect(now)

        summary: Dict[str, Any] = {
            "run_at": now.isoformat(),
            "triggers_logged": {t.value: 0 for t in TriggerType},
            "flags_raised": 0,
            "errors": [],
        }
        touched: Set[str] = set()

        for trigger_type, user_ids in detected.items():
            for user_id in sorted(user_ids):
                try:
                    self.writer.log_trigger(
                        SentimentTrigger(
                            type=trigger_type.value,
                            user_id=user_id,
                            details=TRIGGER_DETAILS[trigger_type],
                        ),
                        now=now,
                    )
                except Exception as e:
                    self.db.rollback()
                    logger.error(f"Failed to log {trigger_type.value} trigger for {user_id}: {e}")
                    summary["errors"].append({"user_id": user_id, "trigger": trigger_type.value, "error": str(e)})
                    continue
                summary["triggers_logged"][trigger_type.value] += 1
                touched.add(user_id)

        summary["flags_raised"] = self._evaluate(touched, now, summary["errors"])

        logger.info(
            f"Sentiment sweep complete: {summary['triggers_logged']}, "
            f"{summary['flags_raised']} flags raised, {len(summary['errors'])} errors"
        )
        return summary

    def _evaluate(self, user_ids: Set[str], now: datetime, errors: List[Dict[str, Any]]) -> int:
        raised = 0
        for user_id in sorted(user_ids):
            was_flagged = self.flags.is_user_at_risk(user_id)
            try:
                flag = self.flags.evaluate_user(user_id, now=now)
            except Exception as e:
                self.db.rollback()
                logger.error(f"Risk evaluation failed for {user_id}: {e}")
                errors.append({"user_id": user_id, "trigger": None, "error": str(e)})
                continue
            if flag is not None and not was_flagged:
                raised += 1
        return raised
