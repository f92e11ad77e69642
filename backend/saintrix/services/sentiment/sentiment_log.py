"""
Sentiment Log Writer

Scores trigger events and appends them to the sentiment audit trail.

Core Principles:
- Append-only: rows are never updated or deleted
- Store failures propagate to the caller; no internal retry
- Unknown trigger types are ignored (logged, nothing written)
"""
from datetime import datetime
from typing import Optional, List, Dict
from uuid import uuid4
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models.db_models import SentimentLogDB
from ...models.schemas import SentimentTrigger, SentimentLogEntry
from .trigger_scorer import parse_trigger_type, score

logger = logging.getLogger(__name__)


class SentimentLogWriter:
    """
    Writes scored trigger events.

    Usage:
        writer = SentimentLogWriter(db)
        entry = writer.log_trigger(SentimentTrigger(type="inactivity", user_id=uid))
    """

    def __init__(self, db: Session):
        self.db = db

    def log_trigger(self, trigger: SentimentTrigger, now: Optional[datetime] = None) -> Optional[SentimentLogEntry]:
        """
        Score a trigger and append one immutable log row.

        Returns the written entry, or None when the trigger type is unknown.
        """
        trigger_type = parse_trigger_type(trigger.type)
        trigger_score = score(trigger.type)
        if trigger_type is None:
            return None

        entry = SentimentLogDB(
            id=str(uuid4()),
            user_id=trigger.user_id,
            trigger_type=trigger_type,
            score=trigger_score,
            notes=trigger.details,
            created_at=now or datetime.utcnow(),
        )
        self.db.add(entry)
        self.db.commit()

        logger.info(f"Logged {trigger_type.value} trigger for user {trigger.user_id} (score {trigger_score})")
        return SentimentLogEntry.model_validate(entry)

    def get_user_logs(self, user_id: str, since: Optional[datetime] = None) -> List[SentimentLogEntry]:
        """Log entries for a user, newest first."""
        query = self.db.query(SentimentLogDB).filter(SentimentLogDB.user_id == user_id)
        if since is not None:
            query = query.filter(SentimentLogDB.created_at >= since)
        rows = query.order_by(SentimentLogDB.created_at.desc()).all()
        return [SentimentLogEntry.model_validate(r) for r in rows]

    def sum_scores(self, user_id: str, since: datetime) -> int:
        """Total score logged for a user at or after `since`."""
        total = (
            self.db.query(func.coalesce(func.sum(SentimentLogDB.score), 0))
            .filter(
                SentimentLogDB.user_id == user_id,
                SentimentLogDB.created_at >= since,
            )
            .scalar()
        )
        return int(total or 0)

    def count_by_trigger(self, user_id: str, since: datetime) -> Dict[str, int]:
        """Number of logged triggers per type for a user at or after `since`."""
        rows = (
            self.db.query(SentimentLogDB.trigger_type, func.count(SentimentLogDB.id))
            .filter(
                SentimentLogDB.user_id == user_id,
                SentimentLogDB.created_at >= since,
            )
            .group_by(SentimentLogDB.trigger_type)
            .all()
        )
        return {trigger_type.value: count for trigger_type, count in rows}

