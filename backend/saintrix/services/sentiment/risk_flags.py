"""
Risk Flag Manager

Maintains the per-user "at-risk" flag derived from accumulated trigger score,
and the admin resolution workflow.

Threshold policy:
- The accumulated score is the sum of sentiment log scores inside a rolling
  window (RISK_WINDOW_DAYS, default 30) that were logged after the user's
  most recently resolved at-risk flag.
- Reaching AT_RISK_THRESHOLD raises an active at_risk flag unless one is
  already active.

Invariant: at most one ACTIVE flag per (user, flag_type). Enforced by the
partial unique index on user_flags; a racing insert that loses is rolled back
and the winner's flag is returned.

All store errors propagate to the caller.
"""
from datetime import datetime, timedelta
from typing import Optional, List, Union
from uuid import uuid4
import logging
import os

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ...models.db_models import UserFlagDB, FlagStatus, AT_RISK
from ...models.schemas import UserFlag, AtRiskUser
from ..concurrency import check_expected_version, commit_versioned
from ..exceptions import RecordNotFoundError
from .sentiment_log import SentimentLogWriter
from .trigger_scorer import AT_RISK_THRESHOLD

logger = logging.getLogger(__name__)

RISK_WINDOW_DAYS = int(os.getenv("RISK_WINDOW_DAYS", "30"))

RESOLUTION_STATUSES = (FlagStatus.RESOLVED, FlagStatus.FALSE_POSITIVE)


class RiskFlagManager:
    """
    Manages at-risk flags.

    Usage:
        flags = RiskFlagManager(db)
        flags.evaluate_user(user_id)
        flags.is_user_at_risk(user_id)
    """

    def __init__(self, db: Session, window_days: int = RISK_WINDOW_DAYS, threshold: int = AT_RISK_THRESHOLD):
        self.db = db
        self.window_days = window_days
        self.threshold = threshold
        self.logs = SentimentLogWriter(db)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def _active_flag(self, user_id: str, flag_type: str = AT_RISK) -> Optional[UserFlagDB]:
        return (
            self.db.query(UserFlagDB)
            .filter(
                UserFlagDB.user_id == user_id,
                UserFlagDB.flag_type == flag_type,
                UserFlagDB.status == FlagStatus.ACTIVE,
            )
            .first()
        )

    def is_user_at_risk(self, user_id: str) -> bool:
        """True iff an active at_risk flag exists. No row means not at risk."""
        return self._active_flag(user_id) is not None

    def get_at_risk_users(self) -> List[AtRiskUser]:
        """All active at_risk flags joined with the flagged user's identity."""
        rows = (
            self.db.query(UserFlagDB)
            .options(joinedload(UserFlagDB.user))
            .filter(
                UserFlagDB.flag_type == AT_RISK,
                UserFlagDB.status == FlagStatus.ACTIVE,
            )
            .all()
        )
        return [AtRiskUser.model_validate(r) for r in rows]

    def get_flag(self, flag_id: str) -> Optional[UserFlag]:
        row = self.db.query(UserFlagDB).get(flag_id)
        return UserFlag.model_validate(row) if row else None

    # =========================================================================
    # THRESHOLD EVALUATION
    # =========================================================================

    def _score_window_start(self, user_id: str, now: datetime) -> datetime:
        """Start of the accumulation window, moved past the last resolution."""
        since = now - timedelta(days=self.window_days)
        last_resolved = (
            self.db.query(UserFlagDB.resolved_at)
            .filter(
                UserFlagDB.user_id == user_id,
                UserFlagDB.flag_type == AT_RISK,
                UserFlagDB.status.in_(RESOLUTION_STATUSES),
                UserFlagDB.resolved_at.isnot(None),
            )
            .order_by(UserFlagDB.resolved_at.desc())
            .first()
        )
        if last_resolved and last_resolved[0] > since:
            since = last_resolved[0]
        return since

    def get_user_score(self, user_id: str, now: Optional[datetime] = None) -> int:
        """Accumulated recent score counted toward the at-risk threshold."""
        now = now or datetime.utcnow()
        return self.logs.sum_scores(user_id, self._score_window_start(user_id, now))

    def evaluate_user(self, user_id: str, now: Optional[datetime] = None) -> Optional[UserFlag]:
        """
        Raise an at_risk flag when the accumulated score reaches the threshold.

        Returns the active flag (new or existing), or None when the user is
        below threshold and not flagged.
        """
        now = now or datetime.utcnow()
        existing = self._active_flag(user_id)
        if existing is not None:
            return UserFlag.model_validate(existing)

        since = self._score_window_start(user_id, now)
        total = self.logs.sum_scores(user_id, since)
        if total < self.threshold:
            return None

        counts = self.logs.count_by_trigger(user_id, since)
        breakdown = ", ".join(f"{name} x{count}" for name, count in sorted(counts.items()))
        reason = f"Accumulated risk score {total} in the last {self.window_days} days ({breakdown})"
        return self.raise_flag(user_id, AT_RISK, reason, now=now)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def raise_flag(
        self,
        user_id: str,
        flag_type: str = AT_RISK,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> UserFlag:
        """Create an active flag; returns the existing one if already active."""
        existing = self._active_flag(user_id, flag_type)
        if existing is not None:
            return UserFlag.model_validate(existing)

        flag = UserFlagDB(
            id=str(uuid4()),
            user_id=user_id,
            flag_type=flag_type,
            status=FlagStatus.ACTIVE,
            reason=reason,
            created_at=now or datetime.utcnow(),
        )
        self.db.add(flag)
        try:
            self.db.commit()
        except IntegrityError:
            # Another writer raised the same flag first
            self.db.rollback()
            winner = self._active_flag(user_id, flag_type)
            if winner is None:
                raise
            return UserFlag.model_validate(winner)

        logger.info(f"Raised {flag_type} flag {flag.id} for user {user_id}: {reason}")
        return UserFlag.model_validate(flag)

    def resolve_flag(
        self,
        flag_id: str,
        resolution: Union[FlagStatus, str],
        expected_version: Optional[int] = None,
    ) -> UserFlag:
        """
        Set a flag's resolution status and stamp resolved_at.

        Re-resolving overwrites both fields. The update is conditional on the
        row version so concurrent resolvers cannot silently overwrite each other.
        """
        resolution = FlagStatus(resolution)
        if resolution not in RESOLUTION_STATUSES:
            raise ValueError(f"Invalid resolution: {resolution.value}")

        flag = self.db.query(UserFlagDB).get(flag_id)
        if flag is None:
            raise RecordNotFoundError("user_flags", flag_id)
        check_expected_version(flag, "user_flags", expected_version)

        flag.status = resolution
        flag.resolved_at = datetime.utcnow()
        commit_versioned(self.db, "user_flags", flag_id)

        logger.info(f"Flag {flag_id} marked {resolution.value}")
        return UserFlag.model_validate(flag)
