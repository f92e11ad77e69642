"""
SAINTRIX - Boundary Records

One tagged record type per table. Rows leave the service layer as these
records; payloads entering it are validated against them and unknown fields
are rejected.
"""
from datetime import datetime, timezone
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .db_models import (
    TriggerType, FlagStatus, FollowupType, FollowupStatus, DisputeStatus,
)


def to_naive_utc(value: datetime) -> datetime:
    """Timestamps are stored as naive UTC; convert aware values on the way in."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class Record(BaseModel):
    """Base for all boundary records."""
    model_config = ConfigDict(extra="forbid", from_attributes=True)


# =============================================================================
# IDENTITY
# =============================================================================

class ClientIdentity(Record):
    """Basic client identity used in joined views."""
    id: str
    full_name: Optional[str] = None
    email: str


class UserIdentity(Record):
    """User identity shown next to a flag."""
    id: str
    email: str
    created_at: Optional[datetime] = None


# =============================================================================
# SENTIMENT / RISK
# =============================================================================

class SentimentTrigger(Record):
    """Observed behavior event submitted for scoring."""
    type: str = Field(..., description="Trigger type; unknown types are ignored")
    user_id: str
    details: Optional[str] = None


class SentimentLogEntry(Record):
    id: str
    user_id: str
    trigger_type: TriggerType
    score: int
    notes: Optional[str] = None
    created_at: datetime


class UserFlag(Record):
    id: str
    user_id: str
    flag_type: str
    status: FlagStatus
    reason: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    version: int


class AtRiskUser(UserFlag):
    """Active at-risk flag joined with the flagged user's identity."""
    user: UserIdentity


# =============================================================================
# FOLLOW-UPS
# =============================================================================

class FollowupCreate(Record):
    """Payload for scheduling a follow-up."""
    dispute_id: str
    type: FollowupType
    scheduled_date: datetime
    recipient: str = Field(..., min_length=1)
    content: Optional[str] = None

    @field_validator("scheduled_date")
    @classmethod
    def scheduled_date_utc(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @field_validator("recipient")
    @classmethod
    def recipient_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("recipient must not be blank")
        return value.strip()


class Followup(Record):
    id: str
    dispute_id: str
    type: FollowupType
    scheduled_date: datetime
    recipient: str
    content: Optional[str] = None
    status: FollowupStatus
    sent_date: Optional[datetime] = None
    response_received: bool = False
    response_content: Optional[str] = None
    response_date: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    version: int


class DisputeSummary(Record):
    """Dispute identity joined to its client, for the admin triage queue."""
    id: str
    bureau: str
    status: DisputeStatus
    client: ClientIdentity


class DueFollowup(Followup):
    """Pending follow-up whose scheduled date has passed, with dispute context."""
    dispute: DisputeSummary


# =============================================================================
# MESSAGES
# =============================================================================

class MessageCreate(Record):
    thread_id: str
    sender_id: str
    recipient_id: str
    content: str = Field(..., min_length=1)
    attachment_url: Optional[str] = None


class Message(Record):
    id: str
    thread_id: str
    sender_id: str
    recipient_id: str
    content: str
    attachment_url: Optional[str] = None
    read: bool
    sent_at: datetime


class Participant(Record):
    """Either side of a message: a client or an admin."""
    id: str
    email: str
    full_name: Optional[str] = None
    role: str = Field(..., description="client or admin")


class MessageWithParticipants(Message):
    sender: Optional[Participant] = None
    recipient: Optional[Participant] = None


# =============================================================================
# DIGEST
# =============================================================================

class DigestError(Record):
    """An `error` admin log entry from the digest window."""
    message: Optional[str] = None
    timestamp: datetime


class DigestStats(Record):
    """Counts gathered for one digest window."""
    window_start: datetime
    window_end: datetime
    new_users: int
    new_disputes: int
    missing_uploads: int
    errors: List[DigestError] = Field(default_factory=list)
