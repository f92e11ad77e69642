"""
SAINTRIX - SQLAlchemy ORM Models
PostgreSQL database models for persistent storage
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, String, Integer, DateTime, Text, JSON, ForeignKey, Boolean, Index, text,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from ..database import Base


def _values_enum(enum_cls):
    """Persist enum values (lowercase wire strings) rather than member names."""
    return SQLEnum(enum_cls, values_callable=lambda members: [m.value for m in members])


# =============================================================================
# ENUMS
# =============================================================================

class TriggerType(str, Enum):
    """Behavioral events that contribute to a client's risk score."""
    INACTIVITY = "inactivity"
    SUPPORT_CONTACT = "support_contact"
    MISSING_DOCS = "missing_docs"
    UNOPENED_LETTERS = "unopened_letters"


class FlagStatus(str, Enum):
    """Lifecycle of a user flag."""
    ACTIVE = "active"
    RESOLVED = "resolved"
    FALSE_POSITIVE = "false_positive"


class FollowupType(str, Enum):
    """Outreach channel for a dispute follow-up."""
    EMAIL = "email"
    LETTER = "letter"
    PHONE = "phone"
    FAX = "fax"


class FollowupStatus(str, Enum):
    """Lifecycle of a dispute follow-up."""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    CANCELLED = "cancelled"


class DisputeStatus(str, Enum):
    """Overall dispute status."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class DocumentStatus(str, Enum):
    """Review status of an uploaded document. NULL means requested, not yet uploaded."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


AT_RISK = "at_risk"


# =============================================================================
# CLIENT / ADMIN IDENTITY
# =============================================================================

class ClientDB(Base):
    """Client account. Authentication lives with the external auth provider."""
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True)  # UUID, same as auth user id
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    last_activity_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    disputes = relationship("DisputeDB", back_populates="client", cascade="all, delete-orphan")


class AdminDB(Base):
    """Admin account - recipient list for the daily digest."""
    __tablename__ = "admins"

    id = Column(String(36), primary_key=True)  # UUID
    email = Column(String(255), unique=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


# =============================================================================
# DISPUTES AND SUPPORTING RECORDS
# =============================================================================

class DisputeDB(Base):
    """A dispute filed with a bureau on behalf of a client."""
    __tablename__ = "disputes"

    id = Column(String(36), primary_key=True)  # UUID
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)

    bureau = Column(String(50), nullable=False)  # Equifax, Experian, TransUnion
    item_name = Column(String(255), nullable=True)
    violation_type = Column(String(100), nullable=True)
    status = Column(_values_enum(DisputeStatus), default=DisputeStatus.PENDING)
    letter_opened = Column(Boolean, default=False)  # Has the client opened the generated letter?

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    client = relationship("ClientDB", back_populates="disputes")
    followups = relationship("DisputeFollowupDB", back_populates="dispute", cascade="all, delete-orphan")


class DocumentDB(Base):
    """Document requested from / uploaded by a client."""
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True)  # UUID
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    document_type = Column(String(50), nullable=True)  # id_proof, address_proof, credit_report
    file_url = Column(String(500), nullable=True)
    status = Column(_values_enum(DocumentStatus), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class SupportTicketDB(Base):
    """Support request raised by a client."""
    __tablename__ = "support_tickets"

    id = Column(String(36), primary_key=True)  # UUID
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    subject = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class AdminLogDB(Base):
    """Operational log entries surfaced to admins (errors feed the daily digest)."""
    __tablename__ = "admin_logs"

    id = Column(String(36), primary_key=True)  # UUID
    action = Column(String(50), nullable=False, index=True)  # error, login, export, ...
    details = Column(JSON, nullable=True)  # {"message": "..."}
    timestamp = Column(DateTime, default=datetime.utcnow, index=True)


# =============================================================================
# SENTIMENT / RISK
# =============================================================================

class SentimentLogDB(Base):
    """
    Scored trigger event.
    Append-only - never updated or deleted.
    """
    __tablename__ = "sentiment_logs"

    id = Column(String(36), primary_key=True)  # UUID
    user_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    trigger_type = Column(_values_enum(TriggerType), nullable=False)
    score = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_sentiment_logs_user_created", "user_id", "created_at"),
    )


class UserFlagDB(Base):
    """
    Per-user marker requiring admin attention.
    At most one ACTIVE flag per (user, flag_type); updates are version-checked.
    """
    __tablename__ = "user_flags"

    id = Column(String(36), primary_key=True)  # UUID
    user_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    flag_type = Column(String(50), nullable=False, default=AT_RISK)
    status = Column(_values_enum(FlagStatus), nullable=False, default=FlagStatus.ACTIVE)
    reason = Column(Text, nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    version = Column(Integer, nullable=False)

    # Relationships
    user = relationship("ClientDB")

    __table_args__ = (
        Index(
            "uq_user_flags_one_active",
            "user_id", "flag_type",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )
    __mapper_args__ = {"version_id_col": version}


# =============================================================================
# DISPUTE FOLLOW-UPS
# =============================================================================

class DisputeFollowupDB(Base):
    """
    Time-boxed outreach task owned by a dispute.
    Updates are version-checked to prevent lost updates.
    """
    __tablename__ = "dispute_followups"

    id = Column(String(36), primary_key=True)  # UUID
    dispute_id = Column(String(36), ForeignKey("disputes.id", ondelete="CASCADE"), nullable=False, index=True)

    type = Column(_values_enum(FollowupType), nullable=False)
    scheduled_date = Column(DateTime, nullable=False)
    recipient = Column(String(255), nullable=False)
    content = Column(Text, nullable=True)

    status = Column(_values_enum(FollowupStatus), nullable=False, default=FollowupStatus.PENDING)
    sent_date = Column(DateTime, nullable=True)

    # Response tracking (orthogonal to status)
    response_received = Column(Boolean, nullable=False, default=False)
    response_content = Column(Text, nullable=True)
    response_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    version = Column(Integer, nullable=False)

    # Relationships
    dispute = relationship("DisputeDB", back_populates="followups")

    __table_args__ = (
        Index("ix_dispute_followups_status_scheduled", "status", "scheduled_date"),
    )
    __mapper_args__ = {"version_id_col": version}


# =============================================================================
# MESSAGES
# =============================================================================

class MessageDB(Base):
    """
    Client/admin message. Threads are grouped by thread_id.
    Participants may be clients or admins, so sender and recipient carry no
    foreign key; the service checks both identity tables on send.
    """
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True)  # UUID
    thread_id = Column(String(36), nullable=False, index=True)
    sender_id = Column(String(36), nullable=False, index=True)
    recipient_id = Column(String(36), nullable=False, index=True)

    content = Column(Text, nullable=False)
    attachment_url = Column(String(500), nullable=True)
    read = Column(Boolean, nullable=False, default=False)

    sent_at = Column(DateTime, default=datetime.utcnow, nullable=False)
