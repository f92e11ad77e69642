"""SAINTRIX - Data Models"""
from .db_models import (
    # Enums
    TriggerType, FlagStatus, FollowupType, FollowupStatus, DisputeStatus, DocumentStatus,
    AT_RISK,
    # Tables
    ClientDB, AdminDB, DisputeDB, DocumentDB, SupportTicketDB, AdminLogDB,
    SentimentLogDB, UserFlagDB, DisputeFollowupDB, MessageDB,
)

__all__ = [
    "TriggerType", "FlagStatus", "FollowupType", "FollowupStatus", "DisputeStatus", "DocumentStatus",
    "AT_RISK",
    "ClientDB", "AdminDB", "DisputeDB", "DocumentDB", "SupportTicketDB", "AdminLogDB",
    "SentimentLogDB", "UserFlagDB", "DisputeFollowupDB", "MessageDB",
]
