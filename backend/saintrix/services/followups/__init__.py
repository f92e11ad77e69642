"""
Dispute Follow-up Services

Scheduling and tracking of outreach tasks tied to a dispute, and the sweep
that dispatches the due ones.
"""
from .followup_scheduler import FollowupScheduler
from .followup_dispatcher import FollowupDispatcher

__all__ = ["FollowupScheduler", "FollowupDispatcher"]
