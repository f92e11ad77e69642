"""
Dispute Follow-up API Routes

Admin endpoints for scheduling, tracking and rescheduling follow-ups.
Two read views per dispute: chronological (scheduling) and newest-created
first (history), plus the global due-work queue.
"""
from datetime import datetime
from typing import Optional, List
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import require_admin, CurrentUser
from ..models.db_models import FollowupType, FollowupStatus
from ..models.schemas import Followup, DueFollowup
from ..services.exceptions import ServiceError
from ..services.followups import FollowupScheduler
from .errors import to_http


router = APIRouter(tags=["followups"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class ScheduleFollowupRequest(BaseModel):
    """Request to schedule a follow-up for a dispute."""
    type: FollowupType = Field(..., description="email, letter, phone or fax")
    scheduled_date: datetime = Field(..., description="When the follow-up is due")
    recipient: str = Field(..., min_length=1, description="Email address, mailing address or phone number")
    content: Optional[str] = Field(None, description="Message body or call notes")


class UpdateStatusRequest(BaseModel):
    status: FollowupStatus
    response_content: Optional[str] = Field(None, description="Response received, if any")
    expected_version: Optional[int] = None


class RescheduleRequest(BaseModel):
    scheduled_date: datetime
    expected_version: Optional[int] = None


# =============================================================================
# PER-DISPUTE
# =============================================================================

@router.post("/disputes/{dispute_id}/followups", response_model=Followup, status_code=201)
async def schedule_followup(
    dispute_id: str,
    request: ScheduleFollowupRequest,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    try:
        return FollowupScheduler(db).schedule_followup(
            dispute_id,
            request.type,
            request.scheduled_date,
            request.recipient,
            request.content,
        )
    except (ServiceError, ValueError) as e:
        raise to_http(e)
    except IntegrityError as e:
        db.rollback()
        raise to_http(e)


@router.get("/disputes/{dispute_id}/followups", response_model=List[Followup])
async def get_dispute_followups(
    dispute_id: str,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    """Follow-ups in scheduled order."""
    return FollowupScheduler(db).get_dispute_followups(dispute_id)


@router.get("/disputes/{dispute_id}/followups/history", response_model=List[Followup])
async def get_followup_history(
    dispute_id: str,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    """Follow-ups newest-created first."""
    return FollowupScheduler(db).get_followup_history(dispute_id)


# =============================================================================
# QUEUE / TRANSITIONS
# =============================================================================

@router.get("/followups/pending", response_model=List[DueFollowup])
async def get_pending_followups(
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    """Pending follow-ups that are due now, oldest first."""
    return FollowupScheduler(db).get_pending_followups()


@router.patch("/followups/{followup_id}/status", response_model=Followup)
async def update_followup_status(
    followup_id: str,
    request: UpdateStatusRequest,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    try:
        return FollowupScheduler(db).update_followup_status(
            followup_id,
            request.status,
            response_content=request.response_content,
            expected_version=request.expected_version,
        )
    except (ServiceError, ValueError) as e:
        raise to_http(e)


@router.post("/followups/{followup_id}/cancel", response_model=Followup)
async def cancel_followup(
    followup_id: str,
    expected_version: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    try:
        return FollowupScheduler(db).cancel_followup(followup_id, expected_version=expected_version)
    except (ServiceError, ValueError) as e:
        raise to_http(e)


@router.post("/followups/{followup_id}/reschedule", response_model=Followup)
async def reschedule_followup(
    followup_id: str,
    request: RescheduleRequest,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    """Move the follow-up to a new date; status returns to pending."""
    try:
        return FollowupScheduler(db).reschedule_followup(
            followup_id, request.scheduled_date, expected_version=request.expected_version,
        )
    except (ServiceError, ValueError) as e:
        raise to_http(e)
