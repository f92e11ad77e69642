"""
Sentiment & Risk API Routes

Admin endpoints for submitting behavior triggers, inspecting a user's risk
score and working the at-risk flag queue.
"""
from typing import Optional, List
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import require_admin, CurrentUser
from ..models.db_models import FlagStatus
from ..models.schemas import SentimentTrigger, SentimentLogEntry, UserFlag, AtRiskUser
from ..services.exceptions import ServiceError
from ..services.sentiment import SentimentLogWriter, RiskFlagManager
from .errors import to_http


router = APIRouter(tags=["sentiment"])


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class TriggerResult(BaseModel):
    """Outcome of submitting one trigger."""
    logged: bool
    entry: Optional[SentimentLogEntry] = None
    at_risk: bool
    flag: Optional[UserFlag] = None


class UserRiskResponse(BaseModel):
    user_id: str
    at_risk: bool
    score: int
    threshold: int
    logs: List[SentimentLogEntry]


class ResolveFlagRequest(BaseModel):
    """Admin resolution of an at-risk flag."""
    resolution: FlagStatus = Field(..., description="resolved or false_positive")
    expected_version: Optional[int] = Field(None, description="Version the admin last saw")


# =============================================================================
# TRIGGERS / SCORES
# =============================================================================

@router.post("/sentiment/triggers", response_model=TriggerResult)
async def submit_trigger(
    trigger: SentimentTrigger,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    """
    Score and log a trigger, then re-evaluate the user's at-risk flag.

    Unknown trigger types are ignored: nothing is logged.
    """
    entry = SentimentLogWriter(db).log_trigger(trigger)
    flags = RiskFlagManager(db)
    flag = flags.evaluate_user(trigger.user_id) if entry is not None else None
    return TriggerResult(
        logged=entry is not None,
        entry=entry,
        at_risk=flags.is_user_at_risk(trigger.user_id),
        flag=flag,
    )


@router.get("/sentiment/users/{user_id}/risk", response_model=UserRiskResponse)
async def get_user_risk(
    user_id: str,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    flags = RiskFlagManager(db)
    return UserRiskResponse(
        user_id=user_id,
        at_risk=flags.is_user_at_risk(user_id),
        score=flags.get_user_score(user_id),
        threshold=flags.threshold,
        logs=flags.logs.get_user_logs(user_id),
    )


# =============================================================================
# FLAG QUEUE
# =============================================================================

@router.get("/admin/flags", response_model=List[AtRiskUser])
async def list_at_risk_users(
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    return RiskFlagManager(db).get_at_risk_users()


@router.post("/admin/flags/{flag_id}/resolve", response_model=UserFlag)
async def resolve_flag(
    flag_id: str,
    request: ResolveFlagRequest,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    try:
        return RiskFlagManager(db).resolve_flag(flag_id, request.resolution, request.expected_version)
    except (ServiceError, ValueError) as e:
        raise to_http(e)
