"""
Scheduler API Routes

Internal endpoints for system-automatic jobs, called by the external cron:
- sentiment-check   every 6 hours
- followup-sweep    hourly
- daily-digest      once a day
"""
import os
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Header
from sqlalchemy.orm import Session

from ..database import get_db, SessionLocal
from ..services.digest import DailyDigestJob
from ..services.followups import FollowupDispatcher
from ..services.notifications import Mailer, build_mailer
from ..services.sentiment import SentimentTriggerSweep


router = APIRouter(prefix="/internal", tags=["scheduler"])


# =============================================================================
# INTERNAL API KEY VALIDATION
# =============================================================================

INTERNAL_API_KEY = os.getenv("INTERNAL_API_KEY", "scheduler-internal-key-change-in-production")


async def verify_internal_key(x_internal_key: str = Header(...)):
    """Verify internal API key for scheduler endpoints."""
    if x_internal_key != INTERNAL_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid internal API key")
    return True


def get_mailer() -> Mailer:
    return build_mailer()


def get_session_factory() -> Callable[[], Session]:
    return SessionLocal


# =============================================================================
# SCHEDULER ENDPOINTS (SYSTEM-ONLY)
# =============================================================================

@router.post("/sentiment-check", response_model=dict)
async def run_sentiment_check(
    db: Session = Depends(get_db),
    _: bool = Depends(verify_internal_key),
):
    """
    Detect behavior triggers, log them and raise at-risk flags.
    """
    return SentimentTriggerSweep(db).run()


@router.post("/followup-sweep", response_model=dict)
async def run_followup_sweep(
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    _: bool = Depends(verify_internal_key),
):
    """
    Send due email follow-ups; report letter/phone/fax ones as manual work.
    """
    try:
        return FollowupDispatcher(db, mailer).run()
    finally:
        mailer.close()


@router.post("/daily-digest", response_model=dict)
async def run_daily_digest(
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    mailer: Mailer = Depends(get_mailer),
    _: bool = Depends(verify_internal_key),
):
    """
    Email yesterday's activity summary to every admin.
    """
    try:
        return await DailyDigestJob(session_factory, mailer).run()
    finally:
        mailer.close()
