"""SAINTRIX - API Routers"""
from .sentiment import router as sentiment_router
from .followups import router as followups_router
from .messages import router as messages_router
from .letters import router as letters_router
from .scheduler import router as scheduler_router

__all__ = [
    "sentiment_router",
    "followups_router",
    "messages_router",
    "letters_router",
    "scheduler_router",
]
