"""
SAINTRIX - FastAPI Application

Main entry point for the SAINTRIX backend.

Services:
- Sentiment / risk: trigger scoring, sentiment log, at-risk flags
- Follow-ups: per-dispute outreach scheduling and dispatch
- Messages: client <-> admin threads with attachments
- Letters: language-model dispute letter drafts
- Internal jobs: sentiment sweep, follow-up sweep, daily digest
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .routers import (
    sentiment_router, followups_router, messages_router, letters_router, scheduler_router,
)
from .database import init_db
from .logging_config import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and initialize database on startup."""
    setup_logging()
    init_db()
    yield

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="SAINTRIX",
    description="""
    SAINTRIX - Credit Repair Operations Backend

    ## Services
    - **Sentiment / Risk**: behavior triggers are scored and logged; users
      whose recent score reaches the threshold are flagged for admin review
    - **Follow-ups**: outreach tasks per dispute, with a due-work queue
    - **Messages**: client/admin threads, attachments, live delivery
    - **Daily digest**: yesterday's activity emailed to every admin
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(sentiment_router)
app.include_router(followups_router)
app.include_router(messages_router)
app.include_router(letters_router)
app.include_router(scheduler_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


# For running with: python -m saintrix.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
