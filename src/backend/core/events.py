"""
Application lifecycle event handlers.

Manages startup and shutdown of the database engine and lets in-flight
vote admissions finish before connections are closed.
"""

from typing import Callable

import structlog
from fastapi import FastAPI

from core.config import settings
from db.session import close_db, init_db
from services.election_window import window_from_settings
from services.vote_admission import VoteAdmissionService

logger = structlog.get_logger(__name__)


def create_start_app_handler(app: FastAPI) -> Callable:
    """Create startup event handler."""

    async def start_app() -> None:
        logger.info("Starting OneVote API...", env=settings.APP_ENV)

        await init_db()

        window = window_from_settings()
        logger.info(
            "election_window_loaded",
            election_id=window.election_id,
            opens_at=window.opens_at.isoformat() if window.opens_at else None,
            closes_at=window.closes_at.isoformat() if window.closes_at else None,
        )

        logger.info("OneVote API started successfully")

    return start_app


def create_stop_app_handler(app: FastAPI) -> Callable:
    """Create shutdown event handler."""

    async def stop_app() -> None:
        logger.info("Shutting down OneVote API...")

        # Admissions whose clients disconnected still need their commit
        await VoteAdmissionService.drain()

        await close_db()

        logger.info("OneVote API shutdown complete")

    return stop_app
