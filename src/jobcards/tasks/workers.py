"""Background workers using APScheduler.

Runs periodic tasks:
- Purge expired login sessions (every ``SESSION_PURGE_INTERVAL_MINUTES``)
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from jobcards.config import settings

logger = logging.getLogger(__name__)

_scheduler: AsyncIOScheduler | None = None


def start_scheduler() -> None:
    """Start the background task scheduler."""
    global _scheduler
    if _scheduler is not None:
        return

    _scheduler = AsyncIOScheduler()

    _scheduler.add_job(
        run_session_purge,
        "interval",
        minutes=settings.session_purge_interval_minutes,
        id="session_purge",
        replace_existing=True,
    )

    _scheduler.start()
    logger.info("Background scheduler started")


def stop_scheduler() -> None:
    """Stop the background task scheduler."""
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("Background scheduler stopped")


async def run_session_purge() -> int:
    """Delete expired login sessions and unredeemed sign-in codes."""
    from jobcards.accounts.sessions import purge_expired_sessions
    from jobcards.db.session import session_scope

    try:
        async with session_scope() as session:
            removed = await purge_expired_sessions(session)
    except Exception:
        logger.exception("Session purge failed")
        return 0

    if removed:
        logger.info("Purged %d expired sessions", removed)
    return removed
