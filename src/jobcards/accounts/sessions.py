"""Server-side login sessions, sign-in handoff codes and signed OAuth state.

The raw session token is handed to the browser once; only its SHA-256
hash is stored, so a leaked table cannot be replayed.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import time
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from jobcards.config import settings
from jobcards.models.db import AppUser, LoginHandoff, UserSession

logger = logging.getLogger(__name__)

STATE_MAX_AGE_SECONDS = 600


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def token_hash(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


# ── Sessions ──────────────────────────────────────────────────────────────────


async def create_session(session: AsyncSession, user: AppUser, user_agent: str = "") -> str:
    """Create a session for *user* and return the raw token."""
    raw_token = secrets.token_urlsafe(32)
    now = utcnow()
    session.add(
        UserSession(
            user_id=user.id,
            token_hash=token_hash(raw_token),
            expires_at=now + timedelta(days=settings.session_days),
            last_seen_at=now,
            user_agent=(user_agent or "")[:200],
        )
    )
    await session.flush()
    logger.info("Created session for user %s", user.id)
    return raw_token


async def resolve_session(session: AsyncSession, raw_token: str) -> AppUser | None:
    """Return the user owning *raw_token*, or ``None``.

    Expired sessions and sessions of deactivated users are deleted.
    """
    if not raw_token:
        return None

    result = await session.execute(
        select(UserSession)
        .options(selectinload(UserSession.user))
        .where(UserSession.token_hash == token_hash(raw_token))
    )
    row = result.scalar_one_or_none()
    if row is None:
        return None

    now = utcnow()
    if row.expires_at < now or not row.user.is_active:
        await session.delete(row)
        await session.flush()
        return None

    row.last_seen_at = now
    return row.user


async def revoke_session(session: AsyncSession, raw_token: str) -> bool:
    """Delete the session for *raw_token*. Returns True if one existed."""
    result = await session.execute(
        delete(UserSession).where(UserSession.token_hash == token_hash(raw_token))
    )
    return bool(result.rowcount)


async def purge_expired_sessions(session: AsyncSession) -> int:
    """Delete expired sessions and unredeemed handoff codes; return how many."""
    now = utcnow()
    sessions = await session.execute(delete(UserSession).where(UserSession.expires_at < now))
    handoffs = await session.execute(delete(LoginHandoff).where(LoginHandoff.expires_at < now))
    return (sessions.rowcount or 0) + (handoffs.rowcount or 0)


# ── Sign-in handoff ───────────────────────────────────────────────────────────


async def create_handoff(session: AsyncSession, user: AppUser) -> str:
    """Issue a short-lived, single-use code the portal exchanges for a session."""
    raw_code = secrets.token_urlsafe(32)
    session.add(
        LoginHandoff(
            user_id=user.id,
            code_hash=token_hash(raw_code),
            expires_at=utcnow() + timedelta(seconds=settings.login_handoff_seconds),
        )
    )
    await session.flush()
    return raw_code


async def redeem_handoff(session: AsyncSession, raw_code: str) -> AppUser | None:
    """Consume a handoff code and return its user, or ``None``.

    The row is deleted in the same statement that reads it, so a code
    works once even when redeemed twice concurrently.
    """
    if not raw_code:
        return None

    result = await session.execute(
        delete(LoginHandoff)
        .where(LoginHandoff.code_hash == token_hash(raw_code))
        .returning(LoginHandoff.user_id, LoginHandoff.expires_at)
    )
    row = result.one_or_none()
    if row is None or row.expires_at < utcnow():
        return None

    user = await session.get(AppUser, row.user_id)
    if user is None or not user.is_active:
        return None
    return user


# ── OAuth state ───────────────────────────────────────────────────────────────


def _signature(value: str) -> str:
    key = settings.jobcards_secret_key.encode("utf-8")
    return hmac.new(key, value.encode("utf-8"), hashlib.sha256).hexdigest()


def sign_state(issued_at: int | None = None) -> str:
    """Create an OAuth ``state`` value: ``nonce.issued_at.signature``."""
    issued = int(time.time()) if issued_at is None else issued_at
    value = f"{secrets.token_urlsafe(16)}.{issued}"
    return f"{value}.{_signature(value)}"


def verify_state(state: str | None, now: int | None = None) -> bool:
    """Check the signature and age of a state value returned by the provider."""
    if not state or state.count(".") < 2:
        return False
    value, digest = state.rsplit(".", 1)
    if not hmac.compare_digest(digest, _signature(value)):
        return False
    try:
        issued = int(value.rsplit(".", 1)[1])
    except ValueError:
        return False
    current = int(time.time()) if now is None else now
    return 0 <= current - issued <= STATE_MAX_AGE_SECONDS


def state_matches(state: str | None, cookie_state: str | None) -> bool:
    """True when *state* is the value issued to this browser at login."""
    if not state or not cookie_state:
        return False
    return hmac.compare_digest(state, cookie_state)
