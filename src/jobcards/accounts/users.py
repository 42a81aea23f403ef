"""Portal user records created from SSO sign-ins."""

from __future__ import annotations

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from jobcards.accounts.sessions import utcnow
from jobcards.integrations.azure_sso import SsoProfile
from jobcards.models.db import AppUser

logger = logging.getLogger(__name__)


async def get_user_by_email(session: AsyncSession, email: str) -> AppUser | None:
    result = await session.execute(
        select(AppUser).where(func.lower(AppUser.email) == email.strip().lower())
    )
    return result.scalar_one_or_none()


class AccountConflictError(Exception):
    """The SSO identity and the profile email belong to two different users."""


async def upsert_sso_user(session: AsyncSession, profile: SsoProfile) -> AppUser:
    """Find or create the user for an SSO profile and stamp the login.

    Users are matched by Azure object id first, then by email, so a user
    pre-provisioned by email (CLI, seed) is linked on first sign-in.

    Raises:
        AccountConflictError: The object id belongs to one user and the
            email to another. Nothing is changed.
    """
    conditions = [AppUser.azure_oid == profile.subject]
    if profile.email:
        conditions.append(func.lower(AppUser.email) == profile.email)

    result = await session.execute(select(AppUser).where(or_(*conditions)))
    candidates = result.scalars().all()
    by_oid = next((u for u in candidates if u.azure_oid == profile.subject), None)
    by_email = None
    if profile.email:
        by_email = next((u for u in candidates if (u.email or "").lower() == profile.email), None)

    if by_oid is not None and by_email is not None and by_oid is not by_email:
        logger.warning(
            "SSO subject %s is linked to user %s but %s belongs to user %s",
            profile.subject, by_oid.id, profile.email, by_email.id,
        )
        raise AccountConflictError(
            f"{profile.email} is already registered to a different portal user. "
            "Ask an administrator to merge the accounts."
        )

    user = by_oid or by_email
    if user is None:
        user = AppUser(azure_oid=profile.subject, email=profile.email)
        session.add(user)
        logger.info("Registered new user %s", profile.email or profile.subject)

    user.azure_oid = profile.subject
    if profile.email:
        user.email = profile.email
    if profile.full_name:
        user.full_name = profile.full_name
        user.display_name = user.display_name or profile.full_name
    user.last_login_at = utcnow()

    await session.flush()
    await session.refresh(user)
    return user
