"""FastAPI dependency injection helpers.

Authorisation lives here: every project-scoped route resolves the caller's
role on the project and rejects the request before touching any rows.
Rows of projects the caller is not a member of are reported as missing.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobcards.accounts.sessions import resolve_session
from jobcards.accounts.users import get_user_by_email
from jobcards.config import settings
from jobcards.db.session import get_session
from jobcards.models.db import AppUser, ProjectItem, ProjectMember
from jobcards.planning.access import can_edit

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session."""
    async for session in get_session():
        yield session


def session_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
) -> str | None:
    """Read the session token from the Authorization header or the session cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.session_cookie_name)


async def get_optional_user(
    token: str | None = Depends(session_token),
    session: AsyncSession = Depends(get_db),
) -> AppUser | None:
    """Return the signed-in user, or None.

    In development mode a request without a token acts as
    ``DEV_USER_EMAIL`` when that is configured.
    """
    if token:
        return await resolve_session(session, token)
    if settings.is_development and settings.dev_user_email:
        return await get_user_by_email(session, settings.dev_user_email)
    return None


async def get_current_user(user: AppUser | None = Depends(get_optional_user)) -> AppUser:
    if user is None:
        raise HTTPException(status_code=401, detail="Not signed in")
    return user


async def require_superuser(user: AppUser = Depends(get_current_user)) -> AppUser:
    if not user.is_superuser:
        raise HTTPException(status_code=403, detail="This page is for superusers only.")
    return user


# ── Project access ────────────────────────────────────────────────────────────


async def get_project_role(session: AsyncSession, projectnumber: str, user: AppUser) -> str | None:
    """Return the caller's role on *projectnumber*, or None if not a member."""
    result = await session.execute(
        select(ProjectMember.role).where(
            ProjectMember.projectnumber == projectnumber,
            ProjectMember.user_id == user.id,
        )
    )
    return result.scalar_one_or_none()


async def require_member(session: AsyncSession, projectnumber: str, user: AppUser) -> str:
    role = await get_project_role(session, projectnumber, user)
    if role is None:
        raise HTTPException(status_code=404, detail="Project item not found.")
    return role


async def require_editor(session: AsyncSession, projectnumber: str, user: AppUser) -> str:
    role = await require_member(session, projectnumber, user)
    if not can_edit(role):
        raise HTTPException(
            status_code=403,
            detail=f"Role '{role}' is read-only on project {projectnumber}.",
        )
    return role


async def get_item_or_404(session: AsyncSession, projectnumber: str, item_seq: int) -> ProjectItem:
    result = await session.execute(
        select(ProjectItem).where(
            ProjectItem.projectnumber == projectnumber,
            ProjectItem.item_seq == item_seq,
        )
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise HTTPException(status_code=404, detail="Project item not found.")
    return item
