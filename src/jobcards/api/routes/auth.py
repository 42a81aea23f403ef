"""Sign-in, sign-out and current-user API routes."""

from __future__ import annotations

import logging
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from jobcards.accounts.sessions import (
    STATE_MAX_AGE_SECONDS,
    create_handoff,
    create_session,
    redeem_handoff,
    revoke_session,
    sign_state,
    state_matches,
    verify_state,
)
from jobcards.accounts.users import AccountConflictError, upsert_sso_user
from jobcards.api.deps import get_current_user, get_db, session_token
from jobcards.config import settings
from jobcards.integrations.azure_sso import AzureSSOClient, SsoError
from jobcards.models.db import AppUser
from jobcards.models.schemas import (
    HandoffExchange,
    LoginResponse,
    SessionTokenResponse,
    UserResponse,
    WhoAmIResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

AUTH_COOKIE_PATH = "/api/auth"


def get_sso_client() -> AzureSSOClient:
    return AzureSSOClient()


def _ui_redirect(**params: str) -> RedirectResponse:
    response = RedirectResponse(f"{settings.ui_base_url.rstrip('/')}/?{urlencode(params)}", 303)
    response.delete_cookie(settings.oauth_state_cookie_name, path=AUTH_COOKIE_PATH)
    return response


def _set_state_cookie(response: Response, state: str) -> None:
    response.set_cookie(
        settings.oauth_state_cookie_name,
        state,
        max_age=STATE_MAX_AGE_SECONDS,
        path=AUTH_COOKIE_PATH,
        httponly=True,
        samesite="lax",
        secure=not settings.is_development,
    )


@router.get("/auth/login", response_model=LoginResponse)
async def login(
    response: Response,
    redirect: bool = False,
    sso: AzureSSOClient = Depends(get_sso_client),
):
    """Start Azure sign-in.

    Returns the authorize URL, or redirects straight to it with
    ``?redirect=true`` (for plain links). The state is also stored in a
    cookie so the callback only completes in the browser that started it.
    """
    state = sign_state()
    url = sso.authorize_url(state)
    if redirect:
        redirect_response = RedirectResponse(url, 307)
        _set_state_cookie(redirect_response, state)
        return redirect_response
    _set_state_cookie(response, state)
    return LoginResponse(authorize_url=url)


@router.get("/auth/callback")
async def auth_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    session: AsyncSession = Depends(get_db),
    sso: AzureSSOClient = Depends(get_sso_client),
):
    """Finish Azure sign-in and send the portal a one-time handoff code."""
    if error:
        logger.warning("SSO sign-in rejected by provider: %s", error)
        return _ui_redirect(auth_error=error_description or error)

    cookie_state = request.cookies.get(settings.oauth_state_cookie_name)
    if not code or not verify_state(state) or not state_matches(state, cookie_state):
        logger.warning("SSO callback with missing code or invalid state")
        raise HTTPException(status_code=400, detail="Invalid sign-in response. Please try again.")

    try:
        tokens = await sso.exchange_code(code)
        profile = await sso.fetch_profile(tokens["access_token"])
    except SsoError as exc:
        logger.warning("SSO profile unusable: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except httpx.HTTPError as exc:
        logger.warning("SSO provider call failed: %s", exc)
        raise HTTPException(status_code=502, detail="Sign-in provider unavailable.") from exc

    try:
        user = await upsert_sso_user(session, profile)
    except AccountConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if not user.is_active:
        raise HTTPException(status_code=403, detail="This account has been deactivated.")

    handoff = await create_handoff(session, user)
    logger.info("User %s signed in", user.email or user.id)
    return _ui_redirect(handoff=handoff)


@router.post("/auth/exchange", response_model=SessionTokenResponse)
async def exchange_handoff(
    data: HandoffExchange,
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_db),
):
    """Trade a handoff code from the sign-in redirect for a session token.

    Each code works once and only for a short time.
    """
    user = await redeem_handoff(session, data.code)
    if user is None:
        raise HTTPException(
            status_code=400, detail="Sign-in link expired or already used. Please sign in again."
        )

    token = await create_session(session, user, request.headers.get("user-agent", ""))
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_days * 24 * 3600,
        httponly=True,
        samesite="lax",
        secure=not settings.is_development,
    )
    return SessionTokenResponse(token=token, user=UserResponse.model_validate(user))


@router.post("/auth/logout", status_code=204)
async def logout(
    token: str | None = Depends(session_token),
    session: AsyncSession = Depends(get_db),
):
    """Sign out: delete the server-side session and clear the cookie."""
    if token and await revoke_session(session, token):
        logger.info("Session signed out")
    response = Response(status_code=204)
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.get("/auth/me", response_model=UserResponse)
async def me(user: AppUser = Depends(get_current_user)):
    """The signed-in user, including whether the admin screen is available."""
    return user


@router.get("/auth/whoami", response_model=WhoAmIResponse)
async def whoami(user: AppUser = Depends(get_current_user)):
    return WhoAmIResponse(uid=user.id)
