"""Azure AD (Microsoft identity platform) single sign-on client."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from jobcards.config import settings

logger = logging.getLogger(__name__)


class SsoError(RuntimeError):
    """The sign-in attempt cannot be completed (bad state, unusable profile)."""


@dataclass
class SsoProfile:
    """The parts of the OIDC userinfo response the portal keeps."""

    subject: str
    email: str | None
    full_name: str | None

    @classmethod
    def from_userinfo(cls, data: dict[str, Any]) -> "SsoProfile":
        subject = data.get("oid") or data.get("sub")
        if not subject:
            raise SsoError("Identity provider returned a profile without a subject")
        email = data.get("email") or data.get("preferred_username") or data.get("upn")
        name = data.get("name")
        if not name:
            name = " ".join(p for p in (data.get("given_name"), data.get("family_name")) if p)
        return cls(
            subject=str(subject),
            email=email.strip().lower() if email else None,
            full_name=name.strip() if name else None,
        )


class AzureSSOClient:
    """OAuth2 authorization-code flow against Azure AD.

    Used by the auth routes: ``authorize_url`` starts sign-in,
    ``exchange_code`` and ``fetch_profile`` finish it in the callback.
    """

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id or settings.azure_client_id
        self.client_secret = client_secret or settings.azure_client_secret
        self.redirect_uri = redirect_uri or settings.azure_redirect_uri
        self.transport = transport
        self.headers = {"Accept": "application/json", "User-Agent": "SiteJobcards"}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(headers=self.headers, timeout=30, transport=self.transport)

    def authorize_url(self, state: str) -> str:
        """Build the URL the browser is sent to for sign-in.

        Args:
            state: Signed, opaque value echoed back to the callback.

        Returns:
            The full Azure AD authorize URL.
        """
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "response_mode": "query",
            "scope": settings.azure_scopes,
            "state": state,
        }
        if settings.azure_prompt:
            params["prompt"] = settings.azure_prompt
        return f"{settings.azure_authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> dict[str, Any]:
        """Exchange an authorization code for tokens.

        Args:
            code: The ``code`` query parameter received by the callback.

        Returns:
            Token response dict containing at least ``access_token``.
        """
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
            "scope": settings.azure_scopes,
        }
        async with self._client() as client:
            response = await client.post(settings.azure_token_url, data=data)
            response.raise_for_status()
            tokens = response.json()
        if "access_token" not in tokens:
            raise SsoError("Token response did not include an access token")
        return tokens

    async def fetch_profile(self, access_token: str) -> SsoProfile:
        """Fetch the signed-in user's OIDC profile.

        Args:
            access_token: Token returned by :meth:`exchange_code`.

        Returns:
            The user's subject, email and display name.
        """
        headers = {"Authorization": f"Bearer {access_token}"}
        async with self._client() as client:
            response = await client.get(settings.azure_userinfo_url, headers=headers)
            response.raise_for_status()
            profile = SsoProfile.from_userinfo(response.json())
        logger.info("Fetched SSO profile for %s", profile.email or profile.subject)
        return profile
