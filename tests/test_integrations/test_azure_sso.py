"""Tests for the Azure AD SSO client against a mock transport."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from jobcards.integrations.azure_sso import AzureSSOClient, SsoError, SsoProfile


def _client(handler) -> AzureSSOClient:
    return AzureSSOClient(
        client_id="client-123",
        client_secret="s3cret",
        redirect_uri="http://localhost:8000/api/auth/callback",
        transport=httpx.MockTransport(handler),
    )


class TestAuthorizeUrl:
    def test_parameters(self):
        sso = _client(lambda request: httpx.Response(500))
        url = urlparse(sso.authorize_url("state-xyz"))
        params = parse_qs(url.query)

        assert url.scheme == "https"
        assert url.netloc == "login.microsoftonline.com"
        assert params["client_id"] == ["client-123"]
        assert params["redirect_uri"] == ["http://localhost:8000/api/auth/callback"]
        assert params["response_mode"] == ["query"]
        assert params["state"] == ["state-xyz"]
        assert params["prompt"] == ["select_account"]


class TestExchangeCode:
    @pytest.mark.asyncio
    async def test_posts_form_to_token_endpoint(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(200, json={"access_token": "at-1", "id_token": "it"})

        tokens = await _client(handler).exchange_code("code-abc")

        assert tokens["access_token"] == "at-1"
        assert seen["url"].endswith("/oauth2/v2.0/token")
        assert seen["form"]["grant_type"] == ["authorization_code"]
        assert seen["form"]["code"] == ["code-abc"]
        assert seen["form"]["client_secret"] == ["s3cret"]

    @pytest.mark.asyncio
    async def test_missing_access_token(self):
        sso = _client(lambda request: httpx.Response(200, json={"error": "nope"}))
        with pytest.raises(SsoError):
            await sso.exchange_code("code-abc")

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self):
        sso = _client(lambda request: httpx.Response(400, json={"error": "invalid_grant"}))
        with pytest.raises(httpx.HTTPStatusError):
            await sso.exchange_code("code-abc")


class TestFetchProfile:
    @pytest.mark.asyncio
    async def test_sends_bearer_token(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer at-1"
            return httpx.Response(
                200, json={"sub": "abc", "email": "Jo.Site@Example.com", "name": "Jo Site"}
            )

        profile = await _client(handler).fetch_profile("at-1")
        assert profile == SsoProfile(subject="abc", email="jo.site@example.com", full_name="Jo Site")


class TestProfileParsing:
    def test_prefers_object_id(self):
        profile = SsoProfile.from_userinfo({"oid": "oid-1", "sub": "sub-1"})
        assert profile.subject == "oid-1"

    def test_email_falls_back_to_preferred_username(self):
        profile = SsoProfile.from_userinfo({"sub": "s", "preferred_username": "JO@EXAMPLE.COM"})
        assert profile.email == "jo@example.com"

    def test_name_from_given_and_family(self):
        profile = SsoProfile.from_userinfo({"sub": "s", "given_name": "Jo", "family_name": "Site"})
        assert profile.full_name == "Jo Site"

    def test_missing_subject(self):
        with pytest.raises(SsoError):
            SsoProfile.from_userinfo({"email": "jo@example.com"})
