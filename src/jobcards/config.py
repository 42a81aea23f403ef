"""Site Jobcards application configuration via environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


MICROSOFT_LOGIN_BASE = "https://login.microsoftonline.com"


class Settings(BaseSettings):
    """Global application settings loaded from environment / .env file."""

    # General
    jobcards_env: str = "development"
    jobcards_debug: bool = True
    jobcards_secret_key: str = "changeme-generate-a-real-secret"

    # Sessions
    session_days: int = 14
    session_cookie_name: str = "jobcards_session"
    session_purge_interval_minutes: int = 60

    # Sign-in: the OAuth state is also kept in this cookie, and the portal
    # gets a one-time code that expires after this many seconds.
    oauth_state_cookie_name: str = "jobcards_oauth_state"
    login_handoff_seconds: int = 120

    # In development, requests without a session act as this user (if set).
    dev_user_email: str = ""

    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "jobcards"
    postgres_password: str = "jobcards_dev_password"
    postgres_db: str = "jobcards"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_echo: bool = False

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def database_url_sync(self) -> str:
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Azure AD single sign-on
    azure_tenant_id: str = "common"
    azure_client_id: str = ""
    azure_client_secret: str = ""
    azure_redirect_uri: str = "http://localhost:8000/api/auth/callback"
    azure_scopes: str = "openid email profile"
    # "select_account" always shows the account chooser, "login" forces credentials.
    azure_prompt: str = "select_account"

    @property
    def azure_authorize_url(self) -> str:
        return f"{MICROSOFT_LOGIN_BASE}/{self.azure_tenant_id}/oauth2/v2.0/authorize"

    @property
    def azure_token_url(self) -> str:
        return f"{MICROSOFT_LOGIN_BASE}/{self.azure_tenant_id}/oauth2/v2.0/token"

    azure_userinfo_url: str = "https://graph.microsoft.com/oidc/userinfo"

    # Streamlit portal (sign-in redirects and QR links point here)
    ui_base_url: str = "http://localhost:8501"

    @property
    def is_development(self) -> bool:
        return self.jobcards_env == "development"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
