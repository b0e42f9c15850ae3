"""
Settings for the K-Auth examples.

Every value can be overridden through the environment; the defaults point at
a local K-Auth development install.

CLIENT_ID and REDIRECT_URI must match EXACTLY what is registered for the
client in the K-Auth panel.
"""
from __future__ import annotations
import os
from dataclasses import dataclass


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes", "on")


# ----------------------
# Backend-to-backend server
# ----------------------
PORT = int(os.environ.get("PORT", "3015"))
CLIENT_ID = os.environ.get("KAUTH_CLIENT_ID", "k-auth")
REDIRECT_URI = os.environ.get("KAUTH_REDIRECT_URI", "https://test.dev.local/callback")
# Login screen, opened by the user's browser
AUTHORIZE_URL = os.environ.get("KAUTH_AUTHORIZE_URL", "https://kauth.dev.local/auth/authorize")
# API endpoints, only ever called server to server
TOKEN_URL = os.environ.get("KAUTH_TOKEN_URL", "https://api-kauth.dev.local/auth/token")
REFRESH_URL = os.environ.get("KAUTH_REFRESH_URL", "https://api-kauth.dev.local/auth/refresh")
REVOKE_URL = os.environ.get("KAUTH_REVOKE_URL", "https://api-kauth.dev.local/auth/logout")
# Clears the provider's SSO cookies, opened by the user's browser
LOGOUT_URL = os.environ.get("KAUTH_LOGOUT_URL", "https://kauth.dev.local/logout")

# K-Auth currently reads the refresh token from a Cookie header instead of the body
REFRESH_COOKIE_WORKAROUND = _env_flag("KAUTH_REFRESH_COOKIE_WORKAROUND", "1")

SESSION_DATABASE_URL = os.environ.get("SESSION_DATABASE_URL", "sqlite:///kauth_sessions.db")
SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE", "1")
# Idle lifetime: every request on a signed-in session restarts the clock
SESSION_LIFETIME_MINUTES = int(os.environ.get("SESSION_LIFETIME_MINUTES", "60"))
TRUST_PROXY_HOPS = int(os.environ.get("TRUST_PROXY_HOPS", "1"))

# ----------------------
# Single-page app
# ----------------------
SPA_CLIENT_ID = os.environ.get("SPA_CLIENT_ID", "spa-test")
SPA_REDIRECT_URI = os.environ.get("SPA_REDIRECT_URI", "https://localhost:3015/callback")
SPA_AUTHORIZE_URL = os.environ.get("SPA_AUTHORIZE_URL", "https://kauth.ripbr.com.br/auth/authorize")
SPA_TOKEN_URL = os.environ.get("SPA_TOKEN_URL", "https://api-kauth.ripbr.com.br/auth/token")
SPA_LOGOUT_URL = os.environ.get("SPA_LOGOUT_URL", "https://kauth.ripbr.com.br/logout")

# Provider calls are one-shot; no retries
HTTP_TIMEOUT = 10


@dataclass(frozen=True)
class ProviderSettings:
    client_id: str
    redirect_uri: str
    authorize_url: str
    token_url: str
    logout_url: str
    refresh_url: str | None = None
    revoke_url: str | None = None
    refresh_cookie_workaround: bool = True

    @property
    def base_uri(self) -> str:
        """Where the provider sends the browser back after logout."""
        if self.redirect_uri.endswith("/callback"):
            return self.redirect_uri[: -len("callback")]
        return self.redirect_uri


@dataclass(frozen=True)
class ServerSettings:
    provider: ProviderSettings
    port: int = 3015
    database_url: str = "sqlite:///kauth_sessions.db"
    cookie_secure: bool = True
    session_lifetime_minutes: int = 60
    trust_proxy_hops: int = 1


def b2b_provider_settings() -> ProviderSettings:
    return ProviderSettings(
        client_id=CLIENT_ID,
        redirect_uri=REDIRECT_URI,
        authorize_url=AUTHORIZE_URL,
        token_url=TOKEN_URL,
        logout_url=LOGOUT_URL,
        refresh_url=REFRESH_URL,
        revoke_url=REVOKE_URL,
        refresh_cookie_workaround=REFRESH_COOKIE_WORKAROUND,
    )


def server_settings() -> ServerSettings:
    return ServerSettings(
        provider=b2b_provider_settings(),
        port=PORT,
        database_url=SESSION_DATABASE_URL,
        cookie_secure=SESSION_COOKIE_SECURE,
        session_lifetime_minutes=SESSION_LIFETIME_MINUTES,
        trust_proxy_hops=TRUST_PROXY_HOPS,
    )


def spa_provider_settings() -> ProviderSettings:
    return ProviderSettings(
        client_id=SPA_CLIENT_ID,
        redirect_uri=SPA_REDIRECT_URI,
        authorize_url=SPA_AUTHORIZE_URL,
        token_url=SPA_TOKEN_URL,
        logout_url=SPA_LOGOUT_URL,
    )
