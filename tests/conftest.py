from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Any

import pytest
import responses

from kauth_examples.b2b_server import create_app
from kauth_examples.config import ProviderSettings, ServerSettings

AUTHORIZE_URL = "https://kauth.test/auth/authorize"
TOKEN_URL = "https://api-kauth.test/auth/token"
REFRESH_URL = "https://api-kauth.test/auth/refresh"
REVOKE_URL = "https://api-kauth.test/auth/logout"
LOGOUT_URL = "https://kauth.test/logout"
REDIRECT_URI = "https://app.test/callback"


@dataclass
class Call:
    url: str
    json: Any
    headers: Any
    timeout: Any


class KAuthMock:
    """K-Auth API endpoints registered on the requests transport; one canned answer per URL."""

    def __init__(self, rsps: responses.RequestsMock):
        self.rsps = rsps

    def reply(self, url: str, status: int = 200, body: Any = None, text: str | None = None) -> None:
        if text is not None:
            self.rsps.upsert(responses.POST, url, body=text, status=status, content_type="text/plain")
        else:
            self.rsps.upsert(responses.POST, url, json=body if body is not None else {}, status=status)

    def fail(self, url: str, exc: Exception) -> None:
        self.rsps.upsert(responses.POST, url, body=exc)

    @property
    def calls(self) -> list[Call]:
        recorded = []
        for call in self.rsps.calls:
            request = call.request
            recorded.append(Call(
                url=request.url,
                json=json.loads(request.body) if request.body else None,
                headers=request.headers,
                timeout=request.req_kwargs.get("timeout"),
            ))
        return recorded

    def calls_to(self, url: str) -> list[Call]:
        return [c for c in self.calls if c.url == url]


def token_body(access: str = "at1", refresh: str = "rt1") -> dict:
    return {"status": "success", "data": {"accessToken": access, "refreshToken": refresh}}


@pytest.fixture
def provider_settings() -> ProviderSettings:
    return ProviderSettings(
        client_id="k-auth",
        redirect_uri=REDIRECT_URI,
        authorize_url=AUTHORIZE_URL,
        token_url=TOKEN_URL,
        logout_url=LOGOUT_URL,
        refresh_url=REFRESH_URL,
        revoke_url=REVOKE_URL,
    )


@pytest.fixture
def kauth():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield KAuthMock(rsps)


@pytest.fixture
def app(provider_settings, kauth):
    settings = ServerSettings(
        provider=provider_settings,
        database_url="sqlite://",
        cookie_secure=False,
        trust_proxy_hops=0,
    )
    app = create_app(settings)
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(app):
    return app.test_client()
