import json
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from kauth_examples.outcome import ErrorKind
from kauth_examples.pkce import verify_code_challenge
from kauth_examples.spa import TOKENS_KEY, VERIFIER_KEY, BrowserLocation, SessionStorage, SpaApp

from conftest import AUTHORIZE_URL, LOGOUT_URL, TOKEN_URL, token_body

HOME = "https://app.test/"


@pytest.fixture
def storage():
    return SessionStorage()


@pytest.fixture
def location():
    return BrowserLocation(HOME)


@pytest.fixture
def spa(provider_settings, storage, location, kauth):
    return SpaApp(provider_settings, storage, location)


def test_landing_screen_offers_login(spa, kauth):
    screen = spa.init()
    assert screen.actions == ("login",)
    assert "K-Auth Demo (SPA)" in screen.html
    assert kauth.calls == []


def test_login_stores_verifier_and_navigates_without_state(spa, storage, location):
    url = spa.login()
    assert location.href == url
    assert url.startswith(AUTHORIZE_URL + "?")
    params = parse_qs(urlsplit(url).query)
    assert "state" not in params
    assert params["code_challenge_method"] == ["S256"]
    assert verify_code_challenge(storage.get_item(VERIFIER_KEY), params["code_challenge"][0])


def test_code_exchange_stores_tokens_and_strips_code(spa, storage, location, kauth):
    spa.login()
    verifier = storage.get_item(VERIFIER_KEY)
    location.assign("https://app.test/callback?code=abc123")
    kauth.reply(TOKEN_URL, 200, token_body("at1", "rt1"))

    screen = spa.init()

    assert screen.actions == ("logout",)
    assert screen.tokens == {"accessToken": "at1", "refreshToken": "rt1"}
    assert json.loads(storage.get_item(TOKENS_KEY)) == screen.tokens
    assert VERIFIER_KEY not in storage
    assert location.href == "https://app.test/callback"
    assert location.history[-1] == "https://app.test/callback"
    (call,) = kauth.calls
    assert call.json["codeVerifier"] == verifier
    assert call.json["clientId"] == "k-auth"


def test_stored_tokens_show_dashboard_without_network(spa, storage, kauth):
    storage.set_item(TOKENS_KEY, json.dumps({"accessToken": "at1"}))
    screen = spa.init()
    assert screen.tokens == {"accessToken": "at1"}
    assert "at1" in screen.html
    assert kauth.calls == []


def test_unreadable_tokens_are_dropped(spa, storage):
    storage.set_item(TOKENS_KEY, "{not json")
    assert spa.init().actions == ("login",)
    assert TOKENS_KEY not in storage


def test_error_param_offers_retry(spa, location, kauth):
    location.assign("https://app.test/callback?error=access_denied")
    screen = spa.init()
    assert screen.actions == ("login",)
    assert screen.failure.kind is ErrorKind.PROVIDER_REJECTED
    assert "access_denied" in screen.html
    assert kauth.calls == []


def test_missing_verifier_interrupts_flow(spa, location, kauth):
    location.assign("https://app.test/callback?code=abc123")
    screen = spa.init()
    assert screen.failure.kind is ErrorKind.MISSING_VERIFIER
    assert screen.actions == ()
    assert kauth.calls == []


def test_token_error_keeps_storage_untouched(spa, storage, location, kauth):
    spa.login()
    location.assign("https://app.test/callback?code=abc123")
    kauth.reply(TOKEN_URL, 400, {"status": "error", "message": "invalid_grant"})

    screen = spa.init()

    assert screen.failure.kind is ErrorKind.PROVIDER_HTTP_ERROR
    assert "invalid_grant" in screen.html
    assert TOKENS_KEY not in storage
    assert VERIFIER_KEY in storage
    assert "code=abc123" in location.href


def test_transport_error_screen(spa, storage, location, kauth):
    spa.login()
    location.assign("https://app.test/callback?code=abc123")
    kauth.fail(TOKEN_URL, requests.ConnectionError("offline"))
    screen = spa.init()
    assert screen.failure.kind is ErrorKind.TRANSPORT_ERROR
    assert "offline" in screen.html
    assert TOKENS_KEY not in storage


def test_logout_clears_tokens_and_goes_to_provider(spa, storage, location, kauth):
    storage.set_item(TOKENS_KEY, json.dumps({"accessToken": "at1"}))
    url = spa.logout()
    assert TOKENS_KEY not in storage
    assert url.startswith(LOGOUT_URL + "?")
    assert parse_qs(urlsplit(url).query) == {"redirect_uri": ["https://app.test/"]}
    assert location.href == url
    assert kauth.calls == []


def test_browser_location_replace_state():
    location = BrowserLocation("https://app.test/callback?code=x&foo=1#frag")
    assert location.param("code") == "x"
    assert location.pathname == "/callback"
    location.replace_state(location.pathname)
    assert location.href == "https://app.test/callback"
    assert location.history == ["https://app.test/callback"]
    assert location.param("code") is None
