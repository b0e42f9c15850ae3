from datetime import datetime, timedelta, timezone

from flask import session

from kauth_examples.b2b_server import create_app
from kauth_examples.config import ServerSettings
from kauth_examples.session_store import AuthSession, StoredSession

from conftest import TOKEN_URL, token_body


def _rows(app):
    db = app.session_interface.db()
    try:
        return db.query(StoredSession).all()
    finally:
        app.session_interface.db.remove()


def test_cookie_only_carries_session_id(app, client, kauth):
    resp = client.get("/login")
    cookie = resp.headers["Set-Cookie"]
    assert cookie.startswith("kauth_sid=")
    assert "HttpOnly" in cookie
    assert "SameSite=Lax" in cookie

    (row,) = _rows(app)
    sid = cookie.split(";", 1)[0].split("=", 1)[1]
    assert row.sid == sid
    assert "code_verifier" in row.data
    assert "code_verifier" not in cookie


def test_secure_cookie_flag_follows_settings(provider_settings, kauth):
    app = create_app(ServerSettings(provider=provider_settings, database_url="sqlite://", trust_proxy_hops=0))
    resp = app.test_client().get("/login", base_url="https://localhost")
    assert "Secure" in resp.headers["Set-Cookie"]


def test_tokens_survive_between_requests(app, client, kauth):
    resp = client.get("/login")
    state = resp.headers["Location"].split("state=", 1)[1]
    kauth.reply(TOKEN_URL, 200, token_body())
    client.get("/callback", query_string={"code": "c", "state": state})

    (row,) = _rows(app)
    assert "accessToken" in row.data
    assert b"at1" in client.get("/").data


def test_browsing_pushes_expiry_forward(app, client):
    client.get("/login")
    db = app.session_interface.db()
    try:
        row = db.query(StoredSession).one()
        row.expires_at = datetime.now(timezone.utc) + timedelta(minutes=1)
        db.commit()
    finally:
        app.session_interface.db.remove()

    resp = client.get("/")

    assert "kauth_sid=" in resp.headers["Set-Cookie"]
    (row,) = _rows(app)
    expires_at = row.expires_at.replace(tzinfo=timezone.utc)
    assert expires_at > datetime.now(timezone.utc) + timedelta(minutes=30)


def test_expired_session_is_purged(app, client):
    client.get("/login")
    db = app.session_interface.db()
    try:
        row = db.query(StoredSession).one()
        row.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        db.commit()
    finally:
        app.session_interface.db.remove()

    with client.session_transaction() as sess:
        assert dict(sess) == {}
    assert _rows(app) == []


def test_unknown_session_id_starts_fresh(app, client):
    client.set_cookie("kauth_sid", "does-not-exist")
    with client.session_transaction() as sess:
        assert dict(sess) == {}


def test_untouched_session_is_not_stored(app, client):
    client.get("/")
    assert _rows(app) == []


def test_auth_session_lifecycle():
    store = {}
    auth = AuthSession(store)
    assert auth.tokens is None and auth.refresh_token is None

    auth.begin_login("v1", "S")
    assert (auth.code_verifier, auth.state) == ("v1", "S")

    auth.complete_login({"accessToken": "at1", "refreshToken": "rt1"})
    assert store == {"tokens": {"accessToken": "at1", "refreshToken": "rt1"}}
    assert auth.refresh_token == "rt1"

    auth.replace_tokens({"accessToken": "at2"})
    assert auth.refresh_token is None

    auth.clear()
    assert store == {}


def test_auth_session_over_flask_session(app):
    with app.test_request_context("/"):
        auth = AuthSession(session)
        auth.begin_login("v1", "S")
        assert session.modified
        assert session["oauth_state"] == "S"
