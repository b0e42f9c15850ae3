"""
Server-side sessions for the backend-to-backend example.

Flask's default session is a signed cookie, which would hand the tokens to
the browser. Here the cookie only carries a random session id and the data
lives in a SQLAlchemy table (SQLite by default; any SQLAlchemy URL works).
"""
from __future__ import annotations
from datetime import datetime, timedelta, timezone
import json
import secrets

from flask.sessions import SessionInterface, SessionMixin
from werkzeug.datastructures import CallbackDict

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session, declarative_base
from sqlalchemy.pool import StaticPool

Base = declarative_base()


class StoredSession(Base):
    __tablename__ = 'kauth_session'
    sid = Column(String(64), primary_key=True)
    data = Column(Text, nullable=False)  # JSON
    expires_at = Column(DateTime, nullable=False)

    def is_expired(self) -> bool:
        expires_at = self.expires_at
        # SQLite hands back naive datetimes
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) >= expires_at


def make_session_factory(database_url: str):
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every checkout sees an empty database
        engine = create_engine(database_url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    else:
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False} if database_url.startswith("sqlite") else {},
        )
    Base.metadata.create_all(engine, checkfirst=True)
    return scoped_session(sessionmaker(bind=engine))


class ServerSideSession(CallbackDict, SessionMixin):
    def __init__(self, initial=None, sid: str | None = None, new: bool = False):
        def on_update(self):
            self.modified = True

        super().__init__(initial, on_update)
        self.sid = sid or secrets.token_urlsafe(32)
        self.new = new
        self.modified = False


class SQLAlchemySessionInterface(SessionInterface):
    def __init__(self, session_factory, lifetime: timedelta):
        self.db = session_factory
        self.lifetime = lifetime

    def open_session(self, app, request) -> ServerSideSession:
        sid = request.cookies.get(self.get_cookie_name(app))
        if not sid:
            return ServerSideSession(new=True)
        db = self.db()
        try:
            row = db.get(StoredSession, sid)
            if row is None:
                return ServerSideSession(new=True)
            if row.is_expired():
                db.delete(row)
                db.commit()
                return ServerSideSession(new=True)
            return ServerSideSession(json.loads(row.data), sid=sid)
        finally:
            self.db.remove()

    def save_session(self, app, session: ServerSideSession, response) -> None:
        name = self.get_cookie_name(app)
        domain = self.get_cookie_domain(app)
        path = self.get_cookie_path(app)

        # Emptied session (logout): destroy the row and the cookie
        if not session:
            if session.modified:
                self.destroy(session.sid)
                response.delete_cookie(name, domain=domain, path=path)
            return

        # Sliding expiry: any request on a live session pushes expires_at forward
        if not session.modified and not app.config["SESSION_REFRESH_EACH_REQUEST"]:
            return

        expires_at = datetime.now(timezone.utc) + self.lifetime
        db = self.db()
        try:
            row = db.get(StoredSession, session.sid)
            if row is None:
                row = StoredSession(sid=session.sid)
            row.data = json.dumps(dict(session))
            row.expires_at = expires_at
            db.add(row)
            db.commit()
        finally:
            self.db.remove()

        response.set_cookie(
            name,
            session.sid,
            expires=expires_at,
            httponly=self.get_cookie_httponly(app),
            domain=domain,
            path=path,
            secure=self.get_cookie_secure(app),
            samesite=self.get_cookie_samesite(app),
        )

    def destroy(self, sid: str) -> None:
        db = self.db()
        try:
            row = db.get(StoredSession, sid)
            if row is not None:
                db.delete(row)
                db.commit()
        finally:
            self.db.remove()


class AuthSession:
    """
    The per-user login state, over whatever mapping backs the session.

    Fields: ``code_verifier`` and ``state`` live only between /login and
    /callback; ``tokens`` is the provider's token set once authenticated.
    """

    def __init__(self, store):
        self.store = store

    @property
    def code_verifier(self) -> str | None:
        return self.store.get("code_verifier")

    @property
    def state(self) -> str | None:
        return self.store.get("oauth_state")

    @property
    def tokens(self) -> dict | None:
        return self.store.get("tokens")

    @property
    def refresh_token(self) -> str | None:
        return (self.tokens or {}).get("refreshToken")

    def begin_login(self, code_verifier: str, state: str) -> None:
        self.store["code_verifier"] = code_verifier
        self.store["oauth_state"] = state

    def complete_login(self, tokens: dict) -> None:
        self.store["tokens"] = tokens
        # One-time use
        self.store.pop("code_verifier", None)
        self.store.pop("oauth_state", None)

    def replace_tokens(self, tokens: dict) -> None:
        self.store["tokens"] = tokens

    def clear(self) -> None:
        self.store.clear()
