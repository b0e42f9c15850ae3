"""
K-Auth demo: backend-to-backend flow
------------------------------------
Flask app that signs users in through K-Auth with OAuth 2.0 + PKCE and keeps
the tokens in a server-side session. The browser never sees a token.

Flow:
  1) GET /login      generate PKCE + state, redirect to the K-Auth login screen
  2) K-Auth authenticates the user and redirects back to /callback
  3) GET /callback   check state, exchange code + verifier for tokens (server to server)
  4) GET /refresh    trade the refresh token for a new token set
  5) GET /logout     revoke, destroy the local session, send the browser to K-Auth logout

Run:
  pip install -e .
  python -m kauth_examples.b2b_server   # listens on PORT (3015)
"""
from __future__ import annotations
from datetime import timedelta
import logging
import secrets

from flask import Flask, Response, redirect, request, session, url_for
from werkzeug.middleware.proxy_fix import ProxyFix

from . import pages
from .config import ServerSettings, server_settings
from .logs import configure_logging, log_step, truncate
from .outcome import ErrorKind, Failure, Outcome, Success
from .pkce import generate_pkce, generate_state
from .provider import KAuthClient
from .session_store import AuthSession, SQLAlchemySessionInterface, make_session_factory

logger = logging.getLogger(__name__)


# ----------------------
# Route pipelines
# ----------------------
def start_login(auth: AuthSession, client: KAuthClient) -> str:
    """Store a fresh verifier + state and return the K-Auth authorization URL."""
    pkce = generate_pkce()
    state = generate_state()
    auth.begin_login(pkce.verifier, state)
    log_step(logger, "PKCE generated", {"codeChallenge": pkce.challenge, "state": state})
    url = client.authorization_url(pkce.challenge, state=state)
    log_step(logger, "Redirecting to K-Auth", {"url": url})
    return url


def check_callback(auth: AuthSession, args) -> Outcome[tuple[str, str]]:
    """Guard step: provider error, state, code and verifier, before any network call."""
    error = args.get("error")
    if error:
        desc = args.get("error_description")
        return Failure(ErrorKind.PROVIDER_REJECTED, f"{error}: {desc}" if desc else error)

    state = args.get("state")
    expected_state = auth.state
    if not state or not expected_state or not secrets.compare_digest(state.encode(), expected_state.encode()):
        return Failure(
            ErrorKind.STATE_MISMATCH,
            "Possible CSRF attack. The state received does not match the one in the session.",
        )

    code = args.get("code")
    if not code:
        return Failure(ErrorKind.MISSING_CODE, "K-Auth did not send an authorization code.")

    code_verifier = auth.code_verifier
    if not code_verifier:
        return Failure(ErrorKind.MISSING_VERIFIER, "Code verifier not found. The login flow was interrupted.")
    return Success((code, code_verifier))


def handle_callback(auth: AuthSession, client: KAuthClient, args) -> Outcome[dict]:
    log_step(logger, "Callback received", {
        "code": truncate(args.get("code"), 12),
        "state": args.get("state"),
        "error": args.get("error"),
    })
    checked = check_callback(auth, args)
    if not checked.ok:
        return checked
    code, code_verifier = checked.value

    exchanged = client.exchange_code(code, code_verifier)
    if not exchanged.ok:
        return exchanged

    auth.complete_login(exchanged.value)
    return exchanged


def handle_refresh(auth: AuthSession, client: KAuthClient) -> Outcome[dict]:
    refresh_token = auth.refresh_token
    if not refresh_token:
        return Failure(
            ErrorKind.MISSING_REFRESH_TOKEN,
            "No refresh token found in the session. Sign in first.",
        )
    refreshed = client.refresh(refresh_token)
    if not refreshed.ok:
        return refreshed
    auth.replace_tokens(refreshed.value)
    return refreshed


def handle_logout(auth: AuthSession, client: KAuthClient) -> str:
    """Revoke (best effort), destroy the local session, return the K-Auth logout URL."""
    refresh_token = auth.refresh_token
    # Local logout must always go through, whatever the revoke does
    try:
        if refresh_token:
            revoked = client.revoke(refresh_token)
            if not revoked.ok:
                log_step(logger, "WARNING: could not revoke token at K-Auth",
                         {"kind": revoked.kind.value, "status": revoked.status, "error": revoked.message},
                         level=logging.WARNING)
    except Exception:
        logger.warning("[K-Auth] Revoke call crashed, clearing the session anyway", exc_info=True)
    finally:
        auth.clear()
    return client.logout_url()


# ----------------------
# Rendering
# ----------------------
_HEADINGS = {
    ErrorKind.PROVIDER_REJECTED: "Login error",
    ErrorKind.STATE_MISMATCH: "Invalid state",
    ErrorKind.MISSING_CODE: "Missing authorization code",
    ErrorKind.MISSING_VERIFIER: "Login interrupted",
    ErrorKind.TRANSPORT_ERROR: "Internal error",
    ErrorKind.MISSING_REFRESH_TOKEN: "No refresh token",
}


def failure_response(failure: Failure, provider_heading: str) -> Response:
    heading = _HEADINGS.get(failure.kind, provider_heading)
    message = None if failure.kind is ErrorKind.PROVIDER_HTTP_ERROR else failure.message
    body = pages.error_page(heading, message=message, detail=failure.detail)
    return Response(body, status=failure.status, mimetype="text/html")


# ----------------------
# App
# ----------------------
def create_app(settings: ServerSettings | None = None, http=None) -> Flask:
    settings = settings or server_settings()

    app = Flask(__name__)
    app.config.update(
        SESSION_COOKIE_NAME="kauth_sid",
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        # HTTPS only, like the registered redirect URI
        SESSION_COOKIE_SECURE=settings.cookie_secure,
        KAUTH_SETTINGS=settings,
    )
    app.session_interface = SQLAlchemySessionInterface(
        make_session_factory(settings.database_url),
        lifetime=timedelta(minutes=settings.session_lifetime_minutes),
    )
    if settings.trust_proxy_hops:
        # Behind nginx/traefik: honour X-Forwarded-* from the proxy
        hops = settings.trust_proxy_hops
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops)

    client = KAuthClient(settings.provider, http=http)
    app.extensions["kauth_client"] = client

    @app.route("/")
    def home():
        auth = AuthSession(session)
        if auth.tokens:
            return pages.home_page(auth.tokens)
        return pages.login_page()

    @app.route("/login")
    def login():
        return redirect(start_login(AuthSession(session), client))

    @app.route("/callback")
    def callback():
        outcome = handle_callback(AuthSession(session), client, request.args)
        if not outcome.ok:
            return failure_response(outcome, "Token exchange error")
        return redirect(url_for("home"))

    @app.route("/refresh")
    def refresh():
        outcome = handle_refresh(AuthSession(session), client)
        if not outcome.ok:
            return failure_response(outcome, "Refresh error")
        return pages.refresh_page(outcome.value)

    @app.route("/logout")
    def logout():
        return redirect(handle_logout(AuthSession(session), client))

    return app


if __name__ == "__main__":
    configure_logging()
    settings = server_settings()
    app = create_app(settings)
    logger.info("[K-Auth] Server running on http://localhost:%s", settings.port)
    app.run(host="localhost", port=settings.port)
