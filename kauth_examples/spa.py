"""
K-Auth demo: client-side (single-page app) flow
-----------------------------------------------
The same PKCE flow with no backend. The client keeps the verifier and the
tokens in its own session storage and calls the K-Auth token endpoint
directly. There is no ``state`` parameter in this variant.

``SpaApp.init()`` does what the page does on every load:
  1) ?error=...  -> error screen with a retry button
  2) ?code=...   -> exchange the code, store tokens, strip ?code from the URL
  3) tokens in session storage -> dashboard
  4) otherwise   -> landing screen with the login button

Run ``python -m kauth_examples.spa`` for an interactive session where the
terminal plays the browser: it opens the K-Auth login screen and asks for the
URL K-Auth redirected to.
"""
from __future__ import annotations
import json
import logging
import webbrowser
from dataclasses import dataclass, field
from urllib.parse import parse_qs, urlsplit, urlunsplit

import requests

from . import pages
from .config import ProviderSettings, spa_provider_settings
from .logs import configure_logging, log_step, token_keys
from .outcome import ErrorKind, Failure
from .pkce import generate_pkce
from .provider import KAuthClient

logger = logging.getLogger(__name__)

VERIFIER_KEY = "pkce_verifier"
TOKENS_KEY = "kauth_tokens"


class SessionStorage:
    """``window.sessionStorage``: string values, gone when the tab closes."""

    def __init__(self):
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._items


class BrowserLocation:
    """The address bar plus ``history.replaceState``."""

    def __init__(self, href: str):
        self.href = href
        self.history: list[str] = [href]

    @property
    def pathname(self) -> str:
        return urlsplit(self.href).path or "/"

    def param(self, name: str) -> str | None:
        values = parse_qs(urlsplit(self.href).query).get(name)
        return values[0] if values else None

    def assign(self, url: str) -> None:
        self.href = url
        self.history.append(url)

    def replace_state(self, path: str) -> None:
        """Rewrite the current entry without navigating."""
        parts = urlsplit(self.href)
        self.href = urlunsplit((parts.scheme, parts.netloc, path, "", ""))
        self.history[-1] = self.href


class SpaSession:
    def __init__(self, storage: SessionStorage):
        self.storage = storage

    @property
    def code_verifier(self) -> str | None:
        return self.storage.get_item(VERIFIER_KEY)

    @property
    def tokens(self) -> dict | None:
        raw = self.storage.get_item(TOKENS_KEY)
        if raw is None:
            return None
        try:
            tokens = json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable %s entry", TOKENS_KEY)
            self.storage.remove_item(TOKENS_KEY)
            return None
        return tokens if isinstance(tokens, dict) else None

    def begin_login(self, code_verifier: str) -> None:
        self.storage.set_item(VERIFIER_KEY, code_verifier)

    def complete_login(self, tokens: dict) -> None:
        self.storage.set_item(TOKENS_KEY, json.dumps(tokens))
        self.storage.remove_item(VERIFIER_KEY)

    def clear(self) -> None:
        self.storage.remove_item(TOKENS_KEY)


@dataclass
class Screen:
    title: str
    html: str
    actions: tuple[str, ...] = ()
    message: str | None = None
    tokens: dict | None = None
    failure: Failure | None = field(default=None, repr=False)


class SpaApp:
    def __init__(self, settings: ProviderSettings, storage: SessionStorage, location: BrowserLocation,
                 http: requests.Session | None = None):
        self.client = KAuthClient(settings, http=http)
        self.auth = SpaSession(storage)
        self.location = location

    def init(self) -> Screen:
        error = self.location.param("error")
        if error:
            return Screen(
                title="Login error",
                html=pages.error_page(f"Error: {error}", back_href=None),
                actions=("login",),
                message=error,
                failure=Failure(ErrorKind.PROVIDER_REJECTED, error),
            )

        code = self.location.param("code")
        if code:
            return self.exchange_code_for_token(code)

        tokens = self.auth.tokens
        if tokens:
            return self.dashboard(tokens)

        return Screen(
            title="K-Auth Demo (SPA)",
            html=pages.login_page(
                heading="K-Auth Demo (SPA)",
                blurb="100% client-side login, no backend.",
                login_href="#login",
            ),
            actions=("login",),
        )

    def login(self) -> str:
        """Keep the verifier, then send the browser to the K-Auth login screen."""
        pkce = generate_pkce()
        self.auth.begin_login(pkce.verifier)
        url = self.client.authorization_url(pkce.challenge)
        log_step(logger, "Redirecting to K-Auth", {"url": url})
        self.location.assign(url)
        return url

    def exchange_code_for_token(self, code: str) -> Screen:
        code_verifier = self.auth.code_verifier
        if not code_verifier:
            failure = Failure(ErrorKind.MISSING_VERIFIER, "Code verifier not found. The flow was interrupted.")
            return self._error_screen("Error", failure)

        exchanged = self.client.exchange_code(code, code_verifier)
        if not exchanged.ok:
            return self._error_screen("Error fetching token", exchanged)

        self.auth.complete_login(exchanged.value)
        # Drop ?code=... from the address bar, no reload
        self.location.replace_state(self.location.pathname)
        log_step(logger, "Tokens stored in session storage", {"keys": token_keys(exchanged.value)})
        return self.dashboard(exchanged.value)

    def dashboard(self, tokens: dict) -> Screen:
        return Screen(
            title="Signed in",
            html=pages.spa_dashboard_page(tokens),
            actions=("logout",),
            tokens=tokens,
        )

    def logout(self) -> str:
        """Clear local tokens, then let K-Auth clear its SSO cookies."""
        self.auth.clear()
        url = self.client.logout_url()
        self.location.assign(url)
        return url

    def _error_screen(self, heading: str, failure: Failure) -> Screen:
        message = None if failure.kind is ErrorKind.PROVIDER_HTTP_ERROR else failure.message
        return Screen(
            title=heading,
            html=pages.error_page(heading, message=message, detail=failure.detail, back_href=None),
            message=failure.message,
            failure=failure,
        )


# ----------------------
# Terminal driver
# ----------------------
def _show(screen: Screen) -> None:
    print(f"\n== {screen.title} ==")
    if screen.message:
        print(screen.message)
    if screen.failure is not None and screen.failure.detail is not None:
        print(pages.pretty_json(screen.failure.detail))
    if screen.tokens:
        print(pages.pretty_json(screen.tokens))


def main() -> None:
    configure_logging()
    settings = spa_provider_settings()
    location = BrowserLocation(settings.base_uri)
    app = SpaApp(settings, SessionStorage(), location)

    try:
        while True:
            screen = app.init()
            _show(screen)
            if "login" in screen.actions:
                input("\nPress Enter to sign in with K-Auth (Ctrl+C to quit) ")
                url = app.login()
                webbrowser.open(url)
                print(f"\nIf the browser did not open, visit:\n{url}\n")
                location.assign(input("Paste the URL K-Auth redirected you to: ").strip())
            elif "logout" in screen.actions:
                input("\nPress Enter to sign out (Ctrl+C to quit) ")
                webbrowser.open(app.logout())
                location.assign(settings.base_uri)
            else:
                break
    except (KeyboardInterrupt, EOFError):
        print()


if __name__ == "__main__":
    main()
