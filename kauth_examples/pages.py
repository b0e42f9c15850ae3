"""
HTML for both examples.

Templates are kept inline and rendered through an autoescaping Jinja
environment, so they also work outside a Flask request (the SPA flow).
``page()`` wraps a body in the shared card layout.
"""
from __future__ import annotations
import json
from typing import Any

from jinja2 import Environment
from markupsafe import Markup

_jinja = Environment(autoescape=True)

LAYOUT_TEMPLATE = """
<!doctype html>
<html><head><meta charset="utf-8"><title>{{ title }} - K-Auth Demo</title>
<style>
  * { box-sizing: border-box; }
  body { font-family: 'Segoe UI', system-ui, sans-serif; background: #f0f2f5; margin: 0; padding: 40px 20px; color: #1a1a2e; }
  .card { max-width: 720px; margin: 0 auto; background: #fff; border-radius: 12px; padding: 32px; box-shadow: 0 2px 12px rgba(0,0,0,0.08); }
  h1 { margin-top: 0; }
  pre { background: #f6f8fa; padding: 16px; border-radius: 8px; white-space: pre-wrap; word-wrap: break-word; font-size: 13px; border: 1px solid #e1e4e8; overflow-x: auto; }
  .btn { display: inline-block; padding: 10px 20px; border-radius: 6px; text-decoration: none; color: #fff; font-weight: 500; margin-right: 10px; margin-top: 8px; }
  .btn:hover { opacity: 0.85; }
  .btn-primary { background: #0056b3; }
  .btn-success { background: #28a745; }
  .btn-danger { background: #dc3545; }
  .btn-login { background: #0056b3; font-size: 18px; padding: 14px 32px; }
  .tag { display: inline-block; background: #e6f7ff; color: #0056b3; padding: 3px 10px; border-radius: 4px; font-size: 12px; font-weight: 600; margin-bottom: 12px; }
  .center { text-align: center; }
</style></head>
<body><div class="card">{{ body }}</div></body></html>
"""

HOME_TEMPLATE = """
<span class="tag">AUTHENTICATED</span>
<h1>Welcome!</h1>
<p>Signed in through K-Auth. These are the tokens held in the server session:</p>
<pre>{{ tokens_json }}</pre>
<div>
  <a href="/refresh" class="btn btn-primary">Test refresh token</a>
  <a href="/logout" class="btn btn-danger">Sign out</a>
</div>
"""

LOGIN_TEMPLATE = """
<div class="center">
  <h1>{{ heading }}</h1>
  <p>{{ blurb }}</p>
  <a href="{{ login_href }}" class="btn btn-login">Sign in with K-Auth &rarr;</a>
</div>
"""

REFRESH_TEMPLATE = """
<span class="tag">REFRESH OK</span>
<h1>Token refreshed!</h1>
<p>Note the accessToken string has changed:</p>
<pre>{{ tokens_json }}</pre>
<div><a href="/" class="btn btn-success">Back to home</a></div>
"""

ERROR_TEMPLATE = """
<h1>{{ heading }}</h1>
{% if message %}<p>{{ message }}</p>{% endif %}
{% if detail is not none %}<pre>{{ detail }}</pre>{% endif %}
{% if back_href %}<a href="{{ back_href }}" class="btn btn-primary">{{ back_label }}</a>{% endif %}
"""

SPA_DASHBOARD_TEMPLATE = """
<span class="tag">AUTHENTICATED</span>
<h2>Signed in!</h2>
<p>This client talked to K-Auth directly, no backend involved.</p>
<pre>{{ tokens_json }}</pre>
<a href="#logout" class="btn btn-danger">Sign out (clear session)</a>
"""

def _render(source: str, **context: Any) -> str:
    return _jinja.from_string(source).render(**context)


def pretty_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def page(title: str, body: str) -> str:
    """``body`` must come from one of the fragment renderers below."""
    return _render(LAYOUT_TEMPLATE, title=title, body=Markup(body))


def home_page(tokens: dict) -> str:
    return page("Home", _render(HOME_TEMPLATE, tokens_json=pretty_json(tokens)))


def login_page(heading: str = "K-Auth Demo",
               blurb: str = "Example application for the OAuth + PKCE flow.",
               login_href: str = "/login") -> str:
    return page("Login", _render(LOGIN_TEMPLATE, heading=heading, blurb=blurb, login_href=login_href))


def refresh_page(tokens: dict) -> str:
    return page("Refresh", _render(REFRESH_TEMPLATE, tokens_json=pretty_json(tokens)))


def error_page(heading: str, message: str | None = None, detail: Any = None,
               back_href: str | None = "/", back_label: str = "Back") -> str:
    if detail is not None and not isinstance(detail, str):
        detail = pretty_json(detail)
    return page("Error", _render(
        ERROR_TEMPLATE,
        heading=heading,
        message=message,
        detail=detail,
        back_href=back_href,
        back_label=back_label,
    ))


def spa_dashboard_page(tokens: dict) -> str:
    return page("Dashboard", _render(SPA_DASHBOARD_TEMPLATE, tokens_json=pretty_json(tokens)))
