"""
K-Auth provider endpoints.

The browser-facing endpoints (authorize, logout) are only URL builders; the
API endpoints (token, refresh, revoke) are called with ``requests`` and
every call returns an ``Outcome`` instead of raising.

K-Auth wraps successful API responses as
``{"status": "success", "data": {"accessToken": ..., "refreshToken": ...}}``.
"""
from __future__ import annotations
import logging
from typing import Any
from urllib.parse import urlencode

import requests

from .config import HTTP_TIMEOUT, ProviderSettings
from .logs import log_step, token_keys, truncate
from .outcome import ErrorKind, Failure, Outcome, Success

logger = logging.getLogger(__name__)


def _response_body(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


class KAuthClient:
    def __init__(self, settings: ProviderSettings, http: requests.Session | None = None,
                 timeout: float = HTTP_TIMEOUT):
        self.settings = settings
        self.http = http or requests.Session()
        self.timeout = timeout

    # ----------------------
    # Browser redirects
    # ----------------------
    def authorization_url(self, code_challenge: str, state: str | None = None) -> str:
        params = {
            "client_id": self.settings.client_id,
            "redirect_uri": self.settings.redirect_uri,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        if state is not None:
            params["state"] = state
        return self.settings.authorize_url + "?" + urlencode(params)

    def logout_url(self) -> str:
        return self.settings.logout_url + "?" + urlencode({"redirect_uri": self.settings.base_uri})

    # ----------------------
    # Server/client to provider calls
    # ----------------------
    def exchange_code(self, code: str, code_verifier: str) -> Outcome[dict]:
        body = {
            "clientId": self.settings.client_id,
            "redirectUri": self.settings.redirect_uri,
            "code": code,
            "codeVerifier": code_verifier,
        }
        log_step(logger, "Token exchange request", {
            "url": self.settings.token_url,
            "code": truncate(code, 12),
        })
        sent = self._post(self.settings.token_url, body)
        if not sent.ok:
            return sent
        return self._token_set(sent.value, "Token exchange")

    def refresh(self, refresh_token: str) -> Outcome[dict]:
        log_step(logger, "Refresh request", {"refreshToken": truncate(refresh_token, 20)})
        sent = self._post(self.settings.refresh_url, *self._refresh_token_payload(refresh_token))
        if not sent.ok:
            return sent
        return self._token_set(sent.value, "Refresh")

    def revoke(self, refresh_token: str) -> Outcome[None]:
        log_step(logger, "Revoke request", {"refreshToken": truncate(refresh_token, 20)})
        sent = self._post(self.settings.revoke_url, *self._refresh_token_payload(refresh_token))
        if not sent.ok:
            return sent
        resp = sent.value
        if not resp.ok:
            return Failure(
                ErrorKind.PROVIDER_HTTP_ERROR,
                "Revoke rejected by K-Auth",
                status=resp.status_code,
                detail=_response_body(resp),
            )
        return Success(None)

    def _refresh_token_payload(self, refresh_token: str) -> tuple[dict, dict]:
        headers = {}
        if self.settings.refresh_cookie_workaround:
            # TODO: drop once K-Auth reads refreshToken from the request body.
            headers["Cookie"] = f"refreshToken={refresh_token}"
        return {"refreshToken": refresh_token}, headers

    def _post(self, url: str | None, body: dict, headers: dict | None = None) -> Outcome[requests.Response]:
        try:
            resp = self.http.post(url, json=body, headers=headers or {}, timeout=self.timeout)
        except requests.RequestException as e:
            log_step(logger, "K-Auth call failed", {"url": url, "error": str(e)}, level=logging.ERROR)
            return Failure(ErrorKind.TRANSPORT_ERROR, str(e) or e.__class__.__name__)
        return Success(resp)

    def _token_set(self, resp: requests.Response, step: str) -> Outcome[dict]:
        body = _response_body(resp)
        if not resp.ok:
            log_step(logger, f"{step} failed", {"status": resp.status_code, "error": body}, level=logging.WARNING)
            return Failure(
                ErrorKind.PROVIDER_HTTP_ERROR,
                f"{step} rejected by K-Auth",
                status=resp.status_code,
                detail=body,
            )
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            log_step(logger, f"{step} returned an unexpected body", body, level=logging.WARNING)
            return Failure(ErrorKind.PROVIDER_HTTP_ERROR, f"{step}: unexpected response from K-Auth", detail=body)
        log_step(logger, f"{step} succeeded", {"keys": token_keys(data)})
        return Success(data)
