"""
Tagged results for the login/refresh/logout pipelines.

Every step returns either ``Success(value)`` or ``Failure(...)``; routes
stop at the first failure and render it.
"""
from __future__ import annotations
import enum
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(enum.Enum):
    PROVIDER_REJECTED = "provider_rejected"
    STATE_MISMATCH = "state_mismatch"
    MISSING_CODE = "missing_code"
    MISSING_VERIFIER = "missing_verifier"
    PROVIDER_HTTP_ERROR = "provider_http_error"
    TRANSPORT_ERROR = "transport_error"
    MISSING_REFRESH_TOKEN = "missing_refresh_token"


_DEFAULT_STATUS = {
    ErrorKind.PROVIDER_REJECTED: 400,
    ErrorKind.STATE_MISMATCH: 400,
    ErrorKind.MISSING_CODE: 400,
    ErrorKind.MISSING_VERIFIER: 400,
    ErrorKind.PROVIDER_HTTP_ERROR: 502,
    ErrorKind.TRANSPORT_ERROR: 500,
    ErrorKind.MISSING_REFRESH_TOKEN: 401,
}


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T
    ok = True


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str
    status: int = 0
    # Provider error body, kept verbatim (parsed JSON when it was JSON)
    detail: Any = None
    ok = False

    def __post_init__(self):
        if not self.status:
            object.__setattr__(self, "status", _DEFAULT_STATUS[self.kind])


Outcome = Union[Success[T], Failure]
