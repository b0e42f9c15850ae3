"""PKCE (RFC 7636) verifier/challenge pairs and the anti-forgery state token."""
from __future__ import annotations
import os
import base64
import secrets
from dataclasses import dataclass

from authlib.oauth2.rfc7636 import create_s256_code_challenge

# 40 bytes -> 54 base64url chars, inside the 43..128 range RFC 7636 allows
VERIFIER_BYTES = 40
STATE_BYTES = 16


@dataclass(frozen=True)
class PKCEPair:
    verifier: str
    challenge: str
    method: str = "S256"


def generate_code_verifier() -> str:
    return base64.urlsafe_b64encode(os.urandom(VERIFIER_BYTES)).decode("ascii").rstrip("=")


def generate_code_challenge(verifier: str) -> str:
    """base64url(SHA-256(verifier)) without padding."""
    return create_s256_code_challenge(verifier)


def generate_pkce() -> PKCEPair:
    verifier = generate_code_verifier()
    return PKCEPair(verifier=verifier, challenge=generate_code_challenge(verifier))


def verify_code_challenge(verifier: str, challenge: str) -> bool:
    """The check the provider runs at token exchange time."""
    return secrets.compare_digest(generate_code_challenge(verifier), challenge)


def generate_state() -> str:
    return secrets.token_hex(STATE_BYTES)
