from __future__ import annotations

from typing import Optional

from flask import request

from schemas.account import SessionCredential
from utils.errors import Unauthenticated


# =========================
# Auth helpers
# =========================
def parse_bearer(header_value: Optional[str]) -> Optional[str]:
    if not header_value:
        return None
    scheme, _, token = header_value.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


def session_credential_from_request() -> SessionCredential:
    """
    The acting identity always comes from the Authorization header.
    Raises Unauthenticated when the header is missing or not a bearer token.
    """
    auth = request.headers.get("Authorization")
    if not auth:
        raise Unauthenticated("Missing authorization header")
    token = parse_bearer(auth)
    if not token:
        raise Unauthenticated("Malformed authorization header")
    return SessionCredential(access_token=token)
