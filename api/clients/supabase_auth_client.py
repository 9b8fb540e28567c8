from __future__ import annotations

from typing import Optional
from urllib.parse import quote

import requests

from config import log
from schemas.account import Identity, ServiceCredential, SessionCredential
from storage.supabase_store import (
    supabase_anon_key,
    supabase_auth_url,
    supabase_delete,
    supabase_get,
    supabase_headers,
    supabase_post,
)
from utils.errors import IdentityDeletionFailed, IdentityProviderUnavailable, Unauthenticated


def _json_body(resp):
    try:
        return resp.json()
    except ValueError:
        return None


def _error_text(resp) -> str:
    body = _json_body(resp)
    if isinstance(body, dict):
        for key in ("msg", "message", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return resp.text or f"HTTP {resp.status_code}"


# =========================
# Supabase Auth (GoTrue) client
# =========================
class SupabaseAuthClient:
    """
    Identity collaborator. User-level calls take a SessionCredential,
    admin calls take a ServiceCredential; the two never substitute for each other.
    """

    def __init__(self, anon_key: Optional[str] = None) -> None:
        self._anon_key = anon_key if anon_key is not None else supabase_anon_key()

    def verify_bearer(self, credential: SessionCredential) -> Identity:
        if not isinstance(credential, SessionCredential):
            raise TypeError("verify_bearer requires a SessionCredential")
        headers = supabase_headers(api_key=self._anon_key, bearer=credential.access_token)
        try:
            resp = supabase_get(supabase_auth_url("user"), headers=headers)
        except requests.RequestException as e:
            log.warning("Supabase auth user lookup failed: %s", e)
            raise IdentityProviderUnavailable(f"Identity provider unavailable: {e}") from e

        if resp.status_code >= 500:
            log.warning("Supabase auth user lookup returned %s: %s", resp.status_code, resp.text)
            raise IdentityProviderUnavailable(f"Identity provider unavailable: {_error_text(resp)}")
        if resp.status_code >= 400:
            raise Unauthenticated(f"Unauthorized: {_error_text(resp)}")

        payload = _json_body(resp)
        if not isinstance(payload, dict) or not payload.get("id"):
            raise Unauthenticated("Unauthorized: No user")
        return Identity.from_auth_user(payload)

    def delete_identity(self, identity_id: str, credential: ServiceCredential) -> None:
        """Hard-delete the auth user. An already-missing user counts as deleted."""
        if not isinstance(credential, ServiceCredential):
            raise TypeError("delete_identity requires a ServiceCredential")
        url = supabase_auth_url(f"admin/users/{quote(identity_id, safe='')}")
        headers = supabase_headers(api_key=credential.service_role_key)
        try:
            resp = supabase_delete(url, headers=headers)
        except requests.RequestException as e:
            log.exception("Supabase admin delete user request failed")
            raise IdentityDeletionFailed(f"Failed to delete auth user: {e}") from e

        if resp.status_code == 404:
            log.info("Auth user %s already deleted", identity_id)
            return
        if resp.status_code >= 400:
            log.warning("Supabase admin delete user failed: %s", resp.text)
            raise IdentityDeletionFailed(f"Failed to delete auth user: {_error_text(resp)}")

    def sign_out_local(self, credential: SessionCredential) -> None:
        """Revoke this session's refresh tokens. Best-effort: the user may already be gone."""
        if not isinstance(credential, SessionCredential):
            raise TypeError("sign_out_local requires a SessionCredential")
        headers = supabase_headers(api_key=self._anon_key, bearer=credential.access_token)
        try:
            resp = supabase_post(f"{supabase_auth_url('logout')}?scope=local", headers=headers)
            if resp.status_code >= 400 and resp.status_code not in (401, 403, 404):
                log.warning("Supabase sign out returned %s: %s", resp.status_code, resp.text)
        except requests.RequestException as e:
            log.warning("Supabase sign out failed: %s", e)
