from __future__ import annotations

from typing import Dict, Optional

import requests

from config import SUPABASE_ANON_KEY, SUPABASE_SERVICE_ROLE_KEY, SUPABASE_TIMEOUT_SECS, SUPABASE_URL


def supabase_enabled() -> bool:
    return bool(SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY)


def supabase_headers(api_key: Optional[str] = None, bearer: Optional[str] = None) -> Dict[str, str]:
    """
    PostgREST / GoTrue headers. `apikey` selects the project role, the
    Authorization bearer selects who the request acts as.
    """
    key = api_key if api_key is not None else SUPABASE_SERVICE_ROLE_KEY
    return {
        "apikey": key,
        "Authorization": f"Bearer {bearer or key}",
        "Content-Type": "application/json",
    }


def supabase_anon_key() -> str:
    return SUPABASE_ANON_KEY


def supabase_rpc_url(function_name: str) -> str:
    return f"{SUPABASE_URL}/rest/v1/rpc/{function_name}"


def supabase_auth_url(path: str) -> str:
    return f"{SUPABASE_URL}/auth/v1/{path.lstrip('/')}"


def supabase_get(url: str, headers: Optional[Dict[str, str]] = None, timeout: Optional[float] = None):
    return requests.get(
        url,
        headers=headers or supabase_headers(),
        timeout=timeout or SUPABASE_TIMEOUT_SECS,
    )


def supabase_post(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    json: Optional[dict] = None,
    timeout: Optional[float] = None,
):
    return requests.post(
        url,
        headers=headers or supabase_headers(),
        json=json,
        timeout=timeout or SUPABASE_TIMEOUT_SECS,
    )


def supabase_delete(url: str, headers: Optional[Dict[str, str]] = None, timeout: Optional[float] = None):
    return requests.delete(
        url,
        headers=headers or supabase_headers(),
        timeout=timeout or SUPABASE_TIMEOUT_SECS,
    )
