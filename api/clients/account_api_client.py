from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from config import API_BASE_URL, API_TIMEOUT_SECS, log
from schemas.account import SessionCredential
from utils.errors import DeletionRequestFailed

DEFAULT_FAILURE_MESSAGE = "Failed to delete account. Please try again in a moment."


# =========================
# ARMi account API (client side)
# =========================
class AccountApiClient:
    def __init__(self, base_url: str = API_BASE_URL, timeout: float = API_TIMEOUT_SECS, session=None) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http = session or requests.Session()

    def delete_account(self, credential: SessionCredential) -> Dict[str, Any]:
        """
        POST /delete-account with the bearer token and no body. The server
        derives the user id from the token; none is ever sent.
        """
        if not isinstance(credential, SessionCredential):
            raise TypeError("delete_account requires a SessionCredential")
        url = f"{self._base_url}/delete-account"
        headers = {"Authorization": f"Bearer {credential.access_token}"}
        try:
            resp = self._http.post(url, headers=headers, timeout=self._timeout)
        except requests.RequestException as e:
            log.warning("delete-account request failed: %s", e)
            raise DeletionRequestFailed(DEFAULT_FAILURE_MESSAGE, 503, "network_error") from e

        body = _json_or_none(resp)
        if resp.status_code != 200:
            message = (body or {}).get("error") if isinstance(body, dict) else None
            code = (body or {}).get("code") if isinstance(body, dict) else None
            raise DeletionRequestFailed(str(message or DEFAULT_FAILURE_MESSAGE), resp.status_code, code)
        if not isinstance(body, dict) or body.get("success") is not True:
            log.error("delete-account returned non-success body: %s", resp.text)
            raise DeletionRequestFailed(resp.text or DEFAULT_FAILURE_MESSAGE, resp.status_code, "bad_response")
        return body


def _json_or_none(resp) -> Optional[Any]:
    try:
        return resp.json()
    except ValueError:
        return None
