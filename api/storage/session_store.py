from __future__ import annotations

import json
import os
from threading import Lock
from typing import Any, Dict, Optional

from config import SESSION_PATH, log
from schemas.account import SessionCredential


class SessionStore:
    """Locally persisted Session Credential (client side)."""

    def __init__(self, path: str = SESSION_PATH) -> None:
        self._path = path
        self._lock = Lock()

    @property
    def path(self) -> str:
        return self._path

    def _read(self) -> Optional[Dict[str, Any]]:
        if not os.path.exists(self._path):
            return None
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except Exception:
            log.exception("Failed to read session from disk")
            return None
        return data if isinstance(data, dict) else None

    def load(self) -> Optional[SessionCredential]:
        with self._lock:
            data = self._read()
        token = (data or {}).get("access_token")
        return SessionCredential(access_token=token) if token else None

    def user_id(self) -> Optional[str]:
        with self._lock:
            data = self._read()
        return (data or {}).get("user_id")

    def save(self, credential: SessionCredential, user_id: Optional[str] = None) -> None:
        payload = {"access_token": credential.access_token, "user_id": user_id}
        with self._lock:
            directory = os.path.dirname(self._path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            tmp = f"{self._path}.tmp"
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(payload, f)
            os.replace(tmp, self._path)

    def clear(self) -> None:
        with self._lock:
            if os.path.exists(self._path):
                os.remove(self._path)
