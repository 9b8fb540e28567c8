from __future__ import annotations

import uuid
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from config import ENTITLEMENT_ID, REVENUECAT_API_KEY, REVENUECAT_BASE_URL, REVENUECAT_TIMEOUT_SECS, log
from utils.errors import EntitlementCleanupFailed

ANONYMOUS_PREFIX = "$RCAnonymousID:"

# Spellings the entitlement has shipped under in the dashboard.
ENTITLEMENT_ALIASES = (ENTITLEMENT_ID, "ARMi_Pro", "armi_pro", "pro", "Pro")


def _anonymous_alias() -> str:
    return f"{ANONYMOUS_PREFIX}{uuid.uuid4().hex}"


# =========================
# RevenueCat (entitlement collaborator)
# =========================
class RevenueCatClient:
    """
    Local entitlement session: which app user alias this device is bound to,
    plus the last customer-info snapshot fetched for it.
    """

    def __init__(
        self,
        api_key: str = REVENUECAT_API_KEY,
        base_url: str = REVENUECAT_BASE_URL,
        timeout: float = REVENUECAT_TIMEOUT_SECS,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._lock = Lock()
        self._alias = _anonymous_alias()
        self._snapshot: Optional[Dict[str, Any]] = None

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    @property
    def app_user_id(self) -> str:
        return self._alias

    @property
    def is_anonymous(self) -> bool:
        return self._alias.startswith(ANONYMOUS_PREFIX)

    def log_in(self, alias: str) -> None:
        if not alias:
            raise ValueError("alias is required")
        with self._lock:
            if alias != self._alias:
                self._snapshot = None
            self._alias = alias
        log.info("RevenueCat user ID set: %s", alias)

    def log_out(self) -> str:
        """Detach the current alias and fall back to a fresh anonymous one."""
        with self._lock:
            if self.is_anonymous:
                raise EntitlementCleanupFailed("RevenueCat logOut called for an anonymous user")
            previous = self._alias
            self._alias = _anonymous_alias()
            self._snapshot = None
        log.info("RevenueCat logged out %s", previous)
        return previous

    def invalidate_cache(self) -> None:
        with self._lock:
            self._snapshot = None

    def get_customer_info(self, force_refresh: bool = False) -> Dict[str, Any]:
        if not self.configured:
            raise EntitlementCleanupFailed("RevenueCat not configured")
        with self._lock:
            if self._snapshot is not None and not force_refresh:
                return self._snapshot
            alias = self._alias

        url = f"{self._base_url}/subscribers/{quote(alias, safe='')}"
        headers = {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}
        try:
            resp = requests.get(url, headers=headers, timeout=self._timeout)
        except requests.RequestException as e:
            raise EntitlementCleanupFailed(f"RevenueCat request failed: {e}") from e
        if resp.status_code >= 400:
            raise EntitlementCleanupFailed(f"RevenueCat GET subscribers -> {resp.status_code} {resp.text}")

        info = (resp.json() or {}).get("subscriber") or {}
        with self._lock:
            if alias == self._alias:
                self._snapshot = info
        return info

    def active_entitlements(self, force_refresh: bool = False) -> List[str]:
        info = self.get_customer_info(force_refresh=force_refresh)
        now = datetime.now(timezone.utc)
        active = []
        for name, ent in (info.get("entitlements") or {}).items():
            expires = (ent or {}).get("expires_date")
            if not expires:
                active.append(name)
                continue
            try:
                if datetime.fromisoformat(expires.replace("Z", "+00:00")) > now:
                    active.append(name)
            except ValueError:
                log.warning("Unparseable entitlement expiry for %s: %s", name, expires)
        return active

    def has_pro_entitlement(self, force_refresh: bool = False) -> bool:
        active = set(self.active_entitlements(force_refresh=force_refresh))
        return any(name in active for name in ENTITLEMENT_ALIASES)
