from __future__ import annotations

from config import log


class EntitlementReconciler:
    """
    Best-effort cleanup of the entitlement service after an account is gone.
    reconcile() never raises; a stale external alias is recoverable, a stuck
    deletion flow is not.
    """

    def __init__(self, entitlements) -> None:
        self._entitlements = entitlements

    def reconcile(self) -> None:
        try:
            if getattr(self._entitlements, "configured", True):
                self._entitlements.log_out()
        except Exception as e:
            log.error("RevenueCat cleanup error (log_out): %s", e)
        try:
            self._entitlements.invalidate_cache()
        except Exception as e:
            log.error("RevenueCat cleanup error (invalidate_cache): %s", e)
