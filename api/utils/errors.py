from __future__ import annotations

from typing import Optional


class ServiceError(Exception):
    def __init__(self, message: str, status: int = 400, code: str = "bad_request"):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code


# =========================
# Account deletion errors
# =========================
class Unauthenticated(ServiceError):
    """Missing, malformed or rejected bearer credential. Terminal until re-auth."""

    def __init__(self, message: str = "Missing authorization header"):
        super().__init__(message, 401, "unauthenticated")


class IdentityProviderUnavailable(ServiceError):
    """The auth server could not be reached or failed. Says nothing about the token."""

    def __init__(self, message: str = "Identity provider unavailable"):
        super().__init__(message, 503, "identity_unavailable")


class DeletionConflict(ServiceError):
    def __init__(self, message: str = "Account deletion already in progress"):
        super().__init__(message, 409, "deletion_in_progress")


class DataDeletionFailed(ServiceError):
    """The cascading delete rolled back. Identity untouched, safe to retry."""

    def __init__(self, message: str):
        super().__init__(message, 500, "data_deletion_failed")


class IdentityDeletionFailed(ServiceError):
    """Owned data is gone but the identity record survived. Retry resolves it."""

    def __init__(self, message: str):
        super().__init__(message, 500, "identity_deletion_failed")


class EntitlementCleanupFailed(ServiceError):
    # Logged by the reconciler, never returned to a caller.
    def __init__(self, message: str):
        super().__init__(message, 502, "entitlement_cleanup_failed")


class DeletionRequestFailed(ServiceError):
    """Client-side view of a non-200 answer from POST /delete-account."""

    def __init__(self, message: str, status: int = 500, code: Optional[str] = None):
        super().__init__(message, status, code or "request_failed")

    @property
    def retryable(self) -> bool:
        return self.code != "unauthenticated"
