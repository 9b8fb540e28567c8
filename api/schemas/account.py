from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, TypedDict


# =========================
# Wire bodies for POST /delete-account
# =========================
class DeleteAccountResponse(TypedDict):
    success: bool


# =========================
# Credentials
# =========================
# Two unrelated types on purpose: nothing that accepts a ServiceCredential
# accepts a SessionCredential, and vice versa.
@dataclass(frozen=True)
class SessionCredential:
    """End-user bearer token. Only good for acting as that one user."""

    access_token: str

    def __repr__(self) -> str:
        return "SessionCredential(access_token=***)"


@dataclass(frozen=True)
class ServiceCredential:
    """Service-role key. Only held by the server-side authority."""

    service_role_key: str

    def __repr__(self) -> str:
        return "ServiceCredential(service_role_key=***)"


# =========================
# Identity / data
# =========================
@dataclass
class Identity:
    id: str
    email: Optional[str] = None
    app_metadata: Dict[str, Any] = field(default_factory=dict)
    user_metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_auth_user(cls, payload: Dict[str, Any]) -> "Identity":
        return cls(
            id=str(payload["id"]),
            email=payload.get("email"),
            app_metadata=payload.get("app_metadata") or {},
            user_metadata=payload.get("user_metadata") or {},
        )


@dataclass
class CascadeDeletionResult:
    """Result of one cascading delete.

    Attributes:
        user_id: Identity the delete was keyed on.
        rows_deleted: Rows removed per table, in deletion order.
        profile_deleted: Whether a user_profiles row existed and was removed.
    """

    user_id: str
    rows_deleted: Dict[str, int] = field(default_factory=dict)
    profile_deleted: bool = False

    @property
    def total_rows(self) -> int:
        return sum(self.rows_deleted.values())

    @property
    def was_noop(self) -> bool:
        return self.total_rows == 0
