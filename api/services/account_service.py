from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Iterator, Optional, Set

from config import log
from schemas.account import DeleteAccountResponse, Identity, ServiceCredential, SessionCredential
from utils.errors import DeletionConflict, Unauthenticated
from utils.observability import log_event


class AccountDeletionService:
    """
    Server-side authority behind POST /delete-account.

    Order is fixed: authenticate, cascade-delete owned data, then delete the
    identity. Data goes first so a retry after an identity-delete failure
    re-runs the cascade as a no-op instead of leaving rows with no owner.
    """

    def __init__(self, identity, data_store, service_credential: ServiceCredential) -> None:
        if not isinstance(service_credential, ServiceCredential):
            raise TypeError("AccountDeletionService requires a ServiceCredential")
        self._identity = identity
        self._data_store = data_store
        self._service_credential = service_credential
        self._inflight: Set[str] = set()
        self._inflight_lock = Lock()

    @contextmanager
    def _exclusive(self, user_id: str) -> Iterator[None]:
        with self._inflight_lock:
            if user_id in self._inflight:
                raise DeletionConflict()
            self._inflight.add(user_id)
        try:
            yield
        finally:
            with self._inflight_lock:
                self._inflight.discard(user_id)

    def authenticate(self, credential: Optional[SessionCredential]) -> Identity:
        if credential is None:
            raise Unauthenticated("Missing authorization header")
        return self._identity.verify_bearer(credential)

    def delete_account(
        self,
        credential: Optional[SessionCredential],
        request_id: Optional[str] = None,
    ) -> DeleteAccountResponse:
        user = self.authenticate(credential)
        log.info("Account deletion requested for user %s", user.id)
        log_event("account", "deletion authenticated", user_id=user.id, request_id=request_id)

        with self._exclusive(user.id):
            result = self._data_store.delete_user_account(user.id)
            log_event(
                "account",
                "owned data deleted",
                user_id=user.id,
                request_id=request_id,
                data={"rows_deleted": dict(result.rows_deleted)},
            )

            self._identity.delete_identity(user.id, self._service_credential)
            log_event("account", "identity deleted", user_id=user.id, request_id=request_id)

        log.info("Account deletion successful for user %s", user.id)
        return {"success": True}
