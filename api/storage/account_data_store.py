"""Cascading delete of everything a user owns.

Both stores expose the same contract:

    delete_user_account(user_id) -> CascadeDeletionResult

One transaction, children before the profile row, serialized per user id,
and idempotent: a second call for the same id finds nothing and succeeds.
Failures roll back and surface as DataDeletionFailed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests
import sqlalchemy as sa
from sqlalchemy.engine import Connection, Engine

from config import ACCOUNT_DATA_BACKEND, DATABASE_URL, SUPABASE_SERVICE_ROLE_KEY, log
from schemas.account import CascadeDeletionResult, ServiceCredential
from storage.schema import DELETION_ORDER, OWNED_CHILD_TABLES, metadata, user_profiles
from storage.supabase_store import supabase_enabled, supabase_headers, supabase_post, supabase_rpc_url
from utils.errors import DataDeletionFailed

DELETE_USER_ACCOUNT_RPC = "delete_user_account"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SqlAccountDataStore:
    """Direct Postgres (or SQLite in dev/tests) access with a service-level DB role."""

    def __init__(self, engine: Optional[Engine] = None, database_url: str = DATABASE_URL) -> None:
        self._engine = engine
        self._database_url = database_url

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = sa.create_engine(self._database_url, pool_pre_ping=True)
        return self._engine

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    @staticmethod
    def _lock_user(conn: Connection, user_id: str) -> None:
        # Advisory lock covers the "no profile row yet" case that FOR UPDATE can't.
        if conn.dialect.name == "postgresql":
            conn.execute(sa.text("SELECT pg_advisory_xact_lock(hashtext(:uid))"), {"uid": user_id})
        conn.execute(
            sa.select(user_profiles.c.id)
            .where(user_profiles.c.user_id == user_id)
            .with_for_update()
        ).first()

    def delete_user_account(self, user_id: str) -> CascadeDeletionResult:
        if not user_id:
            raise DataDeletionFailed("Failed to delete user data: missing user id")

        result = CascadeDeletionResult(user_id=user_id)
        log.info("cascade_deletion_started user_id=%s", user_id)
        try:
            with self.engine.begin() as conn:
                self._lock_user(conn, user_id)
                for table in OWNED_CHILD_TABLES:
                    res = conn.execute(sa.delete(table).where(table.c.user_id == user_id))
                    result.rows_deleted[table.name] = max(res.rowcount or 0, 0)
                res = conn.execute(sa.delete(user_profiles).where(user_profiles.c.user_id == user_id))
                profile_rows = max(res.rowcount or 0, 0)
                result.rows_deleted[user_profiles.name] = profile_rows
                result.profile_deleted = profile_rows > 0
        except Exception as e:
            log.exception("cascade_deletion_failed user_id=%s", user_id)
            raise DataDeletionFailed(f"Failed to delete user data: {e}") from e

        log.info(
            "cascade_deletion_completed user_id=%s total_rows=%s profile_deleted=%s",
            user_id,
            result.total_rows,
            result.profile_deleted,
        )
        return result

    def ensure_user_profile(self, user_id: str) -> Dict[str, Any]:
        """Return the profile row, creating the default one if it is missing."""
        cols = (user_profiles.c.id, user_profiles.c.is_pro_for_life, user_profiles.c.selected_list_type)
        with self.engine.begin() as conn:
            self._lock_user(conn, user_id)
            row = conn.execute(sa.select(*cols).where(user_profiles.c.user_id == user_id)).mappings().first()
            if row:
                return dict(row)
            now = _now()
            conn.execute(
                sa.insert(user_profiles).values(
                    user_id=user_id,
                    is_pro_for_life=False,
                    selected_list_type=None,
                    created_at=now,
                    updated_at=now,
                )
            )
            row = conn.execute(sa.select(*cols).where(user_profiles.c.user_id == user_id)).mappings().one()
            return dict(row)

    def count_owned_rows(self, user_id: str) -> Dict[str, int]:
        out: Dict[str, int] = {}
        with self.engine.connect() as conn:
            for table in DELETION_ORDER:
                n = conn.execute(
                    sa.select(sa.func.count()).select_from(table).where(table.c.user_id == user_id)
                ).scalar_one()
                out[table.name] = int(n)
        return out


class SupabaseRpcAccountDataStore:
    """
    Runs the cascade inside Postgres through the `delete_user_account` function
    (see supabase/migrations). The function body is one transaction.
    """

    def __init__(self, credential: ServiceCredential) -> None:
        if not isinstance(credential, ServiceCredential):
            raise TypeError("SupabaseRpcAccountDataStore requires a ServiceCredential")
        self._credential = credential

    def delete_user_account(self, user_id: str) -> CascadeDeletionResult:
        if not user_id:
            raise DataDeletionFailed("Failed to delete user data: missing user id")
        url = supabase_rpc_url(DELETE_USER_ACCOUNT_RPC)
        headers = supabase_headers(api_key=self._credential.service_role_key)
        try:
            resp = supabase_post(url, headers=headers, json={"user_id_to_delete": user_id})
        except requests.RequestException as e:
            log.exception("Supabase %s request failed", DELETE_USER_ACCOUNT_RPC)
            raise DataDeletionFailed(f"Failed to delete user data: {e}") from e

        if resp.status_code >= 400:
            log.warning("Supabase %s failed: %s", DELETE_USER_ACCOUNT_RPC, resp.text)
            raise DataDeletionFailed(f"Failed to delete user data: {_error_message(resp)}")

        return _result_from_rpc(user_id, _json_or_none(resp))


def _json_or_none(resp) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return None


def _error_message(resp) -> str:
    body = _json_or_none(resp)
    if isinstance(body, dict):
        msg = body.get("message") or body.get("error") or body.get("msg")
        if msg:
            return str(msg)
    return resp.text or f"HTTP {resp.status_code}"


def _result_from_rpc(user_id: str, payload: Any) -> CascadeDeletionResult:
    result = CascadeDeletionResult(user_id=user_id)
    if not isinstance(payload, dict):
        return result
    for table in DELETION_ORDER:
        try:
            result.rows_deleted[table.name] = int(payload.get(table.name) or 0)
        except (TypeError, ValueError):
            result.rows_deleted[table.name] = 0
    result.profile_deleted = result.rows_deleted.get(user_profiles.name, 0) > 0
    return result


def build_account_data_store(backend: str = ACCOUNT_DATA_BACKEND):
    if backend == "supabase":
        if not supabase_enabled():
            raise RuntimeError("ARMI_ACCOUNT_DATA_BACKEND=supabase but Supabase is not configured")
        return SupabaseRpcAccountDataStore(ServiceCredential(SUPABASE_SERVICE_ROLE_KEY))
    if backend == "sql":
        return SqlAccountDataStore()
    raise ValueError(f"Unknown account data backend: {backend!r}")
