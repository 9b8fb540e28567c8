import threading

import pytest
import sqlalchemy as sa

import storage.account_data_store as account_data_store
from schemas.account import ServiceCredential, SessionCredential
from storage.account_data_store import SupabaseRpcAccountDataStore
from storage.schema import OWNED_CHILD_TABLES
from utils.errors import DataDeletionFailed


class _FakeResponse:
    def __init__(self, status_code, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self.content = b"x" if payload is not None else b""

    def json(self):
        if self._payload is None:
            raise ValueError("no body")
        return self._payload


# =========================
# SQL store
# =========================
def test_profile_only_user_is_deleted(data_store, seed):
    seed("u-empty")

    result = data_store.delete_user_account("u-empty")

    assert result.profile_deleted is True, "expected the profile row to be removed"
    assert result.total_rows == 1, "expected exactly the profile row to be deleted"
    assert data_store.count_owned_rows("u-empty")["user_profiles"] == 0, "profile row should be gone"


def test_all_owned_rows_removed_across_tables(data_store, seed):
    seed("u1", contacts=3, reminders=4, messages=2, files=2, events=5)
    seed("u2", contacts=1, reminders=1, events=1)

    result = data_store.delete_user_account("u1")

    counts = data_store.count_owned_rows("u1")
    assert all(n == 0 for n in counts.values()), f"expected zero rows for u1 in every table, got {counts}"
    assert result.rows_deleted == {
        "analytics_events": 5,
        "stored_files": 2,
        "scheduled_messages": 2,
        "reminders": 4,
        "contacts": 3,
        "user_profiles": 1,
    }, "expected per-table counts in deletion order"
    assert list(result.rows_deleted)[-1] == "user_profiles", "profile row must be deleted last"

    other = data_store.count_owned_rows("u2")
    assert other["contacts"] == 1 and other["user_profiles"] == 1, "other users' rows must be untouched"


def test_second_call_is_noop_success(data_store, seed):
    seed("u1", contacts=2, reminders=1)

    first = data_store.delete_user_account("u1")
    second = data_store.delete_user_account("u1")

    assert first.total_rows == 4, "first call should delete profile + 2 contacts + 1 reminder"
    assert second.was_noop, "second call should find nothing to delete"
    assert second.profile_deleted is False, "no profile row left to delete on the second call"


def test_unknown_user_succeeds_with_zero_rows(data_store):
    result = data_store.delete_user_account("never-existed")

    assert result.was_noop, "unknown ids should delete zero rows"


def test_missing_user_id_is_rejected(data_store):
    with pytest.raises(DataDeletionFailed):
        data_store.delete_user_account("")


def test_failure_mid_cascade_rolls_back_everything(data_store, seed):
    seed("u1", contacts=2, reminders=2, messages=1, files=1, events=3)
    before = data_store.count_owned_rows("u1")

    def _fail_on_contacts(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("DELETE FROM CONTACTS"):
            raise RuntimeError("simulated storage failure")

    sa.event.listen(data_store.engine, "before_cursor_execute", _fail_on_contacts)
    try:
        with pytest.raises(DataDeletionFailed) as exc:
            data_store.delete_user_account("u1")
    finally:
        sa.event.remove(data_store.engine, "before_cursor_execute", _fail_on_contacts)

    assert exc.value.status == 500, "data deletion failures map to HTTP 500"
    assert data_store.count_owned_rows("u1") == before, "earlier deletes in the transaction must be rolled back"


def test_ensure_user_profile_is_lazy_and_idempotent(data_store):
    created = data_store.ensure_user_profile("u-new")
    again = data_store.ensure_user_profile("u-new")

    assert created["id"] == again["id"], "expected the same profile row on the second call"
    assert created["is_pro_for_life"] is False, "new profiles default to not pro-for-life"
    assert created["selected_list_type"] is None, "new profiles have no list type yet"
    assert data_store.count_owned_rows("u-new")["user_profiles"] == 1, "exactly one profile row per user"


def _run_together(*fns):
    barrier = threading.Barrier(len(fns))
    results = [None] * len(fns)
    errors = []

    def _worker(i, fn):
        try:
            barrier.wait(timeout=5)
            results[i] = fn()
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=_worker, args=(i, fn)) for i, fn in enumerate(fns)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    return results, errors


def test_concurrent_deletes_of_the_same_user_are_serialized(data_store, seed):
    seed("bystander", contacts=1)

    for round_no in range(10):
        user_id = f"u{round_no}"
        seed(user_id, contacts=3, reminders=2, messages=1, files=2, events=3)

        results, errors = _run_together(
            lambda: data_store.delete_user_account(user_id),
            lambda: data_store.delete_user_account(user_id),
        )

        assert errors == [], f"both deletes should succeed (round {round_no})"
        assert sum(r.total_rows for r in results) == 12, "every row is deleted exactly once across both calls"
        assert [r.profile_deleted for r in results].count(True) == 1, "one call removes the profile, the other no-ops"
        assert all(n == 0 for n in data_store.count_owned_rows(user_id).values()), "no rows may survive"

    assert data_store.count_owned_rows("bystander")["contacts"] == 1, "other users are untouched"


def test_profile_creation_racing_deletion_leaves_a_consistent_state(data_store, seed):
    for round_no in range(10):
        user_id = f"u{round_no}"
        seed(user_id, contacts=2, reminders=1, events=2)

        results, errors = _run_together(
            lambda: data_store.ensure_user_profile(user_id),
            lambda: data_store.delete_user_account(user_id),
        )

        assert errors == [], f"neither call should fail (round {round_no})"
        counts = data_store.count_owned_rows(user_id)
        assert all(counts[t.name] == 0 for t in OWNED_CHILD_TABLES), "owned child rows never survive the cascade"
        assert counts["user_profiles"] in (0, 1), "at most one profile row, never a duplicate"
        if counts["user_profiles"] == 1:
            assert results[0]["id"] is not None, "a surviving profile was created by ensure_user_profile"

        data_store.delete_user_account(user_id)
        assert all(n == 0 for n in data_store.count_owned_rows(user_id).values()), "a follow-up delete cleans up"


# =========================
# Supabase RPC store
# =========================
def test_rpc_store_parses_counts(monkeypatch):
    captured = {}

    def _fake_post(url, headers=None, json=None, timeout=None):
        captured.update(url=url, headers=headers, json=json)
        return _FakeResponse(200, {"contacts": 2, "reminders": 1, "user_profiles": 1})

    monkeypatch.setattr(account_data_store, "supabase_post", _fake_post)
    store = SupabaseRpcAccountDataStore(ServiceCredential("svc-key"))

    result = store.delete_user_account("0b7e3a9c-0000-4000-8000-000000000001")

    assert captured["url"].endswith("/rest/v1/rpc/delete_user_account"), "expected the RPC endpoint"
    assert captured["json"] == {"user_id_to_delete": "0b7e3a9c-0000-4000-8000-000000000001"}
    assert captured["headers"]["apikey"] == "svc-key", "RPC must run with the service-role key"
    assert result.rows_deleted["contacts"] == 2, "expected contact count from RPC payload"
    assert result.rows_deleted["analytics_events"] == 0, "missing tables count as zero"
    assert result.profile_deleted is True, "user_profiles=1 means the profile was deleted"


def test_rpc_store_error_raises_data_deletion_failed(monkeypatch):
    def _fake_post(url, headers=None, json=None, timeout=None):
        return _FakeResponse(400, {"message": "permission denied for function"}, text="permission denied")

    monkeypatch.setattr(account_data_store, "supabase_post", _fake_post)
    store = SupabaseRpcAccountDataStore(ServiceCredential("svc-key"))

    with pytest.raises(DataDeletionFailed) as exc:
        store.delete_user_account("u1")

    assert "permission denied for function" in exc.value.message, "expected PostgREST message in the error"


def test_rpc_store_refuses_user_credential():
    with pytest.raises(TypeError):
        SupabaseRpcAccountDataStore(SessionCredential("user-jwt"))
