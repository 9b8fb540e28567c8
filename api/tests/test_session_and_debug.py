from app import create_app
from schemas.account import SessionCredential
from services.account_service import AccountDeletionService
from storage.session_store import SessionStore
from utils import debug_events


def test_session_store_roundtrip(tmp_path):
    store = SessionStore(str(tmp_path / "nested" / "session.json"))

    assert store.load() is None, "expected no session before save"

    store.save(SessionCredential("tok"), user_id="u1")
    assert store.load() == SessionCredential("tok"), "save then load returns the credential"
    assert store.user_id() == "u1", "user id persisted alongside the token"

    store.clear()
    assert store.load() is None, "clear removes the session"
    store.clear()


def test_session_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")

    assert SessionStore(str(path)).load() is None, "corrupt session files read as signed out"


def test_credential_repr_hides_secret():
    assert "tok-secret" not in repr(SessionCredential("tok-secret")), "tokens must not leak into logs"


def test_deletion_steps_are_recorded(identity, data_store, seed, service_credential):
    debug_events.set_debug_enabled(True)
    debug_events.clear_events()
    try:
        identity.add_user("u1", "tok-1")
        seed("u1", contacts=1)
        service = AccountDeletionService(identity=identity, data_store=data_store, service_credential=service_credential)
        app = create_app(deletion_service=service)
        app.config.update(TESTING=True)
        client = app.test_client()

        resp = client.post("/delete-account", headers={"Authorization": "Bearer tok-1", "X-Request-Id": "req-42"})
        assert resp.status_code == 200, "expected deletion to succeed"

        events = client.get("/debug/events?request_id=req-42").get_json()["data"]["events"]
        messages = [e["message"] for e in events]
        assert "owned data deleted" in messages, "cascade step recorded"
        assert "identity deleted" in messages, "identity step recorded"
        assert messages.index("owned data deleted") < messages.index("identity deleted"), "data goes before identity"

        assert client.post("/debug/clear").status_code == 200, "clear endpoint available when enabled"
        assert debug_events.list_events(request_id="req-42") == [], "earlier events cleared"
    finally:
        debug_events.set_debug_enabled(False)
        debug_events.clear_events()


def test_debug_routes_hidden_when_disabled(identity, data_store, service_credential):
    debug_events.set_debug_enabled(False)
    service = AccountDeletionService(identity=identity, data_store=data_store, service_credential=service_credential)
    client = create_app(deletion_service=service).test_client()

    assert client.get("/debug/events").status_code == 404, "debug console is off by default"
