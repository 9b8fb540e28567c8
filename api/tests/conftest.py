import os
import sys

import pytest
import sqlalchemy as sa

# Ensure api/ is on sys.path so imports like "services.*" work in tests.
API_DIR = os.path.dirname(os.path.dirname(__file__))
if API_DIR not in sys.path:
    sys.path.insert(0, API_DIR)

from schemas.account import Identity, ServiceCredential, SessionCredential  # noqa: E402
from storage import schema  # noqa: E402
from storage.account_data_store import SqlAccountDataStore  # noqa: E402
from utils.errors import IdentityDeletionFailed, Unauthenticated  # noqa: E402

SERVICE_KEY = "service-role-test-key"


class FakeIdentity:
    """In-memory stand-in for Supabase Auth."""

    def __init__(self):
        self.users = {}
        self.tokens = {}
        self.deleted = []
        self.signed_out = []
        self.fail_deletes = 0

    def add_user(self, user_id, token, email=None):
        self.users[user_id] = Identity(id=user_id, email=email or f"{user_id}@example.com")
        self.tokens[token] = user_id

    def verify_bearer(self, credential):
        assert isinstance(credential, SessionCredential), "verify_bearer must get a user credential"
        uid = self.tokens.get(credential.access_token)
        if not uid or uid not in self.users:
            raise Unauthenticated("Unauthorized: invalid JWT")
        return self.users[uid]

    def delete_identity(self, identity_id, credential):
        assert isinstance(credential, ServiceCredential), "delete_identity must get the service credential"
        if self.fail_deletes > 0:
            self.fail_deletes -= 1
            raise IdentityDeletionFailed("Failed to delete auth user: upstream timeout")
        if self.users.pop(identity_id, None) is not None:
            self.deleted.append(identity_id)

    def sign_out_local(self, credential):
        self.signed_out.append(credential.access_token)


def seed_user(store, user_id, contacts=0, reminders=0, messages=0, files=0, events=0):
    store.ensure_user_profile(user_id)
    with store.engine.begin() as conn:
        contact_ids = []
        for i in range(contacts):
            res = conn.execute(sa.insert(schema.contacts).values(user_id=user_id, name=f"contact-{i}"))
            contact_ids.append(res.inserted_primary_key[0])
        first = contact_ids[0] if contact_ids else None
        for i in range(reminders):
            conn.execute(sa.insert(schema.reminders).values(user_id=user_id, contact_id=first, title=f"r-{i}"))
        for i in range(messages):
            conn.execute(
                sa.insert(schema.scheduled_messages).values(user_id=user_id, contact_id=first, body=f"m-{i}")
            )
        for i in range(files):
            conn.execute(sa.insert(schema.stored_files).values(user_id=user_id, path=f"{user_id}/{i}.jpg"))
        for i in range(events):
            conn.execute(sa.insert(schema.analytics_events).values(user_id=user_id, event_name=f"e-{i}"))


@pytest.fixture
def data_store(tmp_path):
    engine = sa.create_engine(
        f"sqlite:///{tmp_path / 'account_data.db'}",
        connect_args={"check_same_thread": False},
    )
    store = SqlAccountDataStore(engine=engine)
    store.create_schema()
    yield store
    engine.dispose()


@pytest.fixture
def identity():
    return FakeIdentity()


@pytest.fixture
def service_credential():
    return ServiceCredential(SERVICE_KEY)


@pytest.fixture
def seed(data_store):
    def _seed(user_id, **counts):
        seed_user(data_store, user_id, **counts)

    return _seed
