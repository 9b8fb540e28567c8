"""Owned-data tables.

Mirrors the Supabase schema. Every child table carries `user_id` pointing at
the auth user; `user_profiles` is the 1:1 owner row.
"""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


user_profiles = sa.Table(
    "user_profiles",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("user_id", sa.String(64), nullable=False, unique=True, index=True),
    sa.Column("is_pro_for_life", sa.Boolean, nullable=False, server_default=sa.false()),
    sa.Column("selected_list_type", sa.String(32), nullable=True),
    *_timestamps(),
)

contacts = sa.Table(
    "contacts",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("user_id", sa.String(64), nullable=False, index=True),
    sa.Column("name", sa.String(255), nullable=False),
    sa.Column("phone_number", sa.String(64), nullable=True),
    sa.Column("list_type", sa.String(32), nullable=True),
    *_timestamps(),
)

reminders = sa.Table(
    "reminders",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("user_id", sa.String(64), nullable=False, index=True),
    sa.Column("contact_id", sa.Integer, sa.ForeignKey("contacts.id"), nullable=True),
    sa.Column("title", sa.String(255), nullable=False),
    sa.Column("due_at", sa.DateTime(timezone=True), nullable=True),
    *_timestamps(),
)

scheduled_messages = sa.Table(
    "scheduled_messages",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("user_id", sa.String(64), nullable=False, index=True),
    sa.Column("contact_id", sa.Integer, sa.ForeignKey("contacts.id"), nullable=True),
    sa.Column("body", sa.Text, nullable=False),
    sa.Column("send_at", sa.DateTime(timezone=True), nullable=True),
    *_timestamps(),
)

stored_files = sa.Table(
    "stored_files",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("user_id", sa.String(64), nullable=False, index=True),
    sa.Column("contact_id", sa.Integer, sa.ForeignKey("contacts.id"), nullable=True),
    sa.Column("bucket", sa.String(64), nullable=False, server_default="profile-images"),
    sa.Column("path", sa.String(512), nullable=False),
    *_timestamps(),
)

analytics_events = sa.Table(
    "analytics_events",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("user_id", sa.String(64), nullable=False, index=True),
    sa.Column("event_name", sa.String(128), nullable=False),
    sa.Column("properties", sa.JSON, nullable=True),
    *_timestamps(),
)

# Children first: reminders/messages/files reference contacts, and every
# child must be gone before its owning profile row.
OWNED_CHILD_TABLES = (
    analytics_events,
    stored_files,
    scheduled_messages,
    reminders,
    contacts,
)

DELETION_ORDER = OWNED_CHILD_TABLES + (user_profiles,)
