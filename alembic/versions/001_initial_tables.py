"""001_initial_tables

Revision ID: 001
Revises:
Create Date: 2025-01-01 00:00:00.000000

Creates the TaskShare schema:
  - users
  - tasks
  - task_shares
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None

INSERT_SEQUENCE = "tasks_insert_seq"

ENUMS: dict[str, tuple[str, ...]] = {
    "auth_provider_enum": ("local", "google"),
    "task_status_enum": ("pending", "in-progress", "completed"),
    "task_priority_enum": ("low", "medium", "high", "urgent"),
    "share_permission_enum": ("read", "edit"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("now()"),
    )


def upgrade() -> None:
    # ── Enums ─────────────────────────────────────────────────────────────────
    for name in ENUMS:
        _enum(name).create(op.get_bind(), checkfirst=True)

    # ── users ─────────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column(
            "provider",
            _enum("auth_provider_enum"),
            nullable=False,
            server_default="local",
        ),
        sa.Column("google_id", sa.String(255), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refresh_token_hash", sa.String(64), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("google_id", name="uq_users_google_id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ── tasks ─────────────────────────────────────────────────────────────────
    op.execute(sa.schema.CreateSequence(sa.Sequence(INSERT_SEQUENCE)))
    op.create_table(
        "tasks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "seq",
            sa.BigInteger(),
            nullable=False,
            server_default=sa.text(f"nextval('{INSERT_SEQUENCE}')"),
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "status",
            _enum("task_status_enum"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "priority",
            _enum("task_priority_enum"),
            nullable=False,
            server_default="medium",
        ),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(
            ["owner_id"], ["users.id"],
            name="fk_tasks_owner_id_users",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_tasks"),
        sa.UniqueConstraint("seq", name="uq_tasks_seq"),
    )
    op.create_index("ix_tasks_owner_id_created_at", "tasks", ["owner_id", "created_at"])
    op.create_index("ix_tasks_status", "tasks", ["status"])
    op.create_index("ix_tasks_priority", "tasks", ["priority"])
    op.create_index("ix_tasks_due_date", "tasks", ["due_date"])
    op.create_index("ix_tasks_is_archived", "tasks", ["is_archived"])

    # ── task_shares ───────────────────────────────────────────────────────────
    op.create_table(
        "task_shares",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("task_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column(
            "permission",
            _enum("share_permission_enum"),
            nullable=False,
            server_default="read",
        ),
        _timestamp("shared_at"),
        sa.ForeignKeyConstraint(
            ["task_id"], ["tasks.id"],
            name="fk_task_shares_task_id_tasks",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_task_shares_user_id_users",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_task_shares"),
        sa.UniqueConstraint("task_id", "user_id", name="uq_task_shares_task_id_user_id"),
    )
    op.create_index("ix_task_shares_user_id", "task_shares", ["user_id"])


def downgrade() -> None:
    # Drop tables in reverse dependency order
    op.drop_table("task_shares")
    op.drop_table("tasks")
    op.execute(sa.schema.DropSequence(sa.Sequence(INSERT_SEQUENCE)))
    op.execute(sa.schema.DropSequence(sa.Sequence(INSERT_SEQUENCE)))
    op.drop_table("users")

    for enum_name in reversed(list(ENUMS)):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
