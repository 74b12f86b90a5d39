"""create admin security tables

Revision ID: 0001_admin_security
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_admin_security"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

admin_role = sa.Enum("principal", "admin", name="admin_role")
admin_status = sa.Enum("pending", "approved", "rejected", "suspended", name="admin_status")


def upgrade() -> None:
    """Create admin accounts plus their sessions, login records and password history."""
    op.create_table(
        "admin_accounts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=256), nullable=False),
        sa.Column("password_hash", sa.String(length=512), nullable=False),
        sa.Column("role", admin_role, nullable=False),
        sa.Column("status", admin_status, nullable=False),
        sa.Column("approved_by_id", sa.Uuid(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.String(length=500), nullable=True),
        sa.Column("failed_login_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lockout_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_logout", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_password_change", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reset_password_token", sa.String(length=128), nullable=True),
        sa.Column("reset_password_expires", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reset_password_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("notify_new_login", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("notify_new_registration", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("notify_security_alerts", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("notify_suspicious_activity", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_admin_accounts_email", "admin_accounts", ["email"], unique=True)
    op.create_index("ix_admin_accounts_status", "admin_accounts", ["status"])
    op.create_index("ix_admin_accounts_lockout_until", "admin_accounts", ["lockout_until"])
    op.create_index("ix_admin_accounts_is_deleted", "admin_accounts", ["is_deleted"])

    op.create_table(
        "admin_sessions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("account_id", sa.Uuid(), nullable=False),
        sa.Column("session_id", sa.String(length=128), nullable=False),
        sa.Column("ip", sa.String(length=64), nullable=False),
        sa.Column("user_agent", sa.String(length=512), nullable=False),
        sa.Column("browser", sa.String(length=64), nullable=False),
        sa.Column("os", sa.String(length=64), nullable=False),
        sa.Column("device_type", sa.String(length=32), nullable=False),
        sa.Column("location", sa.String(length=128), nullable=False),
        sa.Column("login_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_activity", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.ForeignKeyConstraint(["account_id"], ["admin_accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("account_id", "session_id", name="uq_admin_sessions_account_session"),
    )
    op.create_index("ix_admin_sessions_account_id", "admin_sessions", ["account_id"])
    op.create_index("ix_admin_sessions_session_id", "admin_sessions", ["session_id"])
    op.create_index("ix_admin_sessions_is_active", "admin_sessions", ["is_active"])
    op.create_index("ix_admin_sessions_account_active", "admin_sessions", ["account_id", "is_active"])

    op.create_table(
        "admin_login_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("account_id", sa.Uuid(), nullable=False),
        sa.Column("ip", sa.String(length=64), nullable=False),
        sa.Column("user_agent", sa.String(length=512), nullable=False),
        sa.Column("location", sa.String(length=128), nullable=False),
        sa.Column("browser", sa.String(length=64), nullable=False),
        sa.Column("os", sa.String(length=64), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("login_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("failure_reason", sa.String(length=128), nullable=True),
        sa.ForeignKeyConstraint(["account_id"], ["admin_accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_admin_login_records_account_time",
        "admin_login_records",
        ["account_id", "login_time"],
    )

    op.create_table(
        "admin_password_history",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("account_id", sa.Uuid(), nullable=False),
        sa.Column("password_hash", sa.String(length=512), nullable=False),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["admin_accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_admin_password_history_account_id", "admin_password_history", ["account_id"])


def downgrade() -> None:
    """Drop the admin security tables."""
    op.drop_index("ix_admin_password_history_account_id", table_name="admin_password_history")
    op.drop_table("admin_password_history")
    op.drop_index("ix_admin_login_records_account_time", table_name="admin_login_records")
    op.drop_table("admin_login_records")
    op.drop_index("ix_admin_sessions_account_active", table_name="admin_sessions")
    op.drop_index("ix_admin_sessions_is_active", table_name="admin_sessions")
    op.drop_index("ix_admin_sessions_session_id", table_name="admin_sessions")
    op.drop_index("ix_admin_sessions_account_id", table_name="admin_sessions")
    op.drop_table("admin_sessions")
    op.drop_index("ix_admin_accounts_is_deleted", table_name="admin_accounts")
    op.drop_index("ix_admin_accounts_lockout_until", table_name="admin_accounts")
    op.drop_index("ix_admin_accounts_status", table_name="admin_accounts")
    op.drop_index("ix_admin_accounts_email", table_name="admin_accounts")
    op.drop_table("admin_accounts")
    admin_status.drop(op.get_bind(), checkfirst=True)
    admin_role.drop(op.get_bind(), checkfirst=True)
