"""Create users, leave_balances and leave_requests.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


ROLE_VALUES = ("employee", "manager")
LEAVE_TYPE_VALUES = ("vacation", "sick", "personal")
LEAVE_STATUS_VALUES = ("pending", "approved", "rejected")


def _enum(values: tuple[str, ...], name: str, *, create_type: bool = True) -> postgresql.ENUM:
    return postgresql.ENUM(*values, name=name, create_type=create_type)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    _enum(ROLE_VALUES, "role").create(bind, checkfirst=True)
    _enum(LEAVE_TYPE_VALUES, "leave_type").create(bind, checkfirst=True)
    _enum(LEAVE_STATUS_VALUES, "leave_status").create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", _enum(ROLE_VALUES, "role", create_type=False), nullable=False, server_default="employee"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_is_active", "users", ["is_active"])

    op.create_table(
        "leave_balances",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("leave_type", _enum(LEAVE_TYPE_VALUES, "leave_type", create_type=False), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("total_days", sa.Integer(), nullable=False),
        sa.Column("used_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("remaining_days", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "leave_type", "year", name="uq_leave_balances_user_type_year"),
        sa.CheckConstraint("total_days >= 0", name="ck_leave_balances_total_days_non_negative"),
        sa.CheckConstraint("used_days >= 0", name="ck_leave_balances_used_days_non_negative"),
        sa.CheckConstraint("remaining_days >= 0", name="ck_leave_balances_remaining_days_non_negative"),
    )
    op.create_index("ix_leave_balances_id", "leave_balances", ["id"])
    op.create_index("ix_leave_balances_user_id", "leave_balances", ["user_id"])

    op.create_table(
        "leave_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("leave_type", _enum(LEAVE_TYPE_VALUES, "leave_type", create_type=False), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("days_requested", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(500), nullable=False),
        sa.Column("status", _enum(LEAVE_STATUS_VALUES, "leave_status", create_type=False), nullable=False, server_default="pending"),
        sa.Column("approver_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("days_requested >= 1", name="ck_leave_requests_days_requested_positive"),
    )
    op.create_index("ix_leave_requests_id", "leave_requests", ["id"])
    op.create_index("ix_leave_requests_user_id", "leave_requests", ["user_id"])
    op.create_index("ix_leave_requests_leave_type", "leave_requests", ["leave_type"])
    op.create_index("ix_leave_requests_start_date", "leave_requests", ["start_date"])
    op.create_index("ix_leave_requests_end_date", "leave_requests", ["end_date"])
    op.create_index("ix_leave_requests_status", "leave_requests", ["status"])
    op.create_index("ix_leave_requests_approver_id", "leave_requests", ["approver_id"])
    op.create_index("ix_leave_requests_user_status", "leave_requests", ["user_id", "status"])


def downgrade() -> None:
    op.drop_table("leave_requests")
    op.drop_table("leave_balances")
    op.drop_table("users")
    bind = op.get_bind()
    _enum(LEAVE_STATUS_VALUES, "leave_status").drop(bind, checkfirst=True)
    _enum(LEAVE_TYPE_VALUES, "leave_type").drop(bind, checkfirst=True)
    _enum(ROLE_VALUES, "role").drop(bind, checkfirst=True)
