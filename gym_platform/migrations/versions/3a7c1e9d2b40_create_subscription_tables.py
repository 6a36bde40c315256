"""create user, request and roster tables

Revision ID: 3a7c1e9d2b40
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "3a7c1e9d2b40"
down_revision = None
branch_labels = None
depends_on = None

REQUEST_TABLES = ("subscription_requests", "renewal_requests")


def _request_table(name: str) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(length=64),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("plan_type", sa.String(length=16), nullable=False),
        sa.Column("receipt_image", sa.Text(), nullable=False),
        sa.Column("submission_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("processed_by", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("admin_note", sa.String(length=255), nullable=True),
    )
    op.create_index(f"ix_{name}_user_id", name, ["user_id"])
    op.create_index(f"ix_{name}_status", name, ["status"])
    # At most one pending request per user and kind.
    op.create_index(
        f"uq_{name}_pending_user",
        name,
        ["user_id"],
        unique=True,
        sqlite_where=sa.text("status = 'pending'"),
        postgresql_where=sa.text("status = 'pending'"),
    )


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing = set(inspector.get_table_names())

    if "users" not in existing:
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=64), primary_key=True),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False, server_default=""),
            sa.Column("phone_number", sa.String(length=32), nullable=True),
            sa.Column("role", sa.String(length=16), nullable=False, server_default="member"),
            sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("0")),
            sa.Column("subscription_status", sa.String(length=16), nullable=False, server_default="pending"),
            sa.Column("subscription_start_date", sa.Date(), nullable=True),
            sa.Column("subscription_end_date", sa.Date(), nullable=True),
            sa.Column("plan_type", sa.String(length=16), nullable=False, server_default="monthly"),
            sa.Column("receipt_image", sa.Text(), nullable=True),
            sa.Column("submission_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        )
        op.create_index("ix_users_email", "users", ["email"])
        op.create_index("ix_users_subscription_status", "users", ["subscription_status"])

    for name in REQUEST_TABLES:
        if name not in existing:
            _request_table(name)

    if "members" not in existing:
        op.create_table(
            "members",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "user_id",
                sa.String(length=64),
                sa.ForeignKey("users.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("phone_number", sa.String(length=32), nullable=True),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=False),
            sa.Column("duration", sa.Integer(), nullable=False),
            sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        )
        op.create_index("ix_members_user_id", "members", ["user_id"])

    if "renewal_history" not in existing:
        op.create_table(
            "renewal_history",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "member_id",
                sa.Integer(),
                sa.ForeignKey("members.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("duration", sa.Integer(), nullable=False),
            sa.Column("price", sa.Numeric(10, 2), nullable=False),
            sa.Column("previous_end_date", sa.Date(), nullable=True),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=False),
            sa.Column("renewal_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        )
        op.create_index("ix_renewal_history_member_id", "renewal_history", ["member_id"])


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing = set(inspector.get_table_names())
    for name in ("renewal_history", "members", *REQUEST_TABLES, "users"):
        if name in existing:
            op.drop_table(name)
