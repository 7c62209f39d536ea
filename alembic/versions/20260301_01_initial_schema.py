"""initial schema: roles, users, vehicles, scans, activity logs, reports

Revision ID: 20260301_01
Revises:
Create Date: 2026-03-01
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20260301_01"
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(table_name: str) -> bool:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    return table_name in set(inspector.get_table_names())


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    if not _table_exists("roles"):
        op.create_table(
            "roles",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("name", sa.String(length=64), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("can_view", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("can_edit", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("can_export", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("can_delete", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )
        op.create_index("ix_roles_name", "roles", ["name"], unique=True)

    if not _table_exists("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("username", sa.String(length=128), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column("avatar", sa.String(length=512), nullable=True),
            sa.Column("role_id", sa.String(length=36), sa.ForeignKey("roles.id"), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )
        op.create_index("ix_users_username", "users", ["username"], unique=True)
        op.create_index("ix_users_email", "users", ["email"], unique=True)
        op.create_index("ix_users_role_id", "users", ["role_id"])

    if not _table_exists("vehicles"):
        op.create_table(
            "vehicles",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("plate_number", sa.String(length=32), nullable=False),
            sa.Column("vehicle_type", sa.String(length=64), nullable=False),
            sa.Column("color", sa.String(length=64), nullable=False),
            sa.Column("owner_name", sa.String(length=255), nullable=False),
            sa.Column("tax_status", sa.String(length=16), nullable=False),
            sa.Column("tax_expiry_date", sa.DateTime(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )
        op.create_index("ix_vehicles_plate_number", "vehicles", ["plate_number"], unique=True)
        op.create_index("ix_vehicles_tax_status", "vehicles", ["tax_status"])
        op.create_index("ix_vehicles_is_active", "vehicles", ["is_active"])

    if not _table_exists("scans"):
        op.create_table(
            "scans",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("plate_number", sa.String(length=32), nullable=False),
            sa.Column("vehicle_type", sa.String(length=64), nullable=False),
            sa.Column("color", sa.String(length=64), nullable=False),
            sa.Column("owner_name", sa.String(length=255), nullable=False),
            sa.Column("tax_status", sa.String(length=16), nullable=False),
            sa.Column("scan_time", sa.DateTime(), nullable=False),
            sa.Column("location", sa.String(length=255), nullable=False),
            sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("ip_address", sa.String(length=64), nullable=True),
            sa.Column("user_agent", sa.String(length=512), nullable=True),
            sa.Column(
                "vehicle_id",
                sa.String(length=36),
                sa.ForeignKey("vehicles.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("details", sa.Text(), nullable=True),
        )
        op.create_index("ix_scans_plate_number", "scans", ["plate_number"])
        op.create_index("ix_scans_tax_status", "scans", ["tax_status"])
        op.create_index("ix_scans_scan_time", "scans", ["scan_time"])
        op.create_index("ix_scans_user_id", "scans", ["user_id"])
        op.create_index("ix_scans_vehicle_id", "scans", ["vehicle_id"])

    if not _table_exists("activity_logs"):
        op.create_table(
            "activity_logs",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("action", sa.String(length=128), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("status", sa.String(length=16), nullable=False),
            sa.Column("timestamp", sa.DateTime(), nullable=False),
            sa.Column("ip_address", sa.String(length=64), nullable=True),
            sa.Column("user_agent", sa.String(length=512), nullable=True),
            sa.Column("details", sa.Text(), nullable=True),
        )
        op.create_index("ix_activity_logs_action", "activity_logs", ["action"])
        op.create_index("ix_activity_logs_user_id", "activity_logs", ["user_id"])
        op.create_index("ix_activity_logs_status", "activity_logs", ["status"])
        op.create_index("ix_activity_logs_timestamp", "activity_logs", ["timestamp"])

    if not _table_exists("reports"):
        op.create_table(
            "reports",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("report_type", sa.String(length=32), nullable=False),
            sa.Column("start_date", sa.DateTime(), nullable=False),
            sa.Column("end_date", sa.DateTime(), nullable=False),
            sa.Column("filter_type", sa.String(length=32), nullable=False),
            sa.Column("file_format", sa.String(length=16), nullable=False),
            sa.Column("status", sa.String(length=16), nullable=False),
            sa.Column("file_path", sa.String(length=1024), nullable=True),
            sa.Column("generated_by", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
            *_timestamps(),
        )
        op.create_index("ix_reports_status", "reports", ["status"])
        op.create_index("ix_reports_generated_by", "reports", ["generated_by"])
        op.create_index("ix_reports_created_at", "reports", ["created_at"])


def downgrade() -> None:
    for table in ("reports", "activity_logs", "scans", "vehicles", "users", "roles"):
        if _table_exists(table):
            op.drop_table(table)
