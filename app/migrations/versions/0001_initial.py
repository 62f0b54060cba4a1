"""Initial compliance schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

leave_type = postgresql.ENUM("ANNUAL", "SICK", "UNPAID", "EXCUSE", name="leave_type", create_type=False)
leave_status = postgresql.ENUM("APPROVED", "PENDING", "REJECTED", name="leave_status", create_type=False)
remote_work_frequency = postgresql.ENUM("WEEKLY", "MONTHLY", name="remote_work_frequency", create_type=False)
audit_actor_type = postgresql.ENUM("ADMIN", "EMPLOYEE", "SYSTEM", name="audit_actor_type", create_type=False)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    bind = op.get_bind()
    leave_type.create(bind, checkfirst=True)
    leave_status.create(bind, checkfirst=True)
    remote_work_frequency.create(bind, checkfirst=True)
    audit_actor_type.create(bind, checkfirst=True)

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("hire_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("remote_work_revision", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _created_at(),
        sa.UniqueConstraint("email", name="uq_employees_email"),
    )

    op.create_table(
        "holidays",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("day_date", sa.Date(), nullable=False),
        sa.Column("region", sa.String(length=16), nullable=False),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _created_at(),
        sa.UniqueConstraint("day_date", "region", name="uq_holidays_date_region"),
    )
    op.create_index("ix_holidays_day_date", "holidays", ["day_date"], unique=False)

    op.create_table(
        "leaves",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("type", leave_type, nullable=False),
        sa.Column("status", leave_status, nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("note", sa.String(length=1000), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_leaves_employee_id", "leaves", ["employee_id"], unique=False)

    op.create_table(
        "company_settings",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("singleton_key", sa.String(length=32), nullable=False, server_default=sa.text("'default'")),
        sa.Column("eod_deadline_hour", sa.Integer(), nullable=False, server_default=sa.text("23")),
        sa.Column("eod_deadline_minute", sa.Integer(), nullable=False, server_default=sa.text("59")),
        sa.Column("eod_grace_days", sa.Integer(), nullable=False, server_default=sa.text("2")),
        sa.Column(
            "remote_work_frequency",
            remote_work_frequency,
            nullable=False,
            server_default=sa.text("'WEEKLY'"),
        ),
        sa.Column("remote_work_limit", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("remote_window_open", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("remote_window_start", sa.Date(), nullable=True),
        sa.Column("remote_window_end", sa.Date(), nullable=True),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint("singleton_key", name="uq_company_settings_singleton_key"),
    )

    op.create_table(
        "remote_work_logs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("day_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(length=1000), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("employee_id", "day_date", name="uq_remote_work_logs_employee_date"),
    )
    op.create_index("ix_remote_work_logs_employee_id", "remote_work_logs", ["employee_id"], unique=False)
    op.create_index("ix_remote_work_logs_day_date", "remote_work_logs", ["day_date"], unique=False)

    op.create_table(
        "eod_reports",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("day_date", sa.Date(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column(
            "tasks",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("hours_worked", sa.Float(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_late", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("employee_id", "day_date", name="uq_eod_reports_employee_date"),
    )
    op.create_index("ix_eod_reports_employee_id", "eod_reports", ["employee_id"], unique=False)
    op.create_index("ix_eod_reports_day_date", "eod_reports", ["day_date"], unique=False)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column(
            "ts_utc",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("actor_type", audit_actor_type, nullable=False),
        sa.Column("actor_id", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=255), nullable=True),
        sa.Column("entity_id", sa.String(length=255), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "details",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
    )
    op.create_index("ix_audit_logs_ts_utc", "audit_logs", ["ts_utc"], unique=False)

    op.create_table(
        "notification_jobs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=True),
        sa.Column("job_type", sa.String(length=100), nullable=False),
        sa.Column(
            "payload",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("scheduled_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("idempotency_key", sa.String(length=255), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_notification_jobs_employee_id", "notification_jobs", ["employee_id"], unique=False)
    op.create_index("ix_notification_jobs_scheduled_at_utc", "notification_jobs", ["scheduled_at_utc"], unique=False)
    op.create_index("ix_notification_jobs_status", "notification_jobs", ["status"], unique=False)
    op.create_index("ix_notification_jobs_idempotency_key", "notification_jobs", ["idempotency_key"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_notification_jobs_idempotency_key", table_name="notification_jobs")
    op.drop_index("ix_notification_jobs_status", table_name="notification_jobs")
    op.drop_index("ix_notification_jobs_scheduled_at_utc", table_name="notification_jobs")
    op.drop_index("ix_notification_jobs_employee_id", table_name="notification_jobs")
    op.drop_table("notification_jobs")

    op.drop_index("ix_audit_logs_ts_utc", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_eod_reports_day_date", table_name="eod_reports")
    op.drop_index("ix_eod_reports_employee_id", table_name="eod_reports")
    op.drop_table("eod_reports")

    op.drop_index("ix_remote_work_logs_day_date", table_name="remote_work_logs")
    op.drop_index("ix_remote_work_logs_employee_id", table_name="remote_work_logs")
    op.drop_table("remote_work_logs")

    op.drop_table("company_settings")

    op.drop_index("ix_leaves_employee_id", table_name="leaves")
    op.drop_table("leaves")

    op.drop_index("ix_holidays_day_date", table_name="holidays")
    op.drop_table("holidays")

    op.drop_table("employees")

    bind = op.get_bind()
    audit_actor_type.drop(bind, checkfirst=True)
    remote_work_frequency.drop(bind, checkfirst=True)
    leave_status.drop(bind, checkfirst=True)
    leave_type.drop(bind, checkfirst=True)
