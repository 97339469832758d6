"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


pay_type = postgresql.ENUM("hourly", "monthly", name="pay_type", create_type=False)


def upgrade() -> None:
    pay_type.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("subject", sa.String(length=128), nullable=False, unique=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "schedules",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("day_of_week", sa.String(length=16), nullable=False),
        sa.Column("pay_type", pay_type, nullable=False, server_default="hourly"),
        sa.Column("hours", sa.Numeric(5, 2), nullable=True),
        sa.Column("hourly_rate", sa.Numeric(12, 2), nullable=True),
        sa.Column("monthly_salary", sa.Numeric(12, 2), nullable=True),
        sa.Column("tag", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.String(length=2000), nullable=True),
        sa.Column("is_future", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "((pay_type = 'hourly' AND hours IS NOT NULL AND hourly_rate IS NOT NULL "
            "AND monthly_salary IS NULL) "
            "OR (pay_type = 'monthly' AND monthly_salary IS NOT NULL "
            "AND hours IS NULL AND hourly_rate IS NULL))",
            name="ck_schedules_pay_fields_match_pay_type",
        ),
        sa.CheckConstraint("hours IS NULL OR (hours > 0 AND hours <= 24)", name="ck_schedules_hours_range"),
        sa.CheckConstraint(
            "hourly_rate IS NULL OR hourly_rate >= 0",
            name="ck_schedules_hourly_rate_non_negative",
        ),
        sa.CheckConstraint(
            "monthly_salary IS NULL OR monthly_salary > 0",
            name="ck_schedules_monthly_salary_positive",
        ),
    )
    op.create_index("ix_schedules_owner_date", "schedules", ["owner_id", "date"])

    op.create_table(
        "expenses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("vendor", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("receipt_ref", sa.String(length=1024), nullable=True),
        sa.Column("notes", sa.String(length=2000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
    )
    op.create_index("ix_expenses_owner_date", "expenses", ["owner_id", "date"])


def downgrade() -> None:
    op.drop_index("ix_expenses_owner_date", table_name="expenses")
    op.drop_table("expenses")

    op.drop_index("ix_schedules_owner_date", table_name="schedules")
    op.drop_table("schedules")

    op.drop_table("users")

    pay_type.drop(op.get_bind(), checkfirst=True)
