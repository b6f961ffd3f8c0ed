"""Ledger tables: students, catalog, ledger accounts, payment journal

Revision ID: 001_ledger
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_ledger"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # Document sequences
    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("prefix", sa.String(20), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("last_number", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("prefix", "year", name="uq_document_sequence_prefix_year"),
    )

    # Audit log
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.BigInteger(), nullable=False),
        sa.Column("entity_identifier", sa.String(200), nullable=True),
        sa.Column("old_values", sa.JSON(), nullable=True),
        sa.Column("new_values", sa.JSON(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_entity_type", "audit_logs", ["entity_type"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"])

    # Students (read model of the enrollment service)
    op.create_table(
        "students",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("student_number", sa.String(50), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("faculty_id", sa.BigInteger(), nullable=False),
        sa.Column("department_id", sa.BigInteger(), nullable=False),
        sa.Column("academic_year", sa.String(20), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_students_student_number", "students", ["student_number"], unique=True)
    op.create_index("ix_students_faculty_id", "students", ["faculty_id"])
    op.create_index("ix_students_department_id", "students", ["department_id"])

    # Catalog: tuition prices and payment deadlines
    op.create_table(
        "tuition_prices",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("department_id", sa.BigInteger(), nullable=False),
        sa.Column("academic_year", sa.String(20), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "department_id", "academic_year", "semester", name="uq_tuition_price_department_period"
        ),
    )
    op.create_index("ix_tuition_prices_department_id", "tuition_prices", ["department_id"])

    op.create_table(
        "payment_deadlines",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("academic_year", sa.String(20), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("academic_year", "semester", name="uq_payment_deadline_period"),
    )

    # Ledger accounts
    op.create_table(
        "ledger_accounts",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("student_id", sa.BigInteger(), nullable=False),
        sa.Column("academic_year", sa.String(20), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("tuition_fee", sa.Numeric(15, 2), nullable=False),
        sa.Column("other_charges", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("discount", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("scholarship_percentage", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("forwarded", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("total_due", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("paid_amount", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("balance", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("paid_type", sa.String(20), nullable=False, server_default="per_semester"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_by_id", sa.BigInteger(), nullable=False),
        sa.Column("updated_by_id", sa.BigInteger(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"]),
        sa.CheckConstraint("tuition_fee >= 0", name="ck_ledger_accounts_tuition_fee_non_negative"),
        sa.CheckConstraint("discount <= tuition_fee", name="ck_ledger_accounts_discount_le_fee"),
        sa.CheckConstraint(
            "scholarship_percentage >= 0 AND scholarship_percentage <= 100",
            name="ck_ledger_accounts_scholarship_range",
        ),
    )
    op.create_index("ix_ledger_accounts_student_id", "ledger_accounts", ["student_id"])
    op.create_index("ix_ledger_accounts_status", "ledger_accounts", ["status"])
    op.create_index(
        "uq_ledger_accounts_active_period",
        "ledger_accounts",
        ["student_id", "academic_year", "semester"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    # Payment journal
    op.create_table(
        "payment_events",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("payment_number", sa.String(50), nullable=False),
        sa.Column("student_id", sa.BigInteger(), nullable=False),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("academic_year", sa.String(20), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("payment_type", sa.String(30), nullable=False),
        sa.Column("payment_method", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="paid"),
        sa.Column("reference", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("recorded_by_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("is_reversed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("reversed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reversed_by_id", sa.BigInteger(), nullable=True),
        sa.Column("reversal_reason", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"]),
        sa.ForeignKeyConstraint(["account_id"], ["ledger_accounts.id"]),
        sa.CheckConstraint("amount > 0", name="ck_payment_events_amount_positive"),
    )
    op.create_index(
        "ix_payment_events_payment_number", "payment_events", ["payment_number"], unique=True
    )
    op.create_index("ix_payment_events_student_id", "payment_events", ["student_id"])
    op.create_index("ix_payment_events_account_id", "payment_events", ["account_id"])
    op.create_index(
        "ix_payment_events_student_period",
        "payment_events",
        ["student_id", "academic_year", "semester"],
    )


def downgrade() -> None:
    op.drop_table("payment_events")
    op.drop_table("ledger_accounts")
    op.drop_table("payment_deadlines")
    op.drop_table("tuition_prices")
    op.drop_table("students")
    op.drop_table("audit_logs")
    op.drop_table("document_sequences")
