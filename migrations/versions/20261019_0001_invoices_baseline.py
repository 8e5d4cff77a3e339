"""invoices with scoped numbering, soft delete and audit trail

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_ROW_CLAUSE = "deleted_at IS NULL"


def upgrade() -> None:
    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("invoice_number", sa.String(length=64), nullable=False),
        sa.Column("scope_key", sa.String(length=64), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=True),
        sa.Column("request_key", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="draft"),
        sa.Column("client_company", sa.String(length=255), nullable=False),
        sa.Column("client_id", sa.String(length=64), nullable=True),
        sa.Column("invoice_date", sa.Date(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("service_period_start", sa.Date(), nullable=True),
        sa.Column("service_period_end", sa.Date(), nullable=True),
        sa.Column("language", sa.String(length=8), nullable=False, server_default="en"),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="EUR"),
        sa.Column("services", sa.JSON(), nullable=False),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("vat_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("scope_key", "request_key", name="uq_invoices_scope_request_key"),
        sa.CheckConstraint(
            "status IN ('draft', 'pending_approval', 'approved', 'issued', 'cancelled')",
            name="invoice_status",
        ),
    )
    op.create_index("ix_invoices_scope_key", "invoices", ["scope_key"])
    op.create_index("ix_invoices_owner_id", "invoices", ["owner_id"])
    op.create_index("ix_invoices_company_id", "invoices", ["company_id"])
    op.create_index("idx_invoices_scope_status", "invoices", ["scope_key", "status"])
    op.create_index(
        "uq_invoices_scope_number_active",
        "invoices",
        ["scope_key", "invoice_number"],
        unique=True,
        sqlite_where=sa.text(ACTIVE_ROW_CLAUSE),
        postgresql_where=sa.text(ACTIVE_ROW_CLAUSE),
    )

    op.create_table(
        "invoice_audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("invoice_id", sa.Integer(), nullable=False),
        sa.Column("invoice_number", sa.String(length=64), nullable=False),
        sa.Column("scope_key", sa.String(length=64), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=32), nullable=False),
        sa.Column("from_status", sa.String(length=32), nullable=True),
        sa.Column("to_status", sa.String(length=32), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["invoice_id"], ["invoices.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_invoice_audit_logs_scope_key", "invoice_audit_logs", ["scope_key"])
    op.create_index(
        "idx_invoice_audit_logs_invoice_created",
        "invoice_audit_logs",
        ["invoice_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("idx_invoice_audit_logs_invoice_created", table_name="invoice_audit_logs")
    op.drop_index("ix_invoice_audit_logs_scope_key", table_name="invoice_audit_logs")
    op.drop_table("invoice_audit_logs")

    op.drop_index("uq_invoices_scope_number_active", table_name="invoices")
    op.drop_index("idx_invoices_scope_status", table_name="invoices")
    op.drop_index("ix_invoices_company_id", table_name="invoices")
    op.drop_index("ix_invoices_owner_id", table_name="invoices")
    op.drop_index("ix_invoices_scope_key", table_name="invoices")
    op.drop_table("invoices")
