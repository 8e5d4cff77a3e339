"""Invoice model module."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Enum,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    inspect,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from invoicing.core.exceptions import ValidationError
from invoicing.models.base import AuditMixin, Base
from invoicing.models.enums import InvoiceStatus

# Partial unique index backing number allocation. Soft-deleted rows drop out of it.
ACTIVE_NUMBER_INDEX = "uq_invoices_scope_number_active"
REQUEST_KEY_CONSTRAINT = "uq_invoices_scope_request_key"
ACTIVE_ROW_CLAUSE = "deleted_at IS NULL"

IMMUTABLE_FIELDS = ("invoice_number", "scope_key", "owner_id", "company_id")


class Invoice(Base, AuditMixin):
    __tablename__ = "invoices"
    __table_args__ = (
        Index(
            ACTIVE_NUMBER_INDEX,
            "scope_key",
            "invoice_number",
            unique=True,
            sqlite_where=text(ACTIVE_ROW_CLAUSE),
            postgresql_where=text(ACTIVE_ROW_CLAUSE),
        ),
        UniqueConstraint("scope_key", "request_key", name=REQUEST_KEY_CONSTRAINT),
        Index("idx_invoices_scope_status", "scope_key", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    invoice_number: Mapped[str] = mapped_column(String(64), nullable=False)
    scope_key: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    company_id: Mapped[int | None] = mapped_column(Integer, index=True)
    request_key: Mapped[str | None] = mapped_column(String(128))

    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(
            InvoiceStatus,
            name="invoice_status",
            native_enum=False,
            create_constraint=True,
            length=32,
            values_callable=lambda members: [member.value for member in members],
        ),
        default=InvoiceStatus.DRAFT,
        nullable=False,
    )

    client_company: Mapped[str] = mapped_column(String(255), nullable=False)
    client_id: Mapped[str | None] = mapped_column(String(64))
    invoice_date: Mapped[date | None] = mapped_column(Date)
    due_date: Mapped[date | None] = mapped_column(Date)
    service_period_start: Mapped[date | None] = mapped_column(Date)
    service_period_end: Mapped[date | None] = mapped_column(Date)
    language: Mapped[str] = mapped_column(String(8), default="en", nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="EUR", nullable=False)
    services: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    vat_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_by: Mapped[int | None] = mapped_column(Integer)
    issued_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    @validates(*IMMUTABLE_FIELDS)
    def _validate_immutable(self, key: str, value: Any) -> Any:
        if inspect(self).has_identity and getattr(self, key) != value:
            raise ValidationError(f"Invoice field '{key}' is immutable after creation.")
        return value

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def snapshot(self) -> dict[str, Any]:
        """Plain view of identity and lifecycle fields, attached to rejected operations."""
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "scope_key": self.scope_key,
            "status": InvoiceStatus(self.status).value,
            "created_at": self.created_at,
            "approved_at": self.approved_at,
            "issued_at": self.issued_at,
            "deleted_at": self.deleted_at,
        }
