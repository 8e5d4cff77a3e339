"""Invoice audit trail written in the same transaction as the change it records."""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from invoicing.models.audit_log import InvoiceAuditLog
from invoicing.models.enums import AuditAction, InvoiceStatus
from invoicing.models.invoice import Invoice


def _status_value(status: InvoiceStatus | str | None) -> str | None:
    if status is None:
        return None
    return InvoiceStatus(status).value


def record_audit(
    db: Session,
    invoice: Invoice,
    actor_id: int,
    action: AuditAction,
    from_status: InvoiceStatus | str | None = None,
    to_status: InvoiceStatus | str | None = None,
    details: dict[str, Any] | None = None,
) -> InvoiceAuditLog:
    """Stage an audit row on the session; the caller commits it with the change."""
    entry = InvoiceAuditLog(
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
        scope_key=invoice.scope_key,
        actor_id=actor_id,
        action=action.value,
        from_status=_status_value(from_status),
        to_status=_status_value(to_status),
        details=details or {},
    )
    db.add(entry)
    return entry


def list_audit(db: Session, invoice_id: int) -> list[InvoiceAuditLog]:
    return (
        db.query(InvoiceAuditLog)
        .filter(InvoiceAuditLog.invoice_id == invoice_id)
        .order_by(InvoiceAuditLog.created_at.desc(), InvoiceAuditLog.id.desc())
        .all()
    )
