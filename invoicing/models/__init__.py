"""SQLAlchemy model package for the invoicing schema."""

from invoicing.models.audit_log import InvoiceAuditLog
from invoicing.models.base import Base
from invoicing.models.enums import (
    HISTORY_STATUSES,
    PENDING_STATUSES,
    PROTECTED_STATUSES,
    AuditAction,
    InvoiceStatus,
    UserRole,
)
from invoicing.models.invoice import Invoice

__all__ = [
    "AuditAction",
    "Base",
    "HISTORY_STATUSES",
    "Invoice",
    "InvoiceAuditLog",
    "InvoiceStatus",
    "PENDING_STATUSES",
    "PROTECTED_STATUSES",
    "UserRole",
]
