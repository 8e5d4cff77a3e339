"""Canonical enum values for the invoicing schema."""

from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    ROOTADMIN = "rootadmin"
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


class InvoiceStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    ISSUED = "issued"
    CANCELLED = "cancelled"


class AuditAction(str, enum.Enum):
    CREATED = "created"
    TRANSITIONED = "transitioned"
    UPDATED = "updated"
    SOFT_DELETED = "soft_deleted"


PENDING_STATUSES = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.PENDING_APPROVAL})
HISTORY_STATUSES = frozenset({InvoiceStatus.APPROVED, InvoiceStatus.ISSUED, InvoiceStatus.CANCELLED})
PROTECTED_STATUSES = frozenset({InvoiceStatus.APPROVED, InvoiceStatus.ISSUED})
