"""Pydantic schema package for API contracts."""

from invoicing.schemas.auth import RefreshRequest, TokenResponse
from invoicing.schemas.common import ErrorEnvelope
from invoicing.schemas.invoices import (
    AuditLogResponse,
    DuplicateGroupResponse,
    InvoiceCreateRequest,
    InvoiceListResponse,
    InvoiceResponse,
    InvoiceTransitionRequest,
    InvoiceUpdateRequest,
)

__all__ = [
    "AuditLogResponse",
    "DuplicateGroupResponse",
    "ErrorEnvelope",
    "InvoiceCreateRequest",
    "InvoiceListResponse",
    "InvoiceResponse",
    "InvoiceTransitionRequest",
    "InvoiceUpdateRequest",
    "RefreshRequest",
    "TokenResponse",
]
