"""Invoice request/response schemas for API contracts."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from invoicing.models.enums import InvoiceStatus


class InvoiceServiceLine(BaseModel):
    description: str = Field(min_length=1, max_length=500)
    hours: float = Field(default=0, ge=0)
    rate: float = Field(default=0, ge=0)
    amount: float = Field(default=0, ge=0)


class InvoiceDetails(BaseModel):
    client_company: str | None = Field(default=None, min_length=1, max_length=255)
    client_id: str | None = Field(default=None, max_length=64)
    invoice_date: date | None = None
    due_date: date | None = None
    service_period_start: date | None = None
    service_period_end: date | None = None
    language: str | None = Field(default=None, min_length=2, max_length=8)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    services: list[InvoiceServiceLine] | None = None
    subtotal: Decimal | None = Field(default=None, ge=0)
    vat_amount: Decimal | None = Field(default=None, ge=0)
    total: Decimal | None = Field(default=None, ge=0)

    def to_payload(self) -> dict[str, Any]:
        """Only the fields the caller actually sent."""
        payload = self.model_dump(mode="python", exclude_unset=True, exclude_none=True, exclude={"services"})
        if self.services is not None:
            payload["services"] = [line.model_dump(mode="json") for line in self.services]
        return payload


class InvoiceCreateRequest(InvoiceDetails):
    client_company: str = Field(min_length=1, max_length=255)
    request_key: str | None = Field(default=None, min_length=8, max_length=128)
    reference_date: date | None = None

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload.pop("request_key", None)
        payload.pop("reference_date", None)
        payload["client_company"] = self.client_company
        return payload


class InvoiceUpdateRequest(InvoiceDetails):
    pass


class InvoiceTransitionRequest(BaseModel):
    target_status: InvoiceStatus


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_number: str
    scope_key: str
    owner_id: int
    company_id: int | None = None
    status: InvoiceStatus
    client_company: str
    client_id: str | None = None
    invoice_date: date | None = None
    due_date: date | None = None
    service_period_start: date | None = None
    service_period_end: date | None = None
    language: str
    currency: str
    services: list[dict[str, Any]] = Field(default_factory=list)
    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal
    created_at: datetime
    approved_at: datetime | None = None
    approved_by: int | None = None
    issued_at: datetime | None = None
    deleted_at: datetime | None = None


class InvoiceListResponse(BaseModel):
    items: list[InvoiceResponse]
    total: int
    limit: int
    offset: int


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_id: int
    invoice_number: str
    actor_id: int
    action: str
    from_status: str | None = None
    to_status: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class DuplicateGroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    scope_key: str
    invoice_number: str
    invoice_ids: list[int]
