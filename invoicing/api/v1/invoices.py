"""Invoice endpoints for API v1."""

from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, Header, HTTPException, Query, status

from invoicing.api.v1._authz import authorize, map_auth_error, map_domain_error
from invoicing.auth import rbac
from invoicing.auth.tenant_context import ActorContext
from invoicing.core.exceptions import InvoicingException
from invoicing.database.db import get_db_session
from invoicing.schemas.invoices import (
    AuditLogResponse,
    DuplicateGroupResponse,
    InvoiceCreateRequest,
    InvoiceListResponse,
    InvoiceResponse,
    InvoiceTransitionRequest,
    InvoiceUpdateRequest,
)
from invoicing.services.invoice_service import InvoiceService
from invoicing.services.views import InvoiceView

router = APIRouter(prefix="/invoices", tags=["invoices"])

RETRY_AFTER_SECONDS = "1"


def _authorize(authorization: str | None, scopes: list[str], company_id: int | None = None) -> ActorContext:
    try:
        return authorize(authorization=authorization, scopes=scopes, company_id=company_id)
    except InvoicingException as exc:
        code, detail = map_auth_error(exc)
        raise HTTPException(status_code=code, detail=detail) from exc


def _raise_http(exc: InvoicingException) -> NoReturn:
    code, envelope = map_domain_error(exc)
    headers = {"Retry-After": RETRY_AFTER_SECONDS} if code == status.HTTP_503_SERVICE_UNAVAILABLE else None
    raise HTTPException(status_code=code, detail=envelope.model_dump(mode="json"), headers=headers) from exc


def _list_response(view: InvoiceView, limit: int, offset: int) -> InvoiceListResponse:
    return InvoiceListResponse(
        items=[InvoiceResponse.model_validate(invoice) for invoice in view.page(limit=limit, offset=offset)],
        total=view.count(),
        limit=limit,
        offset=offset,
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=InvoiceResponse)
def create_invoice(
    payload: InvoiceCreateRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_company_id: int | None = Header(default=None, alias="X-Company-Id"),
) -> InvoiceResponse:
    actor = _authorize(authorization, [rbac.INVOICES_CREATE], x_company_id)
    with get_db_session() as session:
        try:
            invoice = InvoiceService(db=session).create_invoice(
                actor,
                payload.to_payload(),
                request_key=payload.request_key,
                reference_date=payload.reference_date,
            )
        except InvoicingException as exc:
            _raise_http(exc)
        return InvoiceResponse.model_validate(invoice)


@router.get("/pending", response_model=InvoiceListResponse)
def list_pending(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_company_id: int | None = Header(default=None, alias="X-Company-Id"),
) -> InvoiceListResponse:
    actor = _authorize(authorization, [rbac.INVOICES_READ], x_company_id)
    with get_db_session() as session:
        try:
            view = InvoiceService(db=session).list_pending(actor)
            return _list_response(view, limit, offset)
        except InvoicingException as exc:
            _raise_http(exc)


@router.get("/history", response_model=InvoiceListResponse)
def list_history(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_company_id: int | None = Header(default=None, alias="X-Company-Id"),
) -> InvoiceListResponse:
    actor = _authorize(authorization, [rbac.INVOICES_READ], x_company_id)
    with get_db_session() as session:
        try:
            view = InvoiceService(db=session).list_history(actor)
            return _list_response(view, limit, offset)
        except InvoicingException as exc:
            _raise_http(exc)


@router.get("/integrity/duplicates", response_model=list[DuplicateGroupResponse])
def list_duplicate_numbers(
    all_scopes: bool = Query(default=False),
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_company_id: int | None = Header(default=None, alias="X-Company-Id"),
) -> list[DuplicateGroupResponse]:
    actor = _authorize(authorization, [rbac.INTEGRITY_READ], x_company_id)
    with get_db_session() as session:
        try:
            groups = InvoiceService(db=session).find_duplicates(actor, all_scopes=all_scopes)
        except InvoicingException as exc:
            _raise_http(exc)
    return [
        DuplicateGroupResponse(
            scope_key=group.scope_key,
            invoice_number=group.invoice_number,
            invoice_ids=list(group.invoice_ids),
        )
        for group in groups
    ]


@router.get("/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(
    invoice_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_company_id: int | None = Header(default=None, alias="X-Company-Id"),
) -> InvoiceResponse:
    actor = _authorize(authorization, [rbac.INVOICES_READ], x_company_id)
    with get_db_session() as session:
        try:
            invoice = InvoiceService(db=session).get_invoice(invoice_id, actor)
        except InvoicingException as exc:
            _raise_http(exc)
        return InvoiceResponse.model_validate(invoice)


@router.patch("/{invoice_id}", response_model=InvoiceResponse)
def update_invoice(
    invoice_id: int,
    payload: InvoiceUpdateRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_company_id: int | None = Header(default=None, alias="X-Company-Id"),
) -> InvoiceResponse:
    actor = _authorize(authorization, [rbac.INVOICES_UPDATE], x_company_id)
    with get_db_session() as session:
        try:
            invoice = InvoiceService(db=session).update_details(invoice_id, payload.to_payload(), actor)
        except InvoicingException as exc:
            _raise_http(exc)
        return InvoiceResponse.model_validate(invoice)


@router.post("/{invoice_id}/transition", response_model=InvoiceResponse)
def transition_invoice(
    invoice_id: int,
    payload: InvoiceTransitionRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_company_id: int | None = Header(default=None, alias="X-Company-Id"),
) -> InvoiceResponse:
    # Capability depends on the target status and is checked by the service.
    actor = _authorize(authorization, [], x_company_id)
    with get_db_session() as session:
        try:
            invoice = InvoiceService(db=session).transition(invoice_id, payload.target_status, actor)
        except InvoicingException as exc:
            _raise_http(exc)
        return InvoiceResponse.model_validate(invoice)


@router.delete("/{invoice_id}", response_model=InvoiceResponse)
def delete_invoice(
    invoice_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_company_id: int | None = Header(default=None, alias="X-Company-Id"),
) -> InvoiceResponse:
    actor = _authorize(authorization, [rbac.INVOICES_DELETE], x_company_id)
    with get_db_session() as session:
        try:
            invoice = InvoiceService(db=session).soft_delete(invoice_id, actor)
        except InvoicingException as exc:
            _raise_http(exc)
        return InvoiceResponse.model_validate(invoice)


@router.get("/{invoice_id}/audit", response_model=list[AuditLogResponse])
def list_invoice_audit(
    invoice_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_company_id: int | None = Header(default=None, alias="X-Company-Id"),
) -> list[AuditLogResponse]:
    actor = _authorize(authorization, [rbac.AUDIT_READ], x_company_id)
    with get_db_session() as session:
        try:
            entries = InvoiceService(db=session).list_audit(invoice_id, actor)
        except InvoicingException as exc:
            _raise_http(exc)
        return [AuditLogResponse.model_validate(entry) for entry in entries]
