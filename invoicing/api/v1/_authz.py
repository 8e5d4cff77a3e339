"""Shared authorization and error mapping helpers for API v1 route modules."""

from __future__ import annotations

from fastapi import status

from invoicing.auth.tenant_context import ActorContext
from invoicing.core.config import get_config
from invoicing.core.dependencies import get_current_actor
from invoicing.core.exceptions import (
    AllocationExhausted,
    AuthenticationError,
    AuthorizationError,
    InvalidScope,
    InvoicePolicyError,
    InvoiceProtected,
    NotFoundError,
    StoreUnavailable,
    ValidationError,
)
from invoicing.schemas.common import ErrorEnvelope


def _extract_bearer_token(authorization: str | None) -> str:
    if authorization is None or not authorization.strip():
        raise AuthenticationError("Authorization header is required.")
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Authorization header must use Bearer token.")
    return parts[1].strip()


def authorize(authorization: str | None, scopes: list[str], company_id: int | None = None) -> ActorContext:
    token = _extract_bearer_token(authorization)
    actor = get_current_actor(token=token, settings=get_config(), header_company_id=company_id)
    actor.require(*scopes)
    return actor


def map_auth_error(exc: Exception) -> tuple[int, str]:
    if isinstance(exc, AuthenticationError):
        return 401, str(exc)
    if isinstance(exc, AuthorizationError):
        return 403, str(exc)
    return 401, "Unauthorized."


def map_domain_error(exc: Exception) -> tuple[int, ErrorEnvelope]:
    """Translate a service exception into an HTTP status and error body."""
    if isinstance(exc, (AuthenticationError, AuthorizationError)):
        code, detail = map_auth_error(exc)
        error_code = "unauthenticated" if code == 401 else "forbidden"
        return code, ErrorEnvelope(error_code=error_code, detail=detail)
    if isinstance(exc, InvoicePolicyError):
        error_code = "invoice_protected" if isinstance(exc, InvoiceProtected) else "illegal_transition"
        return status.HTTP_409_CONFLICT, ErrorEnvelope(error_code=error_code, detail=str(exc), current=exc.current)
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND, ErrorEnvelope(error_code="not_found", detail=str(exc))
    if isinstance(exc, InvalidScope):
        return status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorEnvelope(error_code="invalid_scope", detail=str(exc))
    if isinstance(exc, ValidationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorEnvelope(error_code="validation_error", detail=str(exc))
    if isinstance(exc, AllocationExhausted):
        return status.HTTP_503_SERVICE_UNAVAILABLE, ErrorEnvelope(error_code="allocation_exhausted", detail=str(exc))
    if isinstance(exc, StoreUnavailable):
        return status.HTTP_503_SERVICE_UNAVAILABLE, ErrorEnvelope(error_code="store_unavailable", detail=str(exc))
    return status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorEnvelope(error_code="internal_error", detail="Internal error.")
