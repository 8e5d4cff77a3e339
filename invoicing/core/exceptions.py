"""Custom exceptions for the invoicing service."""

from __future__ import annotations

from typing import Any


class InvoicingException(Exception):
    """Base exception for the invoicing service."""

    pass


class ValidationError(InvoicingException):
    """Raised when validation fails."""

    pass


class NotFoundError(InvoicingException):
    """Raised when a resource is not found."""

    pass


class DatabaseError(InvoicingException):
    """Raised when a database operation fails."""

    pass


class ServiceError(InvoicingException):
    """Raised when a service operation fails."""

    pass


class ConfigurationError(InvoicingException):
    """Raised when configuration is invalid."""

    pass


class AuthenticationError(InvoicingException):
    """Raised when authentication fails."""

    pass


class AuthorizationError(InvoicingException):
    """Raised when an authenticated actor lacks access."""

    pass


class InvoiceNotFound(NotFoundError):
    """Raised when no invoice exists for the given identifier."""

    pass


class StoreUnavailable(DatabaseError):
    """Raised when the store stays unreachable after bounded retries."""

    pass


class InvalidScope(InvoicingException):
    """Raised when the actor has no resolvable owner or company context."""

    pass


class AllocationExhausted(ServiceError):
    """Raised when numbering races outlast the allocation retry budget.

    Transient: the caller may retry the whole operation later.
    """

    def __init__(self, scope_key: str, attempts: int) -> None:
        super().__init__(f"Could not allocate an invoice number in scope {scope_key} after {attempts} attempts.")
        self.scope_key = scope_key
        self.attempts = attempts


class InvoicePolicyError(InvoicingException):
    """Base for rejected lifecycle operations; carries the unchanged invoice state."""

    def __init__(self, message: str, current: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.current = current or {}


class IllegalTransition(InvoicePolicyError):
    """Raised when a status change is not in the transition table."""

    pass


class InvoiceProtected(InvoicePolicyError):
    """Raised when an approved or issued invoice would be cancelled, deleted or edited."""

    pass
