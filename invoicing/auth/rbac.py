"""Role-based capability helpers."""

from __future__ import annotations

from collections.abc import Iterable

from invoicing.core.exceptions import AuthorizationError

INVOICES_READ = "invoices.read"
INVOICES_CREATE = "invoices.create"
INVOICES_UPDATE = "invoices.update"
INVOICES_SUBMIT = "invoices.submit"
INVOICES_APPROVE = "invoices.approve"
INVOICES_ISSUE = "invoices.issue"
INVOICES_CANCEL = "invoices.cancel"
INVOICES_DELETE = "invoices.delete"
AUDIT_READ = "invoices.audit.read"
INTEGRITY_READ = "invoices.integrity.read"

# Scope strings are kept explicit for endpoint-level declarations.
ROLE_SCOPES: dict[str, set[str]] = {
    "rootadmin": {
        "*",
    },
    "admin": {
        INVOICES_READ,
        INVOICES_CREATE,
        INVOICES_UPDATE,
        INVOICES_SUBMIT,
        INVOICES_APPROVE,
        INVOICES_ISSUE,
        INVOICES_CANCEL,
        INVOICES_DELETE,
        AUDIT_READ,
        INTEGRITY_READ,
    },
    "manager": {
        INVOICES_READ,
        INVOICES_CREATE,
        INVOICES_UPDATE,
        INVOICES_SUBMIT,
        INVOICES_APPROVE,
        INVOICES_ISSUE,
        INVOICES_CANCEL,
        INVOICES_DELETE,
        AUDIT_READ,
    },
    "user": {
        INVOICES_READ,
        INVOICES_CREATE,
        INVOICES_UPDATE,
        INVOICES_SUBMIT,
        INVOICES_CANCEL,
        INVOICES_DELETE,
    },
}


def get_scopes_for_role(role: str) -> set[str]:
    """Return scopes granted to a role."""
    return ROLE_SCOPES.get(role.lower(), set())


def has_scopes(granted: Iterable[str], required_scopes: Iterable[str]) -> bool:
    """Check if a granted capability set covers every required scope."""
    granted = set(granted)
    if "*" in granted:
        return True
    return set(required_scopes).issubset(granted)


def require_scopes(granted: Iterable[str], required_scopes: Iterable[str]) -> None:
    """Raise when a granted capability set lacks required scopes."""
    granted = set(granted)
    required = set(required_scopes)
    if has_scopes(granted, required):
        return
    missing = sorted(required - granted)
    raise AuthorizationError(f"Missing required scopes: {', '.join(missing)}")
