"""Shared visibility filter: the single definition of an active invoice.

Number allocation, listing views, duplicate detection and lifecycle
operations all build their queries from here. The store-level uniqueness
index uses the same `deleted_at IS NULL` predicate.
"""

from __future__ import annotations

from sqlalchemy.orm import Query, Session

from invoicing.models.invoice import Invoice

ACTIVE = Invoice.deleted_at.is_(None)


def active_invoices(db: Session) -> Query:
    """All non-deleted invoices across every scope."""
    return db.query(Invoice).filter(ACTIVE)


def active_in_scope(db: Session, scope_key: str) -> Query:
    """Non-deleted invoices of one allocation scope."""
    return active_invoices(db).filter(Invoice.scope_key == scope_key)
