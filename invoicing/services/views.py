"""Pending and history views derived from the single invoice table."""

from __future__ import annotations

from collections.abc import Callable, Iterator

from sqlalchemy.orm import Query

from invoicing.models.enums import HISTORY_STATUSES, PENDING_STATUSES
from invoicing.models.invoice import Invoice
from invoicing.services.base_service import BaseService
from invoicing.services.visibility import active_in_scope


class InvoiceView:
    """Lazy, restartable sequence of invoices.

    Each iteration runs the query afresh and streams rows in batches, so a
    view can be walked again after the underlying rows change.
    """

    def __init__(self, query_factory: Callable[[], Query], batch_size: int) -> None:
        self._query_factory = query_factory
        self._batch_size = batch_size

    def __iter__(self) -> Iterator[Invoice]:
        yield from self._query_factory().yield_per(self._batch_size)

    def page(self, limit: int, offset: int = 0) -> list[Invoice]:
        return self._query_factory().offset(offset).limit(limit).all()

    def count(self) -> int:
        return self._query_factory().order_by(None).count()


class InvoiceViewProjector(BaseService):
    """Filter the canonical invoice set by status; nothing is copied elsewhere."""

    def list_pending(self, scope_key: str) -> InvoiceView:
        return self._view(scope_key, PENDING_STATUSES)

    def list_history(self, scope_key: str) -> InvoiceView:
        return self._view(scope_key, HISTORY_STATUSES)

    def _view(self, scope_key: str, statuses: frozenset) -> InvoiceView:
        def query() -> Query:
            return (
                active_in_scope(self.db, scope_key)
                .filter(Invoice.status.in_(sorted(statuses)))
                .order_by(Invoice.created_at.desc(), Invoice.id.desc())
            )

        return InvoiceView(query, batch_size=self.config.INVOICE_VIEW_BATCH_SIZE)
