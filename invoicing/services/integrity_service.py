"""Read-only duplicate number detection over active invoices."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func

from invoicing.models.invoice import Invoice
from invoicing.services.base_service import BaseService
from invoicing.services.visibility import active_invoices


@dataclass(frozen=True)
class DuplicateGroup:
    scope_key: str
    invoice_number: str
    invoice_ids: tuple[int, ...]


class IntegrityService(BaseService):
    """Report active invoices sharing a number within a scope.

    The partial unique index makes such groups impossible for rows written
    through the allocator; a non-empty report points at rows imported around it.
    """

    def find_duplicate_numbers(self, scope_key: str | None = None) -> list[DuplicateGroup]:
        query = active_invoices(self.db)
        if scope_key is not None:
            query = query.filter(Invoice.scope_key == scope_key)

        groups = (
            query.with_entities(Invoice.scope_key, Invoice.invoice_number)
            .group_by(Invoice.scope_key, Invoice.invoice_number)
            .having(func.count(Invoice.id) > 1)
            .order_by(Invoice.scope_key, Invoice.invoice_number)
            .all()
        )

        report: list[DuplicateGroup] = []
        for group_scope, number in groups:
            ids = (
                active_invoices(self.db)
                .filter(Invoice.scope_key == group_scope, Invoice.invoice_number == number)
                .with_entities(Invoice.id)
                .order_by(Invoice.created_at, Invoice.id)
                .all()
            )
            report.append(
                DuplicateGroup(scope_key=group_scope, invoice_number=number, invoice_ids=tuple(row[0] for row in ids))
            )
        return report
