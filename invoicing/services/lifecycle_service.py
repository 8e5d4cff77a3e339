"""Guarded status changes, detail edits and soft deletion of invoices.

Every mutation is a compare-and-set update keyed on the invoice id and the
status it was read in, so a concurrent change makes the update miss instead of
being overwritten. A rejected operation leaves the row untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, Mapping, NoReturn

from sqlalchemy.orm import Session

from invoicing.auth import rbac
from invoicing.auth.tenant_context import ActorContext, enforce_scope_match
from invoicing.core.config import Config
from invoicing.core.exceptions import IllegalTransition, InvoiceNotFound, InvoiceProtected
from invoicing.core.logging import LogContext, build_log_event
from invoicing.lifecycle.state_machine import INVOICE_LIFECYCLE
from invoicing.models.base import utcnow
from invoicing.models.enums import AuditAction, InvoiceStatus
from invoicing.models.invoice import Invoice
from invoicing.services.audit_service import record_audit
from invoicing.services.base_service import BaseService
from invoicing.services.payload import clean_payload
from invoicing.services.scope_resolver import ScopeResolver
from invoicing.services.visibility import active_invoices

logger = logging.getLogger(__name__)

# Re-reads allowed when a compare-and-set update loses to a concurrent change.
CAS_ATTEMPTS = 3

REQUIRED_SCOPE = {
    InvoiceStatus.PENDING_APPROVAL: rbac.INVOICES_SUBMIT,
    InvoiceStatus.APPROVED: rbac.INVOICES_APPROVE,
    InvoiceStatus.ISSUED: rbac.INVOICES_ISSUE,
    InvoiceStatus.CANCELLED: rbac.INVOICES_CANCEL,
}


def _context(invoice: Invoice) -> LogContext:
    return LogContext(
        scope_key=invoice.scope_key,
        owner_id=invoice.owner_id,
        company_id=invoice.company_id,
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
    )


class InvoiceLifecycleService(BaseService):
    """Apply the invoice state machine to stored invoices."""

    def __init__(
        self,
        db: Session | None = None,
        config: Config | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(db=db, config=config)
        self.clock = clock
        self.scopes = ScopeResolver(config=self.config, clock=clock)

    def get_invoice(self, invoice_id: int, actor: ActorContext, include_deleted: bool = False) -> Invoice:
        query = self.db.query(Invoice) if include_deleted else active_invoices(self.db)
        invoice = query.filter(Invoice.id == invoice_id).first()
        if invoice is None:
            raise InvoiceNotFound(f"Invoice not found: {invoice_id}")
        enforce_scope_match(invoice.scope_key, self.scopes.scope_key_for(actor), actor)
        return invoice

    def transition(self, invoice_id: int, target_status: InvoiceStatus | str, actor: ActorContext) -> Invoice:
        """Move an invoice to `target_status`; repeating a completed transition is a no-op."""
        try:
            target = InvoiceStatus(target_status)
        except ValueError as exc:
            raise IllegalTransition(f"Unknown invoice status: {target_status}") from exc
        actor.require(REQUIRED_SCOPE.get(target, rbac.INVOICES_UPDATE))

        for _ in range(CAS_ATTEMPTS):
            invoice = self.get_invoice(invoice_id, actor, include_deleted=True)
            current = InvoiceStatus(invoice.status)
            if invoice.is_deleted:
                self._reject(IllegalTransition("Invoice is deleted.", current=invoice.snapshot()), invoice, target)
            if current == target:
                return invoice
            try:
                INVOICE_LIFECYCLE.assert_transition(current, target, snapshot=invoice.snapshot())
            except (IllegalTransition, InvoiceProtected) as exc:
                self._reject(exc, invoice, target)

            now = self.clock()
            values: dict[Any, Any] = {Invoice.status: target, Invoice.updated_at: now}
            if target == InvoiceStatus.APPROVED:
                values[Invoice.approved_at] = now
                values[Invoice.approved_by] = actor.user_id
            elif target == InvoiceStatus.ISSUED:
                values[Invoice.issued_at] = now

            if not self._compare_and_set(invoice, current, values):
                continue
            record_audit(self.db, invoice, actor.user_id, AuditAction.TRANSITIONED, current, target)
            self.commit()
            self.db.refresh(invoice)
            logger.info(
                "invoice.transitioned",
                extra=build_log_event(
                    "invoice.transitioned", _context(invoice), from_status=current.value, to_status=target.value
                ),
            )
            return invoice

        return self._lost_race(invoice_id, actor, target)

    def soft_delete(self, invoice_id: int, actor: ActorContext) -> Invoice:
        """Hide an unprotected invoice and release its number; repeating it is a no-op."""
        actor.require(rbac.INVOICES_DELETE)

        for _ in range(CAS_ATTEMPTS):
            invoice = self.get_invoice(invoice_id, actor, include_deleted=True)
            if invoice.is_deleted:
                return invoice
            current = InvoiceStatus(invoice.status)
            if INVOICE_LIFECYCLE.is_protected(current):
                self._reject(
                    InvoiceProtected(
                        f"Invoice in status '{current.value}' cannot be deleted.", current=invoice.snapshot()
                    ),
                    invoice,
                    None,
                )

            now = self.clock()
            if not self._compare_and_set(invoice, current, {Invoice.deleted_at: now, Invoice.updated_at: now}):
                continue
            record_audit(self.db, invoice, actor.user_id, AuditAction.SOFT_DELETED, current, current)
            self.commit()
            self.db.refresh(invoice)
            logger.info("invoice.soft_deleted", extra=build_log_event("invoice.soft_deleted", _context(invoice)))
            return invoice

        invoice = self.get_invoice(invoice_id, actor, include_deleted=True)
        if invoice.is_deleted:
            return invoice
        raise IllegalTransition("Invoice changed concurrently; retry the deletion.", current=invoice.snapshot())

    def update_details(self, invoice_id: int, changes: Mapping[str, Any], actor: ActorContext) -> Invoice:
        """Edit the business payload of a draft or pending invoice."""
        actor.require(rbac.INVOICES_UPDATE)
        fields = clean_payload(changes, partial=True)

        for _ in range(CAS_ATTEMPTS):
            invoice = self.get_invoice(invoice_id, actor, include_deleted=True)
            current = InvoiceStatus(invoice.status)
            if invoice.is_deleted:
                raise IllegalTransition("Invoice is deleted.", current=invoice.snapshot())
            if INVOICE_LIFECYCLE.is_protected(current):
                raise InvoiceProtected(
                    f"Invoice in status '{current.value}' can no longer be edited.", current=invoice.snapshot()
                )
            if current == InvoiceStatus.CANCELLED:
                raise IllegalTransition("Cancelled invoices cannot be edited.", current=invoice.snapshot())
            if not fields:
                return invoice

            values: dict[Any, Any] = {getattr(Invoice, name): value for name, value in fields.items()}
            values[Invoice.updated_at] = self.clock()
            if not self._compare_and_set(invoice, current, values):
                continue
            record_audit(
                self.db,
                invoice,
                actor.user_id,
                AuditAction.UPDATED,
                current,
                current,
                details={"fields": sorted(fields)},
            )
            self.commit()
            self.db.refresh(invoice)
            return invoice

        invoice = self.get_invoice(invoice_id, actor, include_deleted=True)
        raise IllegalTransition("Invoice changed concurrently; retry the edit.", current=invoice.snapshot())

    def _compare_and_set(self, invoice: Invoice, expected: InvoiceStatus, values: dict[Any, Any]) -> bool:
        """Apply `values` only if the row is still active and still in `expected` status."""
        updated = (
            active_invoices(self.db)
            .filter(Invoice.id == invoice.id, Invoice.status == expected)
            .update(values, synchronize_session=False)
        )
        if updated != 1:
            self.rollback()
            self.db.expire(invoice)
            return False
        return True

    def _lost_race(self, invoice_id: int, actor: ActorContext, target: InvoiceStatus) -> Invoice:
        invoice = self.get_invoice(invoice_id, actor, include_deleted=True)
        if not invoice.is_deleted and InvoiceStatus(invoice.status) == target:
            return invoice
        raise IllegalTransition("Invoice changed concurrently; retry the transition.", current=invoice.snapshot())

    def _reject(self, exc: Exception, invoice: Invoice, target: InvoiceStatus | None) -> NoReturn:
        logger.warning(
            "invoice.transition.rejected",
            extra=build_log_event(
                "invoice.transition.rejected",
                _context(invoice),
                from_status=InvoiceStatus(invoice.status).value,
                to_status=target.value if target else "deleted",
            ),
        )
        raise exc
