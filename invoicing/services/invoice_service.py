"""Invoice service facade used by the API layer and scripts."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime
from typing import Any, Mapping

from sqlalchemy.orm import Session

from invoicing.auth import rbac
from invoicing.auth.tenant_context import ActorContext
from invoicing.core.config import Config
from invoicing.models.audit_log import InvoiceAuditLog
from invoicing.models.base import utcnow
from invoicing.models.enums import InvoiceStatus
from invoicing.models.invoice import Invoice
from invoicing.services.audit_service import list_audit
from invoicing.services.base_service import BaseService
from invoicing.services.integrity_service import DuplicateGroup, IntegrityService
from invoicing.services.lifecycle_service import InvoiceLifecycleService
from invoicing.services.scope_resolver import ScopeResolver
from invoicing.services.sequence_allocator import SequenceAllocator
from invoicing.services.views import InvoiceView, InvoiceViewProjector


class InvoiceService(BaseService):
    """Actor-facing invoice operations over one session."""

    def __init__(
        self,
        db: Session | None = None,
        config: Config | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(db=db, config=config)
        self.scopes = ScopeResolver(config=self.config, clock=clock)
        self.allocator = SequenceAllocator(db=self.db, config=self.config)
        self.lifecycle = InvoiceLifecycleService(db=self.db, config=self.config, clock=clock)
        self.views = InvoiceViewProjector(db=self.db, config=self.config)
        self.integrity = IntegrityService(db=self.db, config=self.config)

    def create_invoice(
        self,
        actor: ActorContext,
        payload: Mapping[str, Any],
        request_key: str | None = None,
        reference_date: date | None = None,
    ) -> Invoice:
        actor.require(rbac.INVOICES_CREATE)
        scope = self.scopes.resolve(actor, reference_date=reference_date, client_company=payload.get("client_company"))
        return self.allocator.allocate_and_create(scope, payload, actor_id=actor.user_id, request_key=request_key)

    def get_invoice(self, invoice_id: int, actor: ActorContext) -> Invoice:
        actor.require(rbac.INVOICES_READ)
        return self.lifecycle.get_invoice(invoice_id, actor)

    def transition(self, invoice_id: int, target_status: InvoiceStatus | str, actor: ActorContext) -> Invoice:
        return self.lifecycle.transition(invoice_id, target_status, actor)

    def soft_delete(self, invoice_id: int, actor: ActorContext) -> Invoice:
        return self.lifecycle.soft_delete(invoice_id, actor)

    def update_details(self, invoice_id: int, changes: Mapping[str, Any], actor: ActorContext) -> Invoice:
        return self.lifecycle.update_details(invoice_id, changes, actor)

    def list_pending(self, actor: ActorContext) -> InvoiceView:
        actor.require(rbac.INVOICES_READ)
        return self.views.list_pending(self.scopes.scope_key_for(actor))

    def list_history(self, actor: ActorContext) -> InvoiceView:
        actor.require(rbac.INVOICES_READ)
        return self.views.list_history(self.scopes.scope_key_for(actor))

    def list_audit(self, invoice_id: int, actor: ActorContext) -> list[InvoiceAuditLog]:
        actor.require(rbac.AUDIT_READ)
        invoice = self.lifecycle.get_invoice(invoice_id, actor, include_deleted=True)
        return list_audit(self.db, invoice.id)

    def find_duplicates(self, actor: ActorContext, all_scopes: bool = False) -> list[DuplicateGroup]:
        actor.require(rbac.INTEGRITY_READ)
        scope_key = None if all_scopes and actor.is_rootadmin else self.scopes.scope_key_for(actor)
        return self.integrity.find_duplicate_numbers(scope_key)
