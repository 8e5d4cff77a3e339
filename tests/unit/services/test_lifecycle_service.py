from __future__ import annotations

import pytest

from invoicing.auth import rbac
from invoicing.auth.tenant_context import ActorContext
from invoicing.core.exceptions import (
    AuthorizationError,
    IllegalTransition,
    InvoiceNotFound,
    InvoiceProtected,
    ValidationError,
)
from invoicing.models import AuditAction, Invoice, InvoiceAuditLog, InvoiceStatus


def _create(service, actor, **payload):
    payload.setdefault("client_company", "Acme")
    return service.create_invoice(actor, payload)


def _audit_actions(session, invoice_id):
    rows = (
        session.query(InvoiceAuditLog)
        .filter(InvoiceAuditLog.invoice_id == invoice_id)
        .order_by(InvoiceAuditLog.id)
        .all()
    )
    return [row.action for row in rows]


def test_full_lifecycle_records_timestamps_and_audit(service, session, make_actor):
    actor = make_actor(role="manager", user_id=4)
    invoice = _create(service, actor)

    service.transition(invoice.id, InvoiceStatus.PENDING_APPROVAL, actor)
    approved = service.transition(invoice.id, "approved", actor)
    assert approved.status == InvoiceStatus.APPROVED
    assert approved.approved_at is not None
    assert approved.approved_by == 4

    issued = service.transition(invoice.id, InvoiceStatus.ISSUED, actor)
    assert issued.status == InvoiceStatus.ISSUED
    assert issued.issued_at is not None
    assert issued.invoice_number == "2025-0001"

    assert _audit_actions(session, invoice.id) == [
        AuditAction.CREATED.value,
        AuditAction.TRANSITIONED.value,
        AuditAction.TRANSITIONED.value,
        AuditAction.TRANSITIONED.value,
    ]


def test_repeating_a_transition_is_a_noop(service, session, make_actor):
    actor = make_actor()
    invoice = _create(service, actor)
    service.transition(invoice.id, InvoiceStatus.PENDING_APPROVAL, actor)
    first = service.transition(invoice.id, InvoiceStatus.APPROVED, actor)
    approved_at = first.approved_at

    again = service.transition(invoice.id, InvoiceStatus.APPROVED, actor)

    assert again.status == InvoiceStatus.APPROVED
    assert again.approved_at == approved_at
    assert _audit_actions(session, invoice.id).count(AuditAction.TRANSITIONED.value) == 2


def test_cancelling_an_approved_invoice_is_protected(service, session, make_actor):
    actor = make_actor()
    invoice = _create(service, actor)
    service.transition(invoice.id, InvoiceStatus.PENDING_APPROVAL, actor)
    service.transition(invoice.id, InvoiceStatus.APPROVED, actor)

    with pytest.raises(InvoiceProtected) as exc:
        service.transition(invoice.id, InvoiceStatus.CANCELLED, actor)

    assert exc.value.current["status"] == "approved"
    assert exc.value.current["invoice_number"] == "2025-0001"
    session.expire_all()
    assert session.get(Invoice, invoice.id).status == InvoiceStatus.APPROVED


def test_illegal_transition_leaves_invoice_unchanged(service, session, make_actor):
    actor = make_actor()
    invoice = _create(service, actor)

    with pytest.raises(IllegalTransition) as exc:
        service.transition(invoice.id, InvoiceStatus.ISSUED, actor)

    assert exc.value.current["status"] == "draft"
    session.expire_all()
    stored = session.get(Invoice, invoice.id)
    assert stored.status == InvoiceStatus.DRAFT
    assert stored.issued_at is None
    assert _audit_actions(session, invoice.id) == [AuditAction.CREATED.value]


def test_cancelled_invoice_cannot_be_reopened(service, make_actor):
    actor = make_actor()
    invoice = _create(service, actor)
    service.transition(invoice.id, InvoiceStatus.CANCELLED, actor)

    with pytest.raises(IllegalTransition):
        service.transition(invoice.id, InvoiceStatus.PENDING_APPROVAL, actor)


def test_unknown_target_status_is_illegal(service, make_actor):
    actor = make_actor()
    invoice = _create(service, actor)
    with pytest.raises(IllegalTransition):
        service.transition(invoice.id, "paid", actor)


def test_approval_requires_capability(service, make_actor):
    owner = make_actor(role="user", user_id=3)
    invoice = _create(service, owner)
    service.transition(invoice.id, InvoiceStatus.PENDING_APPROVAL, owner)

    with pytest.raises(AuthorizationError):
        service.transition(invoice.id, InvoiceStatus.APPROVED, owner)


def test_soft_delete_hides_draft_and_is_idempotent(service, session, make_actor):
    actor = make_actor()
    invoice = _create(service, actor)

    deleted = service.soft_delete(invoice.id, actor)
    again = service.soft_delete(invoice.id, actor)

    assert deleted.deleted_at is not None
    assert again.deleted_at == deleted.deleted_at
    assert _audit_actions(session, invoice.id).count(AuditAction.SOFT_DELETED.value) == 1
    with pytest.raises(InvoiceNotFound):
        service.get_invoice(invoice.id, actor)
    assert session.query(Invoice).count() == 1


def test_issued_invoice_cannot_be_deleted(service, session, make_actor):
    actor = make_actor()
    invoice = _create(service, actor)
    for target in (InvoiceStatus.PENDING_APPROVAL, InvoiceStatus.APPROVED, InvoiceStatus.ISSUED):
        service.transition(invoice.id, target, actor)

    with pytest.raises(InvoiceProtected) as exc:
        service.soft_delete(invoice.id, actor)

    assert exc.value.current["status"] == "issued"
    session.expire_all()
    assert session.get(Invoice, invoice.id).deleted_at is None


def test_transition_of_deleted_invoice_is_illegal(service, make_actor):
    actor = make_actor()
    invoice = _create(service, actor)
    service.soft_delete(invoice.id, actor)

    with pytest.raises(IllegalTransition):
        service.transition(invoice.id, InvoiceStatus.PENDING_APPROVAL, actor)


def test_cross_scope_access_is_denied(service, make_actor):
    invoice = _create(service, make_actor(company_id=7))
    outsider = make_actor(user_id=9, company_id=8)

    with pytest.raises(AuthorizationError):
        service.get_invoice(invoice.id, outsider)
    with pytest.raises(AuthorizationError):
        service.transition(invoice.id, InvoiceStatus.CANCELLED, outsider)

    root = make_actor(role="rootadmin", user_id=1, company_id=None)
    assert service.get_invoice(invoice.id, root).id == invoice.id


def test_update_details_edits_draft_payload(service, session, make_actor):
    actor = make_actor()
    invoice = _create(service, actor)

    updated = service.update_details(invoice.id, {"client_company": "Acme Holding", "total": "250"}, actor)

    assert updated.client_company == "Acme Holding"
    assert str(updated.total) == "250.00"
    assert updated.invoice_number == invoice.invoice_number
    entry = (
        session.query(InvoiceAuditLog)
        .filter(InvoiceAuditLog.action == AuditAction.UPDATED.value)
        .one()
    )
    assert entry.details == {"fields": ["client_company", "total"]}


def test_update_details_refuses_identity_fields(service, make_actor):
    actor = make_actor()
    invoice = _create(service, actor)
    with pytest.raises(ValidationError):
        service.update_details(invoice.id, {"invoice_number": "2025-0100"}, actor)


def test_update_details_on_protected_or_cancelled_invoice(service, make_actor):
    actor = make_actor()
    approved = _create(service, actor)
    service.transition(approved.id, InvoiceStatus.PENDING_APPROVAL, actor)
    service.transition(approved.id, InvoiceStatus.APPROVED, actor)
    cancelled = _create(service, actor)
    service.transition(cancelled.id, InvoiceStatus.CANCELLED, actor)

    with pytest.raises(InvoiceProtected):
        service.update_details(approved.id, {"client_company": "Other"}, actor)
    with pytest.raises(IllegalTransition):
        service.update_details(cancelled.id, {"client_company": "Other"}, actor)


def test_compare_and_set_misses_when_status_changed_underneath(service, session, make_actor):
    actor = make_actor()
    invoice = _create(service, actor)
    session.query(Invoice).filter(Invoice.id == invoice.id).update(
        {Invoice.status: InvoiceStatus.CANCELLED}, synchronize_session=False
    )
    session.commit()

    applied = service.lifecycle._compare_and_set(
        invoice, InvoiceStatus.DRAFT, {Invoice.status: InvoiceStatus.PENDING_APPROVAL}
    )

    assert applied is False
    session.expire_all()
    assert session.get(Invoice, invoice.id).status == InvoiceStatus.CANCELLED


def test_identity_fields_are_immutable_on_persisted_invoice(service, make_actor):
    invoice = _create(service, make_actor())
    with pytest.raises(ValidationError):
        invoice.invoice_number = "2025-0999"
    with pytest.raises(ValidationError):
        invoice.scope_key = "company:8"


def test_services_enforce_the_actor_capability_set(service, make_actor):
    owner = make_actor(role="admin")
    invoice = _create(service, owner)
    read_only = ActorContext(
        user_id=owner.user_id,
        role="admin",
        company_id=owner.company_id,
        capabilities=frozenset({rbac.INVOICES_READ}),
    )

    assert service.get_invoice(invoice.id, read_only).id == invoice.id
    with pytest.raises(AuthorizationError):
        service.transition(invoice.id, InvoiceStatus.CANCELLED, read_only)
    with pytest.raises(AuthorizationError):
        service.soft_delete(invoice.id, read_only)
