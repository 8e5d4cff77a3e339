from __future__ import annotations

from invoicing.models import HISTORY_STATUSES, PENDING_STATUSES, InvoiceStatus
from invoicing.services.visibility import active_in_scope


def _seed_mixed_states(service, actor):
    invoices = [service.create_invoice(actor, {"client_company": f"Client {index}"}) for index in range(6)]
    draft, pending, approved, issued, cancelled, deleted = invoices
    service.transition(pending.id, InvoiceStatus.PENDING_APPROVAL, actor)
    for target in (InvoiceStatus.PENDING_APPROVAL, InvoiceStatus.APPROVED):
        service.transition(approved.id, target, actor)
    for target in (InvoiceStatus.PENDING_APPROVAL, InvoiceStatus.APPROVED, InvoiceStatus.ISSUED):
        service.transition(issued.id, target, actor)
    service.transition(cancelled.id, InvoiceStatus.CANCELLED, actor)
    service.soft_delete(deleted.id, actor)
    return draft, pending, approved, issued, cancelled, deleted


def test_pending_and_history_partition_the_active_set(service, session, make_actor):
    actor = make_actor()
    draft, pending, approved, issued, cancelled, deleted = _seed_mixed_states(service, actor)

    pending_ids = {invoice.id for invoice in service.list_pending(actor)}
    history_ids = {invoice.id for invoice in service.list_history(actor)}
    active_ids = {invoice.id for invoice in active_in_scope(session, "company:7")}

    assert pending_ids == {draft.id, pending.id}
    assert history_ids == {approved.id, issued.id, cancelled.id}
    assert pending_ids.isdisjoint(history_ids)
    assert pending_ids | history_ids == active_ids
    assert deleted.id not in active_ids


def test_view_statuses_match_their_partition(service, make_actor):
    actor = make_actor()
    _seed_mixed_states(service, actor)

    assert {invoice.status for invoice in service.list_pending(actor)} <= PENDING_STATUSES
    assert {invoice.status for invoice in service.list_history(actor)} <= HISTORY_STATUSES


def test_views_are_restartable_and_reflect_changes(service, make_actor):
    actor = make_actor()
    draft, pending, *_ = _seed_mixed_states(service, actor)
    view = service.list_pending(actor)

    first_pass = [invoice.id for invoice in view]
    second_pass = [invoice.id for invoice in view]
    assert first_pass == second_pass

    service.transition(pending.id, InvoiceStatus.APPROVED, actor)
    assert [invoice.id for invoice in view] == [draft.id]
    assert pending.id in {invoice.id for invoice in service.list_history(actor)}


def test_view_pages_newest_first_and_counts(service, make_actor):
    actor = make_actor()
    created = [service.create_invoice(actor, {"client_company": "Acme"}) for _ in range(5)]
    view = service.list_pending(actor)

    assert view.count() == 5
    first_page = view.page(limit=2, offset=0)
    second_page = view.page(limit=2, offset=2)
    assert [invoice.id for invoice in first_page] == [created[4].id, created[3].id]
    assert [invoice.id for invoice in second_page] == [created[2].id, created[1].id]


def test_views_are_confined_to_the_actor_scope(service, make_actor):
    mine = make_actor(company_id=7)
    theirs = make_actor(user_id=5, company_id=8)
    service.create_invoice(mine, {"client_company": "Acme"})
    service.create_invoice(theirs, {"client_company": "Acme"})

    assert {invoice.scope_key for invoice in service.list_pending(mine)} == {"company:7"}
    assert service.list_pending(theirs).count() == 1
