from __future__ import annotations

import pytest
from sqlalchemy import text

from invoicing.core.exceptions import AuthorizationError
from invoicing.models import Invoice, InvoiceStatus
from invoicing.models.invoice import ACTIVE_NUMBER_INDEX
from invoicing.services.integrity_service import IntegrityService


def _legacy_row(session, number, scope_key="company:7"):
    invoice = Invoice(
        invoice_number=number,
        scope_key=scope_key,
        owner_id=1,
        company_id=7,
        client_company="Imported",
        status=InvoiceStatus.DRAFT,
    )
    session.add(invoice)
    session.commit()
    return invoice


def test_clean_store_reports_no_duplicates(service, make_actor):
    actor = make_actor()
    for _ in range(3):
        service.create_invoice(actor, {"client_company": "Acme"})
    assert service.find_duplicates(actor) == []


def test_duplicates_imported_around_the_index_are_reported(session, config):
    session.execute(text(f"DROP INDEX {ACTIVE_NUMBER_INDEX}"))
    session.commit()
    first = _legacy_row(session, "2025-0001")
    second = _legacy_row(session, "2025-0001")
    _legacy_row(session, "2025-0002")
    _legacy_row(session, "2025-0002", scope_key="company:8")

    report = IntegrityService(db=session, config=config).find_duplicate_numbers()

    assert len(report) == 1
    assert report[0].scope_key == "company:7"
    assert report[0].invoice_number == "2025-0001"
    assert report[0].invoice_ids == (first.id, second.id)
    assert IntegrityService(db=session, config=config).find_duplicate_numbers("company:8") == []


def test_integrity_check_requires_capability_and_root_for_all_scopes(service, make_actor):
    with pytest.raises(AuthorizationError):
        service.find_duplicates(make_actor(role="manager"))
    assert service.find_duplicates(make_actor(role="rootadmin", company_id=None), all_scopes=True) == []
