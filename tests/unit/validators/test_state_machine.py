from __future__ import annotations

import pytest

from invoicing.core.exceptions import IllegalTransition, InvoiceProtected
from invoicing.lifecycle.state_machine import INVOICE_LIFECYCLE, StateMachine
from invoicing.models.enums import InvoiceStatus


def test_state_machine_allows_valid_transition():
    sm = StateMachine({"new": {"running"}, "running": {"completed"}})
    assert sm.can_transition("new", "running") is True
    sm.assert_transition("new", "running")


def test_state_machine_rejects_invalid_transition():
    sm = StateMachine({"new": {"running"}})
    with pytest.raises(IllegalTransition):
        sm.assert_transition("new", "completed")


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (InvoiceStatus.DRAFT, InvoiceStatus.PENDING_APPROVAL),
        (InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED),
        (InvoiceStatus.PENDING_APPROVAL, InvoiceStatus.APPROVED),
        (InvoiceStatus.PENDING_APPROVAL, InvoiceStatus.CANCELLED),
        (InvoiceStatus.APPROVED, InvoiceStatus.ISSUED),
    ],
)
def test_invoice_lifecycle_allowed_moves(current, target):
    assert INVOICE_LIFECYCLE.can_transition(current, target) is True
    INVOICE_LIFECYCLE.assert_transition(current, target)


def test_invoice_lifecycle_rejects_skipping_approval():
    with pytest.raises(IllegalTransition, match="draft -> issued"):
        INVOICE_LIFECYCLE.assert_transition(InvoiceStatus.DRAFT, InvoiceStatus.ISSUED)


def test_terminal_states_have_no_outgoing_moves():
    for target in InvoiceStatus:
        assert INVOICE_LIFECYCLE.can_transition(InvoiceStatus.ISSUED, target) is False
        assert INVOICE_LIFECYCLE.can_transition(InvoiceStatus.CANCELLED, target) is False


def test_protected_states_refuse_cancellation_with_snapshot():
    snapshot = {"id": 1, "status": "approved"}
    assert INVOICE_LIFECYCLE.is_protected(InvoiceStatus.APPROVED) is True
    assert INVOICE_LIFECYCLE.is_protected(InvoiceStatus.PENDING_APPROVAL) is False

    with pytest.raises(InvoiceProtected) as exc:
        INVOICE_LIFECYCLE.assert_transition(InvoiceStatus.APPROVED, InvoiceStatus.CANCELLED, snapshot=snapshot)
    assert exc.value.current == snapshot

    with pytest.raises(InvoiceProtected):
        INVOICE_LIFECYCLE.assert_transition(InvoiceStatus.ISSUED, InvoiceStatus.CANCELLED)
