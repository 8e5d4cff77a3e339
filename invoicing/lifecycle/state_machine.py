"""Invoice status transition rules."""

from __future__ import annotations

from typing import Any

from invoicing.core.exceptions import IllegalTransition, InvoiceProtected
from invoicing.models.enums import PROTECTED_STATUSES, InvoiceStatus


def _label(state: str) -> str:
    return getattr(state, "value", state)


class StateMachine:
    """Transition table with protected states that refuse selected targets."""

    def __init__(
        self,
        transitions: dict[str, set[str]],
        protected: frozenset[str] = frozenset(),
        refused_when_protected: frozenset[str] = frozenset(),
    ) -> None:
        self._transitions = transitions
        self._protected = protected
        self._refused_when_protected = refused_when_protected

    def can_transition(self, current: str, target: str) -> bool:
        return target in self._transitions.get(current, set())

    def is_protected(self, state: str) -> bool:
        return state in self._protected

    def assert_transition(self, current: str, target: str, snapshot: dict[str, Any] | None = None) -> None:
        if current in self._protected and target in self._refused_when_protected:
            raise InvoiceProtected(
                f"Invoice in status '{_label(current)}' cannot move to '{_label(target)}'.", current=snapshot
            )
        if not self.can_transition(current=current, target=target):
            raise IllegalTransition(f"Transition not allowed: {_label(current)} -> {_label(target)}", current=snapshot)


INVOICE_LIFECYCLE = StateMachine(
    transitions={
        InvoiceStatus.DRAFT: {InvoiceStatus.PENDING_APPROVAL, InvoiceStatus.CANCELLED},
        InvoiceStatus.PENDING_APPROVAL: {InvoiceStatus.APPROVED, InvoiceStatus.CANCELLED},
        InvoiceStatus.APPROVED: {InvoiceStatus.ISSUED},
        InvoiceStatus.ISSUED: set(),
        InvoiceStatus.CANCELLED: set(),
    },
    protected=PROTECTED_STATUSES,
    refused_when_protected=frozenset({InvoiceStatus.CANCELLED}),
)
