"""Allocation scope resolution for new invoices.

The scope is derived from the actor and configuration plus a reference date
only; it never reads invoice rows.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime

from invoicing.auth.tenant_context import ActorContext
from invoicing.core.config import Config, get_config
from invoicing.core.exceptions import InvalidScope
from invoicing.models.base import utcnow
from invoicing.services.numbering import NumberSeries, client_code, period_prefix


@dataclass(frozen=True)
class NumberingScope:
    scope_key: str
    owner_id: int
    company_id: int | None
    series: NumberSeries


class ScopeResolver:
    """Derive the (owner/company, series) key an invoice number is unique within."""

    def __init__(self, config: Config | None = None, clock: Callable[[], datetime] = utcnow) -> None:
        self.config = config or get_config()
        self.clock = clock

    def scope_key_for(self, actor: ActorContext | None) -> str:
        if actor is None or not isinstance(actor.user_id, int) or actor.user_id < 1:
            raise InvalidScope("Actor has no resolvable owner identity.")
        if actor.company_id is not None:
            if actor.company_id < 1:
                raise InvalidScope("Actor company context is invalid.")
            return f"company:{actor.company_id}"
        return f"owner:{actor.user_id}"

    def resolve(
        self,
        actor: ActorContext | None,
        reference_date: date | None = None,
        client_company: str | None = None,
    ) -> NumberingScope:
        scope_key = self.scope_key_for(actor)
        on = reference_date or self.clock().date()
        prefix = period_prefix(on, self.config.INVOICE_NUMBER_PERIOD)
        if self.config.INVOICE_NUMBER_CLIENT_CODE:
            prefix = f"{prefix}-{client_code(client_company)}"
        return NumberingScope(
            scope_key=scope_key,
            owner_id=actor.user_id,
            company_id=actor.company_id,
            series=NumberSeries(prefix=prefix, width=self.config.INVOICE_SEQUENCE_WIDTH),
        )
