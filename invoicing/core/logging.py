"""Structured logging helpers for invoice operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class LogContext:
    """Normalized context fields expected in structured logs."""

    scope_key: str | None = None
    owner_id: int | None = None
    company_id: int | None = None
    invoice_id: int | None = None
    invoice_number: str | None = None


def build_log_event(event: str, context: LogContext, **fields: Any) -> dict[str, Any]:
    """Build the `extra=` mapping for a structured log call."""
    payload: dict[str, Any] = {
        "event": event,
        "scope_key": context.scope_key,
        "owner_id": context.owner_id,
        "company_id": context.company_id,
        "invoice_id": context.invoice_id,
        "invoice_number": context.invoice_number,
    }
    payload.update(fields)
    return payload
