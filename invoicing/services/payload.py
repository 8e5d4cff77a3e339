"""Validation of the business payload an invoice carries."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from invoicing.core.exceptions import ValidationError

EDITABLE_FIELDS = frozenset(
    {
        "client_company",
        "client_id",
        "invoice_date",
        "due_date",
        "service_period_start",
        "service_period_end",
        "language",
        "currency",
        "services",
        "subtotal",
        "vat_amount",
        "total",
    }
)
AMOUNT_FIELDS = ("subtotal", "vat_amount", "total")


def clean_payload(payload: Mapping[str, Any], partial: bool = False) -> dict[str, Any]:
    """Return a copy restricted to editable fields; identity and lifecycle fields are refused."""
    unknown = sorted(set(payload) - EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be set on an invoice: {', '.join(unknown)}")

    cleaned = dict(payload)
    if not partial or "client_company" in cleaned:
        company = str(cleaned.get("client_company") or "").strip()
        if not company:
            raise ValidationError("client_company is required.")
        cleaned["client_company"] = company

    for field in AMOUNT_FIELDS:
        if field in cleaned and cleaned[field] is not None:
            try:
                cleaned[field] = Decimal(str(cleaned[field])).quantize(Decimal("0.01"))
            except InvalidOperation as exc:
                raise ValidationError(f"{field} must be a decimal amount.") from exc

    if "services" in cleaned and cleaned["services"] is None:
        cleaned["services"] = []
    if "currency" in cleaned and cleaned["currency"]:
        cleaned["currency"] = str(cleaned["currency"]).upper()
    return cleaned
