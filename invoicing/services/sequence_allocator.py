"""Sequential invoice number allocation arbitrated by the store's uniqueness index.

Reading the current maximum and inserting the next number is not atomic across
requests. No lock is taken: each insert is checked by the partial unique index
on (scope_key, invoice_number) over non-deleted rows, and a request that loses
the race re-reads the maximum and tries the next number, up to a bounded number
of attempts.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from typing import Any, Mapping, TypeVar

from sqlalchemy.exc import DisconnectionError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from invoicing.core.config import Config
from invoicing.core.exceptions import AllocationExhausted, DatabaseError, StoreUnavailable
from invoicing.core.logging import LogContext, build_log_event
from invoicing.models.enums import AuditAction, InvoiceStatus
from invoicing.models.invoice import ACTIVE_NUMBER_INDEX, REQUEST_KEY_CONSTRAINT, Invoice
from invoicing.services.audit_service import record_audit
from invoicing.services.base_service import BaseService
from invoicing.services.payload import clean_payload
from invoicing.services.scope_resolver import NumberingScope
from invoicing.services.visibility import active_in_scope

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Rows streamed per round trip while scanning a series for its highest suffix.
SCAN_BATCH = 200

TRANSIENT_STORE_ERRORS = (OperationalError, DisconnectionError, PoolTimeoutError)


class NumberConflict(Exception):
    """The proposed number was taken by a concurrent insert."""


def violated_constraint(exc: IntegrityError) -> str | None:
    """Name the unique constraint behind an IntegrityError, if it is one of ours."""
    diag = getattr(exc.orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    if name:
        return name
    message = str(exc.orig)
    if ACTIVE_NUMBER_INDEX in message or "invoices.invoice_number" in message:
        return ACTIVE_NUMBER_INDEX
    if REQUEST_KEY_CONSTRAINT in message or "invoices.request_key" in message:
        return REQUEST_KEY_CONSTRAINT
    return None


class SequenceAllocator(BaseService):
    """Allocate the next number in a scope and persist the invoice with it."""

    def __init__(
        self,
        db: Session | None = None,
        config: Config | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(db=db, config=config)
        self.sleep = sleep

    def allocate_and_create(
        self,
        scope: NumberingScope,
        payload: Mapping[str, Any],
        actor_id: int | None = None,
        request_key: str | None = None,
    ) -> Invoice:
        """Persist a new draft invoice with the next free number of `scope`.

        A request key identifies the insert so that a retried call, or a commit
        whose outcome was lost to a store error, returns the persisted row
        instead of allocating a second number.
        """
        fields = clean_payload(payload)
        key = request_key or uuid.uuid4().hex
        context = LogContext(scope_key=scope.scope_key, owner_id=scope.owner_id, company_id=scope.company_id)

        existing = self._with_store_retry(lambda: self._find_by_request_key(scope.scope_key, key), context)
        if existing is not None:
            return existing

        max_attempts = self.config.INVOICE_ALLOCATION_MAX_ATTEMPTS
        for attempt in range(1, max_attempts + 1):
            highest = self._with_store_retry(lambda: self.highest_sequence(scope), context)
            candidate = scope.series.format(highest + 1)
            try:
                invoice = self._with_store_retry(
                    lambda: self._insert(scope, candidate, fields, actor_id or scope.owner_id, key),
                    context,
                )
            except NumberConflict:
                logger.warning(
                    "invoice.allocation.conflict",
                    extra=build_log_event(
                        "invoice.allocation.conflict", context, invoice_number=candidate, attempt=attempt
                    ),
                )
                continue

            logger.info(
                "invoice.created",
                extra=build_log_event(
                    "invoice.created",
                    LogContext(
                        scope_key=scope.scope_key,
                        owner_id=scope.owner_id,
                        company_id=scope.company_id,
                        invoice_id=invoice.id,
                        invoice_number=invoice.invoice_number,
                    ),
                    attempt=attempt,
                ),
            )
            return invoice

        logger.error(
            "invoice.allocation.exhausted",
            extra=build_log_event("invoice.allocation.exhausted", context, attempt=max_attempts),
        )
        raise AllocationExhausted(scope.scope_key, max_attempts)

    def highest_sequence(self, scope: NumberingScope) -> int:
        """Largest numeric suffix among non-deleted numbers of the series, 0 when there is none.

        Suffixes are compared as integers, so numbers written under different
        sequence widths (`2025-00001`, `2025-0002`) still order correctly.
        """
        rows = (
            active_in_scope(self.db, scope.scope_key)
            .filter(Invoice.invoice_number.like(scope.series.like_pattern))
            .with_entities(Invoice.invoice_number)
            .yield_per(SCAN_BATCH)
        )
        sequences = (scope.series.parse(number) for (number,) in rows)
        return max((sequence for sequence in sequences if sequence is not None), default=0)

    def _insert(
        self,
        scope: NumberingScope,
        invoice_number: str,
        fields: dict[str, Any],
        actor_id: int,
        request_key: str,
    ) -> Invoice:
        invoice = Invoice(
            invoice_number=invoice_number,
            scope_key=scope.scope_key,
            owner_id=scope.owner_id,
            company_id=scope.company_id,
            request_key=request_key,
            status=InvoiceStatus.DRAFT,
            **fields,
        )
        try:
            self.db.add(invoice)
            self.db.flush()
            record_audit(
                self.db,
                invoice,
                actor_id=actor_id,
                action=AuditAction.CREATED,
                to_status=InvoiceStatus.DRAFT,
            )
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            # Our own earlier commit may have landed before a store error hid the outcome.
            existing = self._find_by_request_key(scope.scope_key, request_key)
            if existing is not None:
                return existing
            if violated_constraint(exc) == ACTIVE_NUMBER_INDEX:
                raise NumberConflict(invoice_number) from exc
            raise DatabaseError(f"Invoice insert failed: {exc.orig}") from exc
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(invoice)
        return invoice

    def _find_by_request_key(self, scope_key: str, request_key: str) -> Invoice | None:
        return (
            self.db.query(Invoice)
            .filter(Invoice.scope_key == scope_key, Invoice.request_key == request_key)
            .first()
        )

    def _with_store_retry(self, operation: Callable[[], T], context: LogContext) -> T:
        """Run a store round-trip, retrying a bounded number of times when the store is unreachable."""
        retries = self.config.INVOICE_STORE_MAX_RETRIES
        for retry in range(retries + 1):
            try:
                return operation()
            except TRANSIENT_STORE_ERRORS as exc:
                self.db.rollback()
                if retry >= retries:
                    raise StoreUnavailable("Invoice store is unavailable.") from exc
                logger.warning(
                    "invoice.allocation.store_retry",
                    extra=build_log_event("invoice.allocation.store_retry", context, attempt=retry + 1),
                )
                self.sleep(self.config.INVOICE_STORE_RETRY_BACKOFF_SECONDS * (retry + 1))
        raise StoreUnavailable("Invoice store is unavailable.")
