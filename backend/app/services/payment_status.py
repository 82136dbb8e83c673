"""Payment status derivation.

Reconciles the deprecated single-field paid amount stored in an invoice's
``raw_payload`` with the itemized ``invoice_payments`` ledger and turns the
result into a paid/partial/unpaid status.

Historical data is messy (string-typed numbers, free-form JSON), so every
malformed value degrades to zero instead of raising.
"""

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation, Overflow, localcontext
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.invoice import Invoice, PaymentStatus
from app.repositories.invoice_payment_repository import InvoicePaymentRepository

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
PAID_TOLERANCE = Decimal("0.5")


@dataclass(frozen=True)
class DerivedPaymentStatus:
    """How much of one invoice has been paid at one point in time."""

    status: PaymentStatus
    paid: Decimal
    remaining: Decimal


@dataclass(frozen=True)
class InvoiceSnapshot:
    """Canonical invoice record consumed by status derivation and allocation.

    ``total`` and ``legacy_paid_amount`` keep whatever raw value was stored;
    they are parsed at derivation time.
    """

    id: UUID | None
    invoice_number: str
    date: date | None
    total: Any
    legacy_paid_amount: Any = None
    settled: bool = False
    settlement_reason: str | None = None

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> "InvoiceSnapshot":
        payload = load_payload(invoice.raw_payload)
        return cls(
            id=invoice.id,  # type: ignore[arg-type]
            invoice_number=str(invoice.invoice_number),
            date=invoice.date,  # type: ignore[arg-type]
            total=invoice.total,
            legacy_paid_amount=payload.get("paid_amount"),
            settled=invoice.settled is True,
            settlement_reason=invoice.settlement_reason,  # type: ignore[arg-type]
        )


def load_payload(raw: Any) -> dict[str, Any]:
    """Return ``raw`` as a dict, accepting a dict or a JSON object string."""
    if not raw:
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str | bytes):
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError):
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def parse_amount(value: Any) -> Decimal:
    """Parse a possibly string-typed amount; anything unusable becomes 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return ZERO
    if not number.is_finite():
        return ZERO
    return number


def _row_amount(row: Any) -> Decimal:
    if isinstance(row, Mapping):
        return parse_amount(row.get("amount"))
    if hasattr(row, "amount"):
        return parse_amount(row.amount)
    return parse_amount(row)


def derive_payment_status_from_data(
    invoice: InvoiceSnapshot,
    payments: Iterable[Any],
    tolerance: Decimal = PAID_TOLERANCE,
) -> DerivedPaymentStatus:
    """Compute paid/remaining/status from already-fetched ledger rows.

    ``payments`` may hold ORM rows, mappings with an ``amount`` key, or bare
    amounts. The legacy paid amount and the ledger are summed, then the
    result is clamped into ``[0, total]``. An invoice counts as paid when
    the total is zero or the paid amount is within ``tolerance`` of it.
    """
    total = parse_amount(invoice.total)
    legacy_paid = parse_amount(invoice.legacy_paid_amount)

    # Sums past the context exponent limit become Infinity (or NaN) instead
    # of raising, and the finiteness checks below reset them to zero.
    with localcontext() as ctx:
        ctx.traps[Overflow] = False
        ctx.traps[InvalidOperation] = False
        ledger_paid = sum((_row_amount(p) for p in payments or ()), ZERO)
        paid = legacy_paid + ledger_paid
        if not paid.is_finite():
            paid = ZERO
        paid = max(ZERO, min(paid, total))
        remaining = total - paid
        if not remaining.is_finite():
            remaining = ZERO
        remaining = max(ZERO, remaining)

        if total == 0 or paid >= total - tolerance:
            status = PaymentStatus.PAID
        elif paid > 0:
            status = PaymentStatus.PARTIAL
        else:
            status = PaymentStatus.UNPAID

    return DerivedPaymentStatus(status=status, paid=paid, remaining=remaining)


class PaymentStatusService:
    """Loads ledger rows and delegates to :func:`derive_payment_status_from_data`."""

    def __init__(self, db: Session):
        self.db = db
        self.payment_repo = InvoicePaymentRepository(db)

    def derive_payment_status(self, invoice: Invoice) -> DerivedPaymentStatus:
        payments = self.payment_repo.get_by_invoice_id(invoice.id)  # type: ignore[arg-type]
        return derive_payment_status_from_data(
            InvoiceSnapshot.from_invoice(invoice),
            payments,
            tolerance=settings.PAID_TOLERANCE,
        )

    def derive_for_invoices(self, invoices: list[Invoice]) -> dict[UUID, DerivedPaymentStatus]:
        """Derive statuses for many invoices with a single ledger query."""
        ledger = self.payment_repo.get_by_invoice_ids(
            [inv.id for inv in invoices]  # type: ignore[misc]
        )
        logger.debug(
            "Loaded %d ledger rows for %d invoices",
            sum(len(rows) for rows in ledger.values()),
            len(invoices),
        )
        return {
            inv.id: derive_payment_status_from_data(  # type: ignore[misc]
                InvoiceSnapshot.from_invoice(inv),
                ledger.get(inv.id, []),  # type: ignore[call-overload]
                tolerance=settings.PAID_TOLERANCE,
            )
            for inv in invoices
        }
