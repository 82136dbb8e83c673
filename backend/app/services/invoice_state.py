"""Business-level invoice state on top of the derived payment status."""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from app.models.invoice import InvoiceStateLabel
from app.services.payment_status import (
    PAID_TOLERANCE,
    DerivedPaymentStatus,
    InvoiceSnapshot,
    derive_payment_status_from_data,
)


@dataclass(frozen=True)
class DerivedInvoiceState:
    """Final invoice state.

    ``collectible_due`` is what allocation may still assign against the
    invoice: always 0 for settled invoices, the remaining amount otherwise.
    """

    label: InvoiceStateLabel
    is_paid: bool
    is_partial: bool
    is_unpaid: bool
    is_settled: bool
    collectible_due: Decimal


@dataclass(frozen=True)
class InvoiceView:
    """An invoice together with its derived payment status and state."""

    invoice: InvoiceSnapshot
    payment: DerivedPaymentStatus
    state: DerivedInvoiceState


def resolve_invoice_state(
    invoice: InvoiceSnapshot, payment_status: DerivedPaymentStatus
) -> DerivedInvoiceState:
    """Fold the manual settlement flag into the payment status.

    Settlement wins unconditionally, whatever the ledger says.
    """
    if invoice.settled is True:
        return DerivedInvoiceState(
            label=InvoiceStateLabel.SETTLED,
            is_paid=False,
            is_partial=False,
            is_unpaid=False,
            is_settled=True,
            collectible_due=Decimal("0"),
        )

    label = InvoiceStateLabel(payment_status.status.value)
    return DerivedInvoiceState(
        label=label,
        is_paid=label == InvoiceStateLabel.PAID,
        is_partial=label == InvoiceStateLabel.PARTIAL,
        is_unpaid=label == InvoiceStateLabel.UNPAID,
        is_settled=False,
        collectible_due=payment_status.remaining,
    )


def evaluate_invoice(
    invoice: InvoiceSnapshot,
    payments: Iterable[Any],
    tolerance: Decimal = PAID_TOLERANCE,
) -> InvoiceView:
    payment = derive_payment_status_from_data(invoice, payments, tolerance=tolerance)
    return InvoiceView(
        invoice=invoice,
        payment=payment,
        state=resolve_invoice_state(invoice, payment),
    )
