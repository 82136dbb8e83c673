"""FIFO allocation of a lump-sum payment across outstanding invoices.

The allocator itself trusts the order it is given. Eligibility and ordering
are separate steps (:func:`select_collectible` and :func:`sort_for_fifo`)
composed in front of it by the caller.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from app.services.invoice_state import InvoiceView
from app.services.payment_status import ZERO, parse_amount


@dataclass(frozen=True)
class InvoiceForAllocation:
    """An invoice offered to the allocator."""

    invoice_id: UUID
    invoice_number: str
    collectible_due: Decimal
    invoice_date: date | None = None


@dataclass(frozen=True)
class InvoiceAllocation:
    """The part of a payment assigned to one invoice."""

    invoice_id: UUID
    invoice_number: str
    allocated: Decimal


def allocate_payment_fifo(
    invoices: Iterable[InvoiceForAllocation],
    payment_amount: Any,
) -> list[InvoiceAllocation]:
    """Distribute ``payment_amount`` over ``invoices`` in the given order.

    Each invoice is paid down completely before the next one receives
    anything. Iteration stops once the payment is exhausted, so invoices
    past that point get no entry at all. Any excess over the total due is
    left unallocated. A zero or negative amount yields an empty list.
    """
    remaining = parse_amount(payment_amount)
    allocations: list[InvoiceAllocation] = []

    for invoice in invoices:
        if remaining <= 0:
            break

        due = parse_amount(invoice.collectible_due)
        if due <= 0:
            continue

        allocated = min(due, remaining)
        allocations.append(
            InvoiceAllocation(
                invoice_id=invoice.invoice_id,
                invoice_number=invoice.invoice_number,
                allocated=allocated,
            )
        )
        remaining -= allocated

    return allocations


def _fifo_key(invoice: InvoiceForAllocation) -> tuple[bool, date, str]:
    # Undated invoices go last
    return (
        invoice.invoice_date is None,
        invoice.invoice_date or date.min,
        invoice.invoice_number,
    )


def sort_for_fifo(invoices: Iterable[InvoiceForAllocation]) -> list[InvoiceForAllocation]:
    """Order invoices oldest first, breaking date ties on invoice number."""
    return sorted(invoices, key=_fifo_key)


def select_collectible(views: Iterable[InvoiceView]) -> list[InvoiceForAllocation]:
    """Keep the invoices that still have something to collect."""
    return [
        InvoiceForAllocation(
            invoice_id=view.invoice.id,  # type: ignore[arg-type]
            invoice_number=view.invoice.invoice_number,
            collectible_due=view.state.collectible_due,
            invoice_date=view.invoice.date,
        )
        for view in views
        if not view.state.is_settled and view.state.collectible_due > 0
    ]


def total_allocated(allocations: Iterable[InvoiceAllocation]) -> Decimal:
    return sum((a.allocated for a in allocations), ZERO)
