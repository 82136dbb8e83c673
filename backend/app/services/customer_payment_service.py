"""Customer payment service: records lump sums and allocates them FIFO.

Allocation pipeline for one customer:

1. Load the customer's invoices and their ledger rows.
2. Derive payment status and invoice state for each invoice.
3. Keep invoices with collectible due that are not settled.
4. Sort them oldest first (date, then invoice number).
5. Run the FIFO allocator over the payment's unallocated amount.
6. Persist one ``customer_payment`` ledger row per allocation.

Steps 1-6 run under a per-customer lock so that two allocations for the same
customer never plan against the same snapshot of dues.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.locks import CustomerLockRegistry, customer_locks
from app.models.customer_payment import CustomerPayment
from app.models.invoice_payment import InvoicePayment, PaymentMethod
from app.models.shared import utc_now
from app.repositories.customer_payment_repository import CustomerPaymentRepository
from app.repositories.customer_repository import CustomerRepository
from app.repositories.invoice_payment_repository import InvoicePaymentRepository
from app.repositories.invoice_repository import InvoiceRepository
from app.schemas.customer_payment import (
    AllocationStatus,
    CustomerPaymentCreate,
    CustomerPaymentRegisterEntry,
    ReceiptAllocationResponse,
    ReceiptResponse,
)
from app.schemas.invoice_payment import InvoicePaymentCreate
from app.services.invoice_service import InvoiceService
from app.services.invoice_state import InvoiceView
from app.services.payment_allocation import (
    InvoiceAllocation,
    allocate_payment_fifo,
    select_collectible,
    sort_for_fifo,
    total_allocated,
)
from app.services.payment_status import ZERO, parse_amount

logger = logging.getLogger(__name__)

ALLOCATION_REMARKS = "Allocated from customer payment"


@dataclass
class AllocationOutcome:
    """Result of allocating (or previewing) a customer payment."""

    customer_payment: CustomerPayment | None
    eligible_invoices: list[InvoiceView] = field(default_factory=list)
    allocations: list[InvoiceAllocation] = field(default_factory=list)
    allocated_amount: Decimal = ZERO
    unallocated_amount: Decimal = ZERO


def allocation_status(amount: Any, allocated: Any) -> AllocationStatus:
    """Classify a customer payment by how much of it reached invoices."""
    allocated = parse_amount(allocated)
    if allocated <= 0:
        return AllocationStatus.UNALLOCATED
    if allocated < parse_amount(amount):
        return AllocationStatus.PARTIAL
    return AllocationStatus.ALLOCATED


class CustomerPaymentService:
    """Service for customer payment business logic."""

    def __init__(self, db: Session, locks: CustomerLockRegistry | None = None):
        self.db = db
        self.locks = locks or customer_locks
        self.customer_repo = CustomerRepository(db)
        self.customer_payment_repo = CustomerPaymentRepository(db)
        self.invoice_repo = InvoiceRepository(db)
        self.payment_repo = InvoicePaymentRepository(db)
        self.invoice_service = InvoiceService(db)

    def _plan(
        self, customer_id: UUID, amount: Decimal
    ) -> tuple[list[InvoiceView], list[InvoiceAllocation]]:
        invoices = self.invoice_repo.get_by_customer_id(customer_id)
        views = self.invoice_service.evaluate_many(invoices)
        candidates = sort_for_fifo(select_collectible(views.values()))
        allocations = allocate_payment_fifo(candidates, amount)
        logger.debug(
            "Customer %s: %d of %d invoices eligible, %d allocations",
            customer_id,
            len(candidates),
            len(invoices),
            len(allocations),
        )
        return [views[c.invoice_id] for c in candidates], allocations

    def _allocate_unallocated(self, payment: CustomerPayment) -> AllocationOutcome:
        already = self.payment_repo.get_allocated_totals([payment.id]).get(  # type: ignore[list-item]
            payment.id, ZERO  # type: ignore[arg-type]
        )
        available = max(ZERO, parse_amount(payment.amount) - already)

        eligible, allocations = self._plan(payment.customer_id, available)  # type: ignore[arg-type]
        if allocations:
            received_on = payment.received_at.date()  # type: ignore[union-attr]
            self.payment_repo.create_many(
                [
                    InvoicePaymentCreate(
                        invoice_id=a.invoice_id,
                        amount=a.allocated,
                        method=PaymentMethod.CUSTOMER_PAYMENT,
                        date=received_on,
                        customer_payment_id=payment.id,  # type: ignore[arg-type]
                        remarks=ALLOCATION_REMARKS,
                    )
                    for a in allocations
                ],
                commit=False,
            )

        allocated = total_allocated(allocations)
        return AllocationOutcome(
            customer_payment=payment,
            eligible_invoices=eligible,
            allocations=allocations,
            allocated_amount=allocated,
            unallocated_amount=available - allocated,
        )

    def record_customer_payment(self, data: CustomerPaymentCreate) -> AllocationOutcome:
        """Store a lump-sum payment and allocate it across the customer's invoices."""
        if not self.customer_repo.get_by_id(data.customer_id):
            raise ValueError(f"Customer {data.customer_id} not found")
        if data.amount <= 0:
            raise ValueError("Payment amount must be positive")

        with self.locks.hold(data.customer_id):
            try:
                payment = self.customer_payment_repo.create(
                    customer_id=data.customer_id,
                    amount=data.amount,
                    received_at=data.received_at or utc_now(),
                    payment_method=data.payment_method,
                    reference=data.reference,
                    notes=data.notes,
                    commit=False,
                )
                outcome = self._allocate_unallocated(payment)
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception("Failed to record payment for customer %s", data.customer_id)
                raise

        self.db.refresh(payment)
        logger.info(
            "Customer payment %s of %s: allocated %s across %d invoices, %s unallocated",
            payment.id,
            data.amount,
            outcome.allocated_amount,
            len(outcome.allocations),
            outcome.unallocated_amount,
        )
        return outcome

    def allocate_customer_payment(self, customer_payment_id: UUID) -> AllocationOutcome:
        """Allocate whatever part of an existing customer payment is still unapplied."""
        payment = self.customer_payment_repo.get_by_id(customer_payment_id)
        if not payment:
            raise ValueError(f"Customer payment {customer_payment_id} not found")

        with self.locks.hold(payment.customer_id):  # type: ignore[arg-type]
            try:
                outcome = self._allocate_unallocated(payment)
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception("Failed to allocate customer payment %s", customer_payment_id)
                raise

        logger.info(
            "Customer payment %s: allocated %s across %d invoices, %s unallocated",
            customer_payment_id,
            outcome.allocated_amount,
            len(outcome.allocations),
            outcome.unallocated_amount,
        )
        return outcome

    def preview_allocation(self, customer_id: UUID, amount: Any) -> AllocationOutcome:
        """Show how ``amount`` would be allocated right now, without persisting anything."""
        if not self.customer_repo.get_by_id(customer_id):
            raise ValueError(f"Customer {customer_id} not found")

        available = max(ZERO, parse_amount(amount))
        eligible, allocations = self._plan(customer_id, available)
        allocated = total_allocated(allocations)
        return AllocationOutcome(
            customer_payment=None,
            eligible_invoices=eligible,
            allocations=allocations,
            allocated_amount=allocated,
            unallocated_amount=available - allocated,
        )

    def list_register(
        self,
        skip: int = 0,
        limit: int = 100,
        customer_id: UUID | None = None,
    ) -> list[CustomerPaymentRegisterEntry]:
        """Customer payments, most recent first, with how much of each was allocated."""
        payments = self.customer_payment_repo.get_all(
            skip=skip, limit=limit, customer_id=customer_id
        )
        ids = [p.id for p in payments]
        allocated = self.payment_repo.get_allocated_totals(ids)  # type: ignore[arg-type]
        names = self.customer_repo.get_names(
            list({p.customer_id for p in payments})  # type: ignore[arg-type]
        )

        entries = []
        for payment in payments:
            applied = allocated.get(payment.id, ZERO)  # type: ignore[call-overload]
            entries.append(
                CustomerPaymentRegisterEntry(
                    id=payment.id,  # type: ignore[arg-type]
                    customer_id=payment.customer_id,  # type: ignore[arg-type]
                    customer_name=names.get(payment.customer_id),  # type: ignore[call-overload]
                    amount=payment.amount,  # type: ignore[arg-type]
                    payment_method=payment.payment_method,  # type: ignore[arg-type]
                    reference=payment.reference,  # type: ignore[arg-type]
                    notes=payment.notes,  # type: ignore[arg-type]
                    received_at=payment.received_at,  # type: ignore[arg-type]
                    allocated_amount=applied,
                    allocation_status=allocation_status(payment.amount, applied),
                )
            )
        return entries

    def get_receipt(self, customer_payment_id: UUID) -> ReceiptResponse:
        """A customer payment with the invoices it paid down."""
        payment = self.customer_payment_repo.get_by_id(customer_payment_id)
        if not payment:
            raise ValueError(f"Customer payment {customer_payment_id} not found")

        rows = self.payment_repo.get_by_customer_payment_id(customer_payment_id)
        invoices = self.invoice_repo.get_by_ids(list({row.invoice_id for row in rows}))  # type: ignore[misc]
        views = self.invoice_service.evaluate_many(invoices)
        customer = self.customer_repo.get_by_id(payment.customer_id)  # type: ignore[arg-type]

        def _fifo_position(row: InvoicePayment) -> tuple[date, str]:
            snapshot = views[row.invoice_id].invoice  # type: ignore[index]
            return (snapshot.date or date.max, snapshot.invoice_number)

        allocations = []
        for row in sorted(rows, key=_fifo_position):
            view = views[row.invoice_id]  # type: ignore[index]
            allocations.append(
                ReceiptAllocationResponse(
                    invoice_id=row.invoice_id,  # type: ignore[arg-type]
                    invoice_number=view.invoice.invoice_number,
                    invoice_date=view.invoice.date,
                    invoice_total=parse_amount(view.invoice.total),
                    applied=parse_amount(row.amount),
                    remaining_due=view.state.collectible_due,
                    is_settled=view.state.is_settled,
                )
            )

        applied_total = sum((a.applied for a in allocations), ZERO)
        return ReceiptResponse(
            id=payment.id,  # type: ignore[arg-type]
            customer_id=payment.customer_id,  # type: ignore[arg-type]
            customer_name=customer.name if customer else None,  # type: ignore[arg-type]
            customer_phone=customer.phone if customer else None,  # type: ignore[arg-type]
            amount=payment.amount,  # type: ignore[arg-type]
            payment_method=payment.payment_method,  # type: ignore[arg-type]
            reference=payment.reference,  # type: ignore[arg-type]
            notes=payment.notes,  # type: ignore[arg-type]
            received_at=payment.received_at,  # type: ignore[arg-type]
            allocations=allocations,
            unallocated_amount=max(ZERO, parse_amount(payment.amount) - applied_total),
        )
