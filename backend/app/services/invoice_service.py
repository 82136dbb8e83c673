"""Invoice service: status views, direct payments and manual settlement."""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.invoice import Invoice
from app.models.invoice_payment import InvoicePayment
from app.repositories.customer_repository import CustomerRepository
from app.repositories.invoice_payment_repository import InvoicePaymentRepository
from app.repositories.invoice_repository import InvoiceRepository
from app.schemas.invoice import InvoiceCreate
from app.schemas.invoice_payment import InvoicePaymentAdd, InvoicePaymentCreate
from app.services.invoice_state import InvoiceView, resolve_invoice_state
from app.services.payment_status import ZERO, InvoiceSnapshot, PaymentStatusService, parse_amount

logger = logging.getLogger(__name__)


@dataclass
class CustomerBalance:
    """Totals across all invoices of one customer."""

    customer_id: UUID
    invoice_count: int
    total_billed: Decimal
    total_paid: Decimal
    outstanding: Decimal
    has_unpaid_invoices: bool


class InvoiceService:
    """Service for invoice business logic."""

    def __init__(self, db: Session):
        self.db = db
        self.invoice_repo = InvoiceRepository(db)
        self.payment_repo = InvoicePaymentRepository(db)
        self.customer_repo = CustomerRepository(db)
        self.status_service = PaymentStatusService(db)

    def create_invoice(self, data: InvoiceCreate) -> Invoice:
        if not self.customer_repo.get_by_id(data.customer_id):
            raise ValueError(f"Customer {data.customer_id} not found")
        if data.invoice_number and self.invoice_repo.get_by_invoice_number(data.invoice_number):
            raise ValueError(f"Invoice number '{data.invoice_number}' already exists")
        return self.invoice_repo.create(data)

    def evaluate(self, invoice: Invoice) -> InvoiceView:
        """Derive payment status and state for a single invoice."""
        snapshot = InvoiceSnapshot.from_invoice(invoice)
        payment = self.status_service.derive_payment_status(invoice)
        return InvoiceView(
            invoice=snapshot,
            payment=payment,
            state=resolve_invoice_state(snapshot, payment),
        )

    def evaluate_many(self, invoices: list[Invoice]) -> dict[UUID, InvoiceView]:
        """Derive payment status and state for many invoices, keyed by invoice ID."""
        statuses = self.status_service.derive_for_invoices(invoices)
        views: dict[UUID, InvoiceView] = {}
        for invoice in invoices:
            snapshot = InvoiceSnapshot.from_invoice(invoice)
            payment = statuses[invoice.id]  # type: ignore[index]
            views[invoice.id] = InvoiceView(  # type: ignore[index]
                invoice=snapshot,
                payment=payment,
                state=resolve_invoice_state(snapshot, payment),
            )
        return views

    def get_invoice_status(self, invoice_id: UUID) -> InvoiceView:
        invoice = self.invoice_repo.get_by_id(invoice_id)
        if not invoice:
            raise ValueError(f"Invoice {invoice_id} not found")
        return self.evaluate(invoice)

    def list_customer_invoices(self, customer_id: UUID) -> list[tuple[Invoice, InvoiceView]]:
        """All invoices of a customer, oldest first, each with its derived view."""
        if not self.customer_repo.get_by_id(customer_id):
            raise ValueError(f"Customer {customer_id} not found")
        invoices = self.invoice_repo.get_by_customer_id(customer_id)
        views = self.evaluate_many(invoices)
        return [(invoice, views[invoice.id]) for invoice in invoices]  # type: ignore[index]

    def get_customer_balance(self, customer_id: UUID) -> CustomerBalance:
        rows = self.list_customer_invoices(customer_id)
        views = [view for _, view in rows]
        return CustomerBalance(
            customer_id=customer_id,
            invoice_count=len(views),
            total_billed=sum((parse_amount(v.invoice.total) for v in views), ZERO),
            total_paid=sum((v.payment.paid for v in views), ZERO),
            outstanding=sum((v.state.collectible_due for v in views), ZERO),
            has_unpaid_invoices=any(v.state.collectible_due > 0 for v in views),
        )

    def add_payment(self, invoice_id: UUID, data: InvoicePaymentAdd) -> InvoicePayment:
        """Record money received directly against one invoice."""
        invoice = self.invoice_repo.get_by_id(invoice_id)
        if not invoice:
            raise ValueError(f"Invoice {invoice_id} not found")
        if invoice.settled:
            raise ValueError("Cannot record a payment against a settled invoice")

        view = self.evaluate(invoice)
        if data.amount > view.state.collectible_due:
            logger.warning(
                "Payment of %s on invoice %s exceeds collectible due %s",
                data.amount,
                invoice.invoice_number,
                view.state.collectible_due,
            )

        payment = self.payment_repo.create(
            InvoicePaymentCreate(
                invoice_id=invoice_id,
                amount=data.amount,
                method=data.method,
                date=data.date or date.today(),
                remarks=data.remarks,
            )
        )
        logger.info(
            "Recorded %s payment of %s on invoice %s",
            data.method.value,
            data.amount,
            invoice.invoice_number,
        )
        return payment

    def settle_invoice(self, invoice_id: UUID, reason: str) -> Invoice:
        """Write off whatever is left on an invoice. Settlement is permanent."""
        if not reason or not reason.strip():
            raise ValueError("Settlement reason is required")
        invoice = self.invoice_repo.settle(invoice_id, reason.strip())
        if not invoice:
            raise ValueError(f"Invoice {invoice_id} not found")
        logger.info("Settled invoice %s: %s", invoice.invoice_number, invoice.settlement_reason)
        return invoice
