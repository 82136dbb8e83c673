"""Invoice payment ledger repository.

The ledger is append-only: rows are created, never updated or deleted.
"""

from collections import defaultdict
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func as sa_func
from sqlalchemy.orm import Session

from app.models.invoice_payment import InvoicePayment
from app.schemas.invoice_payment import InvoicePaymentCreate


class InvoicePaymentRepository:
    """Repository for InvoicePayment model."""

    def __init__(self, db: Session):
        self.db = db

    def _build(self, data: InvoicePaymentCreate) -> InvoicePayment:
        return InvoicePayment(
            invoice_id=data.invoice_id,
            amount=data.amount,
            method=data.method.value,
            date=data.date,
            customer_payment_id=data.customer_payment_id,
            remarks=data.remarks,
        )

    def create(self, data: InvoicePaymentCreate, commit: bool = True) -> InvoicePayment:
        """Append one ledger row."""
        payment = self._build(data)
        self.db.add(payment)
        if commit:
            self.db.commit()
            self.db.refresh(payment)
        else:
            self.db.flush()
        return payment

    def create_many(
        self, rows: list[InvoicePaymentCreate], commit: bool = True
    ) -> list[InvoicePayment]:
        """Append several ledger rows in one go."""
        payments = [self._build(row) for row in rows]
        self.db.add_all(payments)
        if commit:
            self.db.commit()
            for payment in payments:
                self.db.refresh(payment)
        else:
            self.db.flush()
        return payments

    def get_by_id(self, payment_id: UUID) -> InvoicePayment | None:
        return self.db.query(InvoicePayment).filter(InvoicePayment.id == payment_id).first()

    def get_by_invoice_id(self, invoice_id: UUID) -> list[InvoicePayment]:
        """Get all ledger rows for an invoice, oldest first."""
        return (
            self.db.query(InvoicePayment)
            .filter(InvoicePayment.invoice_id == invoice_id)
            .order_by(InvoicePayment.date.asc(), InvoicePayment.created_at.asc())
            .all()
        )

    def get_by_invoice_ids(self, invoice_ids: list[UUID]) -> dict[UUID, list[InvoicePayment]]:
        """Get ledger rows for many invoices, grouped by invoice ID."""
        grouped: dict[UUID, list[InvoicePayment]] = defaultdict(list)
        if not invoice_ids:
            return grouped
        rows = (
            self.db.query(InvoicePayment)
            .filter(InvoicePayment.invoice_id.in_(invoice_ids))
            .order_by(InvoicePayment.date.asc(), InvoicePayment.created_at.asc())
            .all()
        )
        for row in rows:
            grouped[row.invoice_id].append(row)  # type: ignore[index]
        return grouped

    def get_by_customer_payment_id(self, customer_payment_id: UUID) -> list[InvoicePayment]:
        """Get the rows allocated from one customer payment."""
        return (
            self.db.query(InvoicePayment)
            .filter(InvoicePayment.customer_payment_id == customer_payment_id)
            .order_by(InvoicePayment.created_at.asc())
            .all()
        )

    def get_allocated_totals(self, customer_payment_ids: list[UUID]) -> dict[UUID, Decimal]:
        """Sum of allocated rows per customer payment."""
        if not customer_payment_ids:
            return {}
        rows = (
            self.db.query(
                InvoicePayment.customer_payment_id,
                sa_func.sum(InvoicePayment.amount),
            )
            .filter(InvoicePayment.customer_payment_id.in_(customer_payment_ids))
            .group_by(InvoicePayment.customer_payment_id)
            .all()
        )
        return {row[0]: Decimal(str(row[1])) for row in rows if row[1] is not None}
