from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.sorting import apply_order_by
from app.models.invoice import Invoice
from app.models.shared import utc_now
from app.schemas.invoice import InvoiceCreate


class InvoiceRepository:
    def __init__(self, db: Session):
        self.db = db

    def _generate_invoice_number(self) -> str:
        """Generate a unique invoice number."""
        today = datetime.now().strftime("%Y%m%d")
        prefix = f"INV-{today}-"

        # Get the highest invoice number for today
        result = (
            self.db.query(Invoice.invoice_number)
            .filter(Invoice.invoice_number.like(f"{prefix}%"))
            .order_by(Invoice.invoice_number.desc())
            .first()
        )

        if result:
            # Extract number from INV-YYYYMMDD-XXXX format
            try:
                last_num = int(result[0].split("-")[-1])
                new_num = last_num + 1
            except (ValueError, IndexError):
                new_num = 1
        else:
            new_num = 1

        return f"{prefix}{new_num:04d}"

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        customer_id: UUID | None = None,
        order_by: str | None = None,
    ) -> list[Invoice]:
        query = self.db.query(Invoice)
        if customer_id:
            query = query.filter(Invoice.customer_id == customer_id)
        query = apply_order_by(
            query, Invoice, order_by, default_field="date", tie_breaker="invoice_number"
        )
        return query.offset(skip).limit(limit).all()

    def count(self, customer_id: UUID | None = None) -> int:
        query = self.db.query(Invoice)
        if customer_id:
            query = query.filter(Invoice.customer_id == customer_id)
        return query.count()

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        return self.db.query(Invoice).filter(Invoice.id == invoice_id).first()

    def get_by_invoice_number(self, invoice_number: str) -> Invoice | None:
        return self.db.query(Invoice).filter(Invoice.invoice_number == invoice_number).first()

    def get_by_ids(self, invoice_ids: list[UUID]) -> list[Invoice]:
        if not invoice_ids:
            return []
        return self.db.query(Invoice).filter(Invoice.id.in_(invoice_ids)).all()

    def get_by_customer_id(self, customer_id: UUID) -> list[Invoice]:
        """All invoices of a customer, oldest first."""
        return (
            self.db.query(Invoice)
            .filter(Invoice.customer_id == customer_id)
            .order_by(Invoice.date.asc(), Invoice.invoice_number.asc())
            .all()
        )

    def create(self, data: InvoiceCreate) -> Invoice:
        total = data.total if data.total is not None else data.subtotal + data.tax

        invoice = Invoice(
            invoice_number=data.invoice_number or self._generate_invoice_number(),
            customer_id=data.customer_id,
            date=data.date,
            subtotal=data.subtotal,
            tax=data.tax,
            total=total,
            currency=data.currency or settings.DEFAULT_CURRENCY,
            raw_payload=data.raw_payload,
        )
        self.db.add(invoice)
        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    def settle(self, invoice_id: UUID, reason: str) -> Invoice | None:
        """Mark an invoice as settled. Settlement cannot be undone."""
        invoice = self.get_by_id(invoice_id)
        if not invoice:
            return None
        if invoice.settled:
            raise ValueError("Invoice is already settled")

        invoice.settled = True  # type: ignore[assignment]
        invoice.settlement_reason = reason  # type: ignore[assignment]
        invoice.settled_at = utc_now()  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(invoice)
        return invoice
