from enum import Enum

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, ForeignKey, String, Text, func

from app.core.database import Base
from app.models.shared import UUIDType, generate_uuid, money


class PaymentStatus(str, Enum):
    """Payment status derived from the legacy paid amount plus the ledger."""

    PAID = "paid"
    PARTIAL = "partial"
    UNPAID = "unpaid"


class InvoiceStateLabel(str, Enum):
    """Presentation state of an invoice: the payment status, or settled."""

    PAID = "paid"
    PARTIAL = "partial"
    UNPAID = "unpaid"
    SETTLED = "settled"


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    invoice_number = Column(String(50), unique=True, index=True, nullable=False)
    customer_id = Column(
        UUIDType, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    # Issuance date, primary FIFO key
    date = Column(Date, nullable=False, index=True)

    # Amounts (stored as Decimal with 4 decimal places for precision)
    subtotal = Column(money(), nullable=False, default=0)
    tax = Column(money(), nullable=False, default=0)
    total = Column(money(), nullable=False, default=0)

    currency = Column(String(3), nullable=False, default="INR")

    # Free-form historical metadata; may carry the legacy "paid_amount" field
    raw_payload = Column(JSON, nullable=True, default=dict)

    # Manual settlement (one-way)
    settled = Column(Boolean, nullable=False, default=False)
    settlement_reason = Column(Text, nullable=True)
    settled_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
