"""InvoicePayment model - the itemized payment ledger."""

from enum import Enum

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, String, Text, func

from app.core.database import Base
from app.models.shared import UUIDType, generate_uuid, money


class PaymentMethod(str, Enum):
    """How the money was received. Informational only."""

    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    OTHER = "other"
    CUSTOMER_PAYMENT = "customer_payment"
    RAZORPAY = "razorpay"


class InvoicePayment(Base):
    """InvoicePayment model - one discrete amount applied to one invoice.

    Rows are append-only. A row created by FIFO allocation points back at the
    customer payment it was carved out of via ``customer_payment_id``.
    """

    __tablename__ = "invoice_payments"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    invoice_id = Column(
        UUIDType, ForeignKey("invoices.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    amount = Column(money(), nullable=False)
    method = Column(String(30), nullable=False, default=PaymentMethod.CASH.value)
    date = Column(Date, nullable=False)
    customer_payment_id = Column(
        UUIDType, ForeignKey("customer_payments.id", ondelete="RESTRICT"), nullable=True
    )
    remarks = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("ix_invoice_payments_customer_payment_id", "customer_payment_id"),)
