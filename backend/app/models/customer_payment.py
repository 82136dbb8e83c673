"""CustomerPayment model - lump sums received from a customer."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, func

from app.core.database import Base
from app.models.shared import UUIDType, generate_uuid, money


class CustomerPayment(Base):
    """A customer-level payment, distributed over invoices by FIFO allocation."""

    __tablename__ = "customer_payments"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    customer_id = Column(
        UUIDType, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    amount = Column(money(), nullable=False)
    payment_method = Column(String(30), nullable=True)
    reference = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    received_at = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
