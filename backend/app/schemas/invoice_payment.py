"""Invoice payment (ledger row) schemas."""

import datetime as dt
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.invoice_payment import PaymentMethod


class InvoicePaymentCreate(BaseModel):
    """Schema for appending a ledger row."""

    invoice_id: UUID
    amount: Decimal = Field(..., gt=0)
    method: PaymentMethod = PaymentMethod.CASH
    date: dt.date
    customer_payment_id: UUID | None = None
    remarks: str | None = None


class InvoicePaymentAdd(BaseModel):
    """Schema for recording a payment directly against one invoice."""

    amount: Decimal = Field(..., gt=0)
    method: PaymentMethod = PaymentMethod.CASH
    date: dt.date | None = None
    remarks: str | None = Field(default=None, max_length=500)


class InvoicePaymentResponse(BaseModel):
    """Schema for ledger row response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    invoice_id: UUID
    amount: Decimal
    method: str
    date: dt.date
    customer_payment_id: UUID | None = None
    remarks: str | None = None
    created_at: dt.datetime
