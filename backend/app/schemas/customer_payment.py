"""Customer payment and allocation schemas."""

import datetime as dt
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.invoice import InvoiceStateLabel


class AllocationStatus(str, Enum):
    """How much of a customer payment has been applied to invoices."""

    UNALLOCATED = "unallocated"
    PARTIAL = "partial"
    ALLOCATED = "allocated"


class CustomerPaymentCreate(BaseModel):
    """Schema for recording a lump-sum payment from a customer."""

    customer_id: UUID
    amount: Decimal = Field(..., gt=0)
    payment_method: str | None = Field(default=None, max_length=30)
    reference: str | None = Field(default=None, max_length=255)
    notes: str | None = None
    received_at: dt.datetime | None = None


class AllocationPreviewRequest(BaseModel):
    customer_id: UUID
    amount: Decimal


class CustomerPaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    customer_id: UUID
    amount: Decimal
    payment_method: str | None = None
    reference: str | None = None
    notes: str | None = None
    received_at: dt.datetime
    created_at: dt.datetime


class EligibleInvoiceResponse(BaseModel):
    invoice_id: UUID
    invoice_number: str
    date: dt.date | None = None
    label: InvoiceStateLabel
    collectible_due: Decimal


class InvoiceAllocationResponse(BaseModel):
    invoice_id: UUID
    invoice_number: str
    allocated: Decimal


class AllocationResultResponse(BaseModel):
    customer_payment: CustomerPaymentResponse | None = None
    eligible_invoices: list[EligibleInvoiceResponse]
    allocations: list[InvoiceAllocationResponse]
    allocated_amount: Decimal
    unallocated_amount: Decimal


class CustomerPaymentRegisterEntry(BaseModel):
    id: UUID
    customer_id: UUID
    customer_name: str | None = None
    amount: Decimal
    payment_method: str | None = None
    reference: str | None = None
    notes: str | None = None
    received_at: dt.datetime
    allocated_amount: Decimal
    allocation_status: AllocationStatus


class ReceiptAllocationResponse(BaseModel):
    invoice_id: UUID
    invoice_number: str
    invoice_date: dt.date | None = None
    invoice_total: Decimal
    applied: Decimal
    remaining_due: Decimal
    is_settled: bool


class ReceiptResponse(BaseModel):
    id: UUID
    customer_id: UUID
    customer_name: str | None = None
    customer_phone: str | None = None
    amount: Decimal
    payment_method: str | None = None
    reference: str | None = None
    notes: str | None = None
    received_at: dt.datetime
    allocations: list[ReceiptAllocationResponse]
    unallocated_amount: Decimal
