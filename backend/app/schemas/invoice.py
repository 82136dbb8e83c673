import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.invoice import InvoiceStateLabel, PaymentStatus

if TYPE_CHECKING:
    from app.services.invoice_state import InvoiceView


class InvoiceCreate(BaseModel):
    customer_id: UUID
    invoice_number: str | None = Field(default=None, min_length=1, max_length=50)
    date: dt.date
    subtotal: Decimal = Field(default=Decimal("0"), ge=0)
    tax: Decimal = Field(default=Decimal("0"), ge=0)
    # Defaults to subtotal + tax
    total: Decimal | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    raw_payload: dict[str, Any] = Field(default_factory=dict)


class InvoiceSettle(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Settlement reason is required")
        return value.strip()


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    invoice_number: str
    customer_id: UUID
    date: dt.date
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    currency: str
    raw_payload: dict[str, Any] | None = None
    settled: bool
    settlement_reason: str | None = None
    settled_at: dt.datetime | None = None
    created_at: dt.datetime
    updated_at: dt.datetime


class PaymentStatusResponse(BaseModel):
    status: PaymentStatus
    paid: Decimal
    remaining: Decimal


class InvoiceStateResponse(BaseModel):
    label: InvoiceStateLabel
    is_paid: bool
    is_partial: bool
    is_unpaid: bool
    is_settled: bool
    collectible_due: Decimal


class InvoiceStatusResponse(BaseModel):
    invoice_id: UUID
    invoice_number: str
    payment: PaymentStatusResponse
    state: InvoiceStateResponse

    @classmethod
    def from_view(cls, view: "InvoiceView") -> "InvoiceStatusResponse":
        return cls(
            invoice_id=view.invoice.id,  # type: ignore[arg-type]
            invoice_number=view.invoice.invoice_number,
            payment=PaymentStatusResponse(
                status=view.payment.status,
                paid=view.payment.paid,
                remaining=view.payment.remaining,
            ),
            state=InvoiceStateResponse(
                label=view.state.label,
                is_paid=view.state.is_paid,
                is_partial=view.state.is_partial,
                is_unpaid=view.state.is_unpaid,
                is_settled=view.state.is_settled,
                collectible_due=view.state.collectible_due,
            ),
        )


class InvoiceWithStatusResponse(InvoiceResponse):
    payment: PaymentStatusResponse
    state: InvoiceStateResponse
