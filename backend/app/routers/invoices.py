from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.invoice import Invoice
from app.models.invoice_payment import InvoicePayment
from app.repositories.invoice_payment_repository import InvoicePaymentRepository
from app.repositories.invoice_repository import InvoiceRepository
from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceResponse,
    InvoiceSettle,
    InvoiceStatusResponse,
)
from app.schemas.invoice_payment import InvoicePaymentAdd, InvoicePaymentResponse
from app.services.invoice_service import InvoiceService

router = APIRouter()


def _http_error(e: ValueError) -> HTTPException:
    detail = str(e)
    status_code = 404 if "not found" in detail else 400
    return HTTPException(status_code=status_code, detail=detail)


@router.get(
    "/",
    response_model=list[InvoiceResponse],
    summary="List invoices",
)
async def list_invoices(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    customer_id: UUID | None = None,
    order_by: str | None = Query(default=None, description="e.g. 'date:asc'"),
    db: Session = Depends(get_db),
) -> list[Invoice]:
    """List invoices with optional filters."""
    repo = InvoiceRepository(db)
    response.headers["X-Total-Count"] = str(repo.count(customer_id))
    return repo.get_all(skip=skip, limit=limit, customer_id=customer_id, order_by=order_by)


@router.post(
    "/",
    response_model=InvoiceResponse,
    status_code=201,
    summary="Create invoice",
    responses={
        400: {"description": "Duplicate invoice number"},
        404: {"description": "Customer not found"},
        422: {"description": "Validation error"},
    },
)
async def create_invoice(
    data: InvoiceCreate,
    db: Session = Depends(get_db),
) -> Invoice:
    try:
        return InvoiceService(db).create_invoice(data)
    except ValueError as e:
        raise _http_error(e) from None


@router.get(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    summary="Get invoice",
    responses={404: {"description": "Invoice not found"}},
)
async def get_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
) -> Invoice:
    """Get an invoice by ID."""
    invoice = InvoiceRepository(db).get_by_id(invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice


@router.get(
    "/{invoice_id}/status",
    response_model=InvoiceStatusResponse,
    summary="Get invoice payment status and state",
    responses={404: {"description": "Invoice not found"}},
)
async def get_invoice_status(
    invoice_id: UUID,
    db: Session = Depends(get_db),
) -> InvoiceStatusResponse:
    """Derived paid amount, remaining amount, status label and collectible due."""
    try:
        view = InvoiceService(db).get_invoice_status(invoice_id)
    except ValueError as e:
        raise _http_error(e) from None
    return InvoiceStatusResponse.from_view(view)


@router.get(
    "/{invoice_id}/payments",
    response_model=list[InvoicePaymentResponse],
    summary="List invoice payments",
    responses={404: {"description": "Invoice not found"}},
)
async def list_invoice_payments(
    invoice_id: UUID,
    db: Session = Depends(get_db),
) -> list[InvoicePayment]:
    """Ledger rows recorded against an invoice, oldest first."""
    if not InvoiceRepository(db).get_by_id(invoice_id):
        raise HTTPException(status_code=404, detail="Invoice not found")
    return InvoicePaymentRepository(db).get_by_invoice_id(invoice_id)


@router.post(
    "/{invoice_id}/payments",
    response_model=InvoicePaymentResponse,
    status_code=201,
    summary="Record invoice payment",
    responses={
        400: {"description": "Invoice is settled"},
        404: {"description": "Invoice not found"},
        422: {"description": "Validation error"},
    },
)
async def add_invoice_payment(
    invoice_id: UUID,
    data: InvoicePaymentAdd,
    db: Session = Depends(get_db),
) -> InvoicePayment:
    """Record money received directly against this invoice."""
    try:
        return InvoiceService(db).add_payment(invoice_id, data)
    except ValueError as e:
        raise _http_error(e) from None


@router.post(
    "/{invoice_id}/settle",
    response_model=InvoiceResponse,
    summary="Settle invoice",
    responses={
        400: {"description": "Invoice is already settled"},
        404: {"description": "Invoice not found"},
        422: {"description": "Validation error"},
    },
)
async def settle_invoice(
    invoice_id: UUID,
    data: InvoiceSettle,
    db: Session = Depends(get_db),
) -> Invoice:
    """Write off the rest of an invoice. The invoice drops out of all future allocations."""
    try:
        return InvoiceService(db).settle_invoice(invoice_id, data.reason)
    except ValueError as e:
        raise _http_error(e) from None
