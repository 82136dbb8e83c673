from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.idempotency import IdempotencyResult, check_idempotency, record_idempotency_response
from app.schemas.customer_payment import (
    AllocationPreviewRequest,
    AllocationResultResponse,
    CustomerPaymentCreate,
    CustomerPaymentRegisterEntry,
    CustomerPaymentResponse,
    EligibleInvoiceResponse,
    InvoiceAllocationResponse,
    ReceiptResponse,
)
from app.services.customer_payment_service import AllocationOutcome, CustomerPaymentService

router = APIRouter()


def _http_error(e: ValueError) -> HTTPException:
    detail = str(e)
    status_code = 404 if "not found" in detail else 400
    return HTTPException(status_code=status_code, detail=detail)


def _to_response(outcome: AllocationOutcome) -> AllocationResultResponse:
    return AllocationResultResponse(
        customer_payment=(
            CustomerPaymentResponse.model_validate(outcome.customer_payment)
            if outcome.customer_payment is not None
            else None
        ),
        eligible_invoices=[
            EligibleInvoiceResponse(
                invoice_id=view.invoice.id,  # type: ignore[arg-type]
                invoice_number=view.invoice.invoice_number,
                date=view.invoice.date,
                label=view.state.label,
                collectible_due=view.state.collectible_due,
            )
            for view in outcome.eligible_invoices
        ],
        allocations=[
            InvoiceAllocationResponse(
                invoice_id=a.invoice_id,
                invoice_number=a.invoice_number,
                allocated=a.allocated,
            )
            for a in outcome.allocations
        ],
        allocated_amount=outcome.allocated_amount,
        unallocated_amount=outcome.unallocated_amount,
    )


@router.get(
    "/",
    response_model=list[CustomerPaymentRegisterEntry],
    summary="List customer payments",
)
async def list_customer_payments(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    customer_id: UUID | None = None,
    db: Session = Depends(get_db),
) -> list[CustomerPaymentRegisterEntry]:
    """Payments register: most recent first, with allocated amount and allocation status."""
    return CustomerPaymentService(db).list_register(
        skip=skip, limit=limit, customer_id=customer_id
    )


@router.post(
    "/",
    response_model=AllocationResultResponse,
    status_code=201,
    summary="Record customer payment",
    responses={
        400: {"description": "Invalid payment"},
        404: {"description": "Customer not found"},
        422: {"description": "Validation error"},
    },
)
async def create_customer_payment(
    data: CustomerPaymentCreate,
    request: Request,
    db: Session = Depends(get_db),
) -> AllocationResultResponse | JSONResponse:
    """Record a lump-sum payment and allocate it oldest invoice first.

    Send an ``Idempotency-Key`` header to make retries safe.
    """
    idempotency = check_idempotency(request, db)
    if isinstance(idempotency, JSONResponse):
        return idempotency

    try:
        outcome = CustomerPaymentService(db).record_customer_payment(data)
    except ValueError as e:
        raise _http_error(e) from None

    result = _to_response(outcome)
    if isinstance(idempotency, IdempotencyResult):
        record_idempotency_response(db, idempotency.key, 201, result.model_dump(mode="json"))

    return result


@router.post(
    "/preview",
    response_model=AllocationResultResponse,
    summary="Preview allocation",
    responses={404: {"description": "Customer not found"}},
)
async def preview_allocation(
    data: AllocationPreviewRequest,
    db: Session = Depends(get_db),
) -> AllocationResultResponse:
    """Show how an amount would be allocated without recording anything."""
    try:
        outcome = CustomerPaymentService(db).preview_allocation(data.customer_id, data.amount)
    except ValueError as e:
        raise _http_error(e) from None
    return _to_response(outcome)


@router.get(
    "/{customer_payment_id}",
    response_model=ReceiptResponse,
    summary="Get customer payment receipt",
    responses={404: {"description": "Customer payment not found"}},
)
async def get_customer_payment(
    customer_payment_id: UUID,
    db: Session = Depends(get_db),
) -> ReceiptResponse:
    """A customer payment with every invoice it was applied to."""
    try:
        return CustomerPaymentService(db).get_receipt(customer_payment_id)
    except ValueError as e:
        raise _http_error(e) from None


@router.post(
    "/{customer_payment_id}/allocate",
    response_model=AllocationResultResponse,
    summary="Allocate unapplied remainder",
    responses={404: {"description": "Customer payment not found"}},
)
async def allocate_customer_payment(
    customer_payment_id: UUID,
    db: Session = Depends(get_db),
) -> AllocationResultResponse:
    """Apply whatever is left of an earlier payment to invoices that are now outstanding."""
    try:
        outcome = CustomerPaymentService(db).allocate_customer_payment(customer_payment_id)
    except ValueError as e:
        raise _http_error(e) from None
    return _to_response(outcome)
