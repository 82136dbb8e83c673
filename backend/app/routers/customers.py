from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.customer import Customer
from app.repositories.customer_repository import CustomerRepository
from app.schemas.customer import CustomerBalanceResponse, CustomerCreate, CustomerResponse
from app.schemas.invoice import InvoiceResponse, InvoiceStatusResponse, InvoiceWithStatusResponse
from app.services.invoice_service import InvoiceService

router = APIRouter()


@router.get(
    "/",
    response_model=list[CustomerResponse],
    summary="List customers",
)
async def list_customers(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[Customer]:
    """List all customers with pagination."""
    repo = CustomerRepository(db)
    response.headers["X-Total-Count"] = str(repo.count())
    return repo.get_all(skip=skip, limit=limit)


@router.post(
    "/",
    response_model=CustomerResponse,
    status_code=201,
    summary="Create customer",
    responses={422: {"description": "Validation error"}},
)
async def create_customer(
    data: CustomerCreate,
    db: Session = Depends(get_db),
) -> Customer:
    return CustomerRepository(db).create(data)


@router.get(
    "/{customer_id}",
    response_model=CustomerResponse,
    summary="Get customer",
    responses={404: {"description": "Customer not found"}},
)
async def get_customer(
    customer_id: UUID,
    db: Session = Depends(get_db),
) -> Customer:
    customer = CustomerRepository(db).get_by_id(customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.get(
    "/{customer_id}/invoices",
    response_model=list[InvoiceWithStatusResponse],
    summary="List customer invoices with payment state",
    responses={404: {"description": "Customer not found"}},
)
async def list_customer_invoices(
    customer_id: UUID,
    db: Session = Depends(get_db),
) -> list[InvoiceWithStatusResponse]:
    """List a customer's invoices, oldest first, each with its derived status and state."""
    service = InvoiceService(db)
    try:
        rows = service.list_customer_invoices(customer_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None

    results = []
    for invoice, view in rows:
        status = InvoiceStatusResponse.from_view(view)
        results.append(
            InvoiceWithStatusResponse(
                **InvoiceResponse.model_validate(invoice).model_dump(),
                payment=status.payment,
                state=status.state,
            )
        )
    return results


@router.get(
    "/{customer_id}/balance",
    response_model=CustomerBalanceResponse,
    summary="Get customer balance",
    responses={404: {"description": "Customer not found"}},
)
async def get_customer_balance(
    customer_id: UUID,
    db: Session = Depends(get_db),
) -> CustomerBalanceResponse:
    """Totals billed, paid and still collectible across a customer's invoices."""
    try:
        balance = InvoiceService(db).get_customer_balance(customer_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    return CustomerBalanceResponse(
        customer_id=balance.customer_id,
        invoice_count=balance.invoice_count,
        total_billed=balance.total_billed,
        total_paid=balance.total_paid,
        outstanding=balance.outstanding,
        has_unpaid_invoices=balance.has_unpaid_invoices,
    )
