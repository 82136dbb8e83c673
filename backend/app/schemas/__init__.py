from app.schemas.customer import CustomerBalanceResponse, CustomerCreate, CustomerResponse
from app.schemas.customer_payment import (
    AllocationPreviewRequest,
    AllocationResultResponse,
    AllocationStatus,
    CustomerPaymentCreate,
    CustomerPaymentRegisterEntry,
    CustomerPaymentResponse,
    ReceiptResponse,
)
from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceResponse,
    InvoiceSettle,
    InvoiceStatusResponse,
    InvoiceWithStatusResponse,
)
from app.schemas.invoice_payment import (
    InvoicePaymentAdd,
    InvoicePaymentCreate,
    InvoicePaymentResponse,
)

__all__ = [
    "AllocationPreviewRequest",
    "AllocationResultResponse",
    "AllocationStatus",
    "CustomerBalanceResponse",
    "CustomerCreate",
    "CustomerPaymentCreate",
    "CustomerPaymentRegisterEntry",
    "CustomerPaymentResponse",
    "CustomerResponse",
    "InvoiceCreate",
    "InvoicePaymentAdd",
    "InvoicePaymentCreate",
    "InvoicePaymentResponse",
    "InvoiceResponse",
    "InvoiceSettle",
    "InvoiceStatusResponse",
    "InvoiceWithStatusResponse",
    "ReceiptResponse",
]
