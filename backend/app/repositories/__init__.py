from app.repositories.customer_payment_repository import CustomerPaymentRepository
from app.repositories.customer_repository import CustomerRepository
from app.repositories.idempotency_repository import IdempotencyRepository
from app.repositories.invoice_payment_repository import InvoicePaymentRepository
from app.repositories.invoice_repository import InvoiceRepository

__all__ = [
    "CustomerPaymentRepository",
    "CustomerRepository",
    "IdempotencyRepository",
    "InvoicePaymentRepository",
    "InvoiceRepository",
]
