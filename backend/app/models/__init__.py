from app.models.customer import Customer
from app.models.customer_payment import CustomerPayment
from app.models.idempotency_record import IdempotencyRecord
from app.models.invoice import Invoice, InvoiceStateLabel, PaymentStatus
from app.models.invoice_payment import InvoicePayment, PaymentMethod

__all__ = [
    "Customer",
    "CustomerPayment",
    "IdempotencyRecord",
    "Invoice",
    "InvoiceStateLabel",
    "InvoicePayment",
    "PaymentMethod",
    "PaymentStatus",
]
