"""Customer payment repository for data access."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.customer_payment import CustomerPayment


class CustomerPaymentRepository:
    """Repository for CustomerPayment model."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        customer_id: UUID | None = None,
    ) -> list[CustomerPayment]:
        """Get customer payments, most recent first."""
        query = self.db.query(CustomerPayment)
        if customer_id:
            query = query.filter(CustomerPayment.customer_id == customer_id)
        return (
            query.order_by(CustomerPayment.received_at.desc(), CustomerPayment.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_by_id(self, customer_payment_id: UUID) -> CustomerPayment | None:
        return (
            self.db.query(CustomerPayment)
            .filter(CustomerPayment.id == customer_payment_id)
            .first()
        )

    def create(
        self,
        customer_id: UUID,
        amount: Decimal,
        received_at: datetime,
        payment_method: str | None = None,
        reference: str | None = None,
        notes: str | None = None,
        commit: bool = True,
    ) -> CustomerPayment:
        """Create a new customer payment."""
        payment = CustomerPayment(
            customer_id=customer_id,
            amount=amount,
            payment_method=payment_method,
            reference=reference,
            notes=notes,
            received_at=received_at,
        )
        self.db.add(payment)
        if commit:
            self.db.commit()
            self.db.refresh(payment)
        else:
            self.db.flush()
        return payment
