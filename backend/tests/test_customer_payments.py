"""Tests for customer payments: FIFO allocation service, register, receipt, and API."""

from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from app.core.database import get_db
from app.core.locks import customer_locks
from app.main import app
from app.models.customer_payment import CustomerPayment
from app.models.invoice import InvoiceStateLabel, PaymentStatus
from app.models.invoice_payment import InvoicePayment
from app.repositories.customer_payment_repository import CustomerPaymentRepository
from app.repositories.customer_repository import CustomerRepository
from app.repositories.invoice_payment_repository import InvoicePaymentRepository
from app.repositories.invoice_repository import InvoiceRepository
from app.schemas.customer import CustomerCreate
from app.schemas.customer_payment import AllocationStatus, CustomerPaymentCreate
from app.schemas.invoice import InvoiceCreate
from app.schemas.invoice_payment import InvoicePaymentAdd
from app.services import customer_payment_service as cps_module
from app.services.customer_payment_service import (
    ALLOCATION_REMARKS,
    CustomerPaymentService,
    allocation_status,
)
from app.services.invoice_service import InvoiceService

RECEIVED_AT = datetime(2026, 3, 1, 10, 30, tzinfo=UTC)


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def db_session():
    """Create a database session for direct repository testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def customer(db_session):
    return CustomerRepository(db_session).create(
        CustomerCreate(name="Kiran General Store", phone="9811111111")
    )


def _invoice(db_session, customer, number, day, total, payload=None):
    return InvoiceRepository(db_session).create(
        InvoiceCreate(
            customer_id=customer.id,
            invoice_number=number,
            date=day,
            subtotal=Decimal(total),
            raw_payload=payload or {},
        )
    )


@pytest.fixture
def two_invoices(db_session, customer):
    """An older invoice with 400 due and a newer one with 600 due."""
    older = _invoice(db_session, customer, "INV-0001", date(2026, 1, 5), "400")
    newer = _invoice(db_session, customer, "INV-0002", date(2026, 2, 5), "600")
    return older, newer


def _pay(db_session, customer, amount, **kwargs):
    return CustomerPaymentService(db_session).record_customer_payment(
        CustomerPaymentCreate(
            customer_id=customer.id,
            amount=Decimal(amount),
            received_at=RECEIVED_AT,
            **kwargs,
        )
    )


class TestAllocationStatus:
    """Tests for the allocation_status helper."""

    @pytest.mark.parametrize(
        ("amount", "allocated", "expected"),
        [
            ("500", "0", AllocationStatus.UNALLOCATED),
            ("500", None, AllocationStatus.UNALLOCATED),
            ("500", "200", AllocationStatus.PARTIAL),
            ("500", "500", AllocationStatus.ALLOCATED),
            ("500.0000", Decimal("500"), AllocationStatus.ALLOCATED),
        ],
    )
    def test_classification(self, amount, allocated, expected):
        assert allocation_status(amount, allocated) == expected


class TestRecordCustomerPayment:
    """Tests for CustomerPaymentService.record_customer_payment."""

    def test_fifo_across_two_invoices(self, db_session, customer, two_invoices):
        older, newer = two_invoices

        outcome = _pay(db_session, customer, "700", payment_method="cash", reference="R-1")

        assert outcome.customer_payment is not None
        assert [a.invoice_id for a in outcome.allocations] == [older.id, newer.id]
        assert [a.allocated for a in outcome.allocations] == [Decimal("400"), Decimal("300")]
        assert outcome.allocated_amount == Decimal("700")
        assert outcome.unallocated_amount == Decimal("0")
        assert [v.invoice.id for v in outcome.eligible_invoices] == [older.id, newer.id]

        service = InvoiceService(db_session)
        assert service.get_invoice_status(older.id).state.label == InvoiceStateLabel.PAID
        newer_view = service.get_invoice_status(newer.id)
        assert newer_view.payment.status == PaymentStatus.PARTIAL
        assert newer_view.state.collectible_due == Decimal("300")

    def test_ledger_rows_point_back_to_payment(self, db_session, customer, two_invoices):
        outcome = _pay(db_session, customer, "700")
        payment_id = outcome.customer_payment.id

        rows = InvoicePaymentRepository(db_session).get_by_customer_payment_id(payment_id)
        assert len(rows) == 2
        for row in rows:
            assert row.method == "customer_payment"
            assert row.date == date(2026, 3, 1)
            assert row.remarks == ALLOCATION_REMARKS
            assert row.customer_payment_id == payment_id

    def test_newest_invoice_first_in_date_order_not_creation_order(self, db_session, customer):
        newer = _invoice(db_session, customer, "INV-0009", date(2026, 3, 1), "100")
        older = _invoice(db_session, customer, "INV-0010", date(2026, 1, 1), "100")

        outcome = _pay(db_session, customer, "100")

        assert [a.invoice_id for a in outcome.allocations] == [older.id]
        assert newer.id not in [a.invoice_id for a in outcome.allocations]

    def test_same_date_tie_break_on_invoice_number(self, db_session, customer):
        day = date(2026, 1, 1)
        b = _invoice(db_session, customer, "INV-B", day, "100")
        a = _invoice(db_session, customer, "INV-A", day, "100")

        outcome = _pay(db_session, customer, "150")

        assert [(x.invoice_id, x.allocated) for x in outcome.allocations] == [
            (a.id, Decimal("100")),
            (b.id, Decimal("50")),
        ]

    def test_skips_settled_and_paid_invoices(self, db_session, customer):
        settled = _invoice(db_session, customer, "INV-0001", date(2026, 1, 1), "500")
        paid = _invoice(db_session, customer, "INV-0002", date(2026, 1, 2), "300")
        open_invoice = _invoice(db_session, customer, "INV-0003", date(2026, 1, 3), "200")
        service = InvoiceService(db_session)
        service.settle_invoice(settled.id, "Written off")
        service.add_payment(paid.id, InvoicePaymentAdd(amount=Decimal("300")))

        outcome = _pay(db_session, customer, "1000")

        assert [a.invoice_id for a in outcome.allocations] == [open_invoice.id]
        assert outcome.allocated_amount == Decimal("200")
        assert outcome.unallocated_amount == Decimal("800")
        assert InvoicePaymentRepository(db_session).get_by_invoice_id(settled.id) == []

    def test_legacy_paid_amount_reduces_due(self, db_session, customer):
        legacy = _invoice(
            db_session, customer, "INV-0001", date(2026, 1, 1), "1000", {"paid_amount": "300"}
        )

        outcome = _pay(db_session, customer, "1000")

        assert outcome.allocations[0].invoice_id == legacy.id
        assert outcome.allocations[0].allocated == Decimal("700")
        assert outcome.unallocated_amount == Decimal("300")

    def test_no_outstanding_invoices(self, db_session, customer):
        outcome = _pay(db_session, customer, "250")

        assert outcome.allocations == []
        assert outcome.allocated_amount == Decimal("0")
        assert outcome.unallocated_amount == Decimal("250")
        stored = CustomerPaymentRepository(db_session).get_by_id(outcome.customer_payment.id)
        assert stored is not None
        assert stored.amount == Decimal("250")

    def test_other_customers_invoices_untouched(self, db_session, customer):
        other = CustomerRepository(db_session).create(CustomerCreate(name="Other"))
        foreign = _invoice(db_session, other, "INV-X", date(2025, 1, 1), "100")

        outcome = _pay(db_session, customer, "100")

        assert outcome.allocations == []
        assert InvoicePaymentRepository(db_session).get_by_invoice_id(foreign.id) == []

    def test_unknown_customer(self, db_session):
        with pytest.raises(ValueError, match="not found"):
            CustomerPaymentService(db_session).record_customer_payment(
                CustomerPaymentCreate(customer_id=uuid4(), amount=Decimal("10"))
            )

    def test_received_at_defaults_to_now(self, db_session, customer):
        outcome = CustomerPaymentService(db_session).record_customer_payment(
            CustomerPaymentCreate(customer_id=customer.id, amount=Decimal("10"))
        )
        assert outcome.customer_payment.received_at is not None

    def test_allocation_runs_under_customer_lock(self, db_session, customer, two_invoices):
        seen = []
        original = cps_module.allocate_payment_fifo

        def spy(invoices, amount):
            seen.append(customer_locks.is_locked(customer.id))
            return original(invoices, amount)

        with patch.object(cps_module, "allocate_payment_fifo", side_effect=spy):
            _pay(db_session, customer, "100")

        assert seen == [True]
        assert customer_locks.is_locked(customer.id) is False

    def test_database_error_rolls_back_and_propagates(self, db_session, customer, two_invoices):
        with (
            patch.object(
                InvoicePaymentRepository,
                "create_many",
                side_effect=SQLAlchemyError("disk full"),
            ),
            pytest.raises(SQLAlchemyError),
        ):
            _pay(db_session, customer, "700")

        assert db_session.query(CustomerPayment).count() == 0
        assert db_session.query(InvoicePayment).count() == 0
        assert customer_locks.is_locked(customer.id) is False


class TestAllocateCustomerPayment:
    """Tests for allocating the remainder of an existing payment."""

    def test_allocates_remainder_to_new_invoices(self, db_session, customer):
        outcome = _pay(db_session, customer, "500")
        payment_id = outcome.customer_payment.id
        assert outcome.unallocated_amount == Decimal("500")

        invoice = _invoice(db_session, customer, "INV-LATE", date(2026, 3, 2), "300")
        service = CustomerPaymentService(db_session)

        second = service.allocate_customer_payment(payment_id)
        assert [a.invoice_id for a in second.allocations] == [invoice.id]
        assert second.allocated_amount == Decimal("300")
        assert second.unallocated_amount == Decimal("200")

        third = service.allocate_customer_payment(payment_id)
        assert third.allocations == []
        assert third.unallocated_amount == Decimal("200")

    def test_fully_allocated_payment_allocates_nothing(self, db_session, customer, two_invoices):
        outcome = _pay(db_session, customer, "400")
        _invoice(db_session, customer, "INV-0003", date(2026, 3, 1), "100")

        again = CustomerPaymentService(db_session).allocate_customer_payment(
            outcome.customer_payment.id
        )
        assert again.allocations == []
        assert again.allocated_amount == Decimal("0")

    def test_unknown_payment(self, db_session):
        with pytest.raises(ValueError, match="not found"):
            CustomerPaymentService(db_session).allocate_customer_payment(uuid4())


class TestPreviewAllocation:
    """Tests for preview_allocation."""

    def test_preview_does_not_persist(self, db_session, customer, two_invoices):
        older, newer = two_invoices

        preview = CustomerPaymentService(db_session).preview_allocation(customer.id, "700")

        assert preview.customer_payment is None
        assert [a.allocated for a in preview.allocations] == [Decimal("400"), Decimal("300")]
        assert db_session.query(CustomerPayment).count() == 0
        assert db_session.query(InvoicePayment).count() == 0

    def test_preview_non_positive_amount(self, db_session, customer, two_invoices):
        preview = CustomerPaymentService(db_session).preview_allocation(customer.id, "-5")
        assert preview.allocations == []
        assert preview.unallocated_amount == Decimal("0")
        assert len(preview.eligible_invoices) == 2

    def test_preview_unknown_customer(self, db_session):
        with pytest.raises(ValueError, match="not found"):
            CustomerPaymentService(db_session).preview_allocation(uuid4(), "10")


class TestRegisterAndReceipt:
    """Tests for the payments register and receipts."""

    def test_register_statuses(self, db_session, customer, two_invoices):
        _pay(db_session, customer, "700", reference="FULL")
        _pay(db_session, customer, "500", reference="PARTIAL")
        _pay(db_session, customer, "50", reference="NONE")

        register = CustomerPaymentService(db_session).list_register(customer_id=customer.id)
        by_ref = {entry.reference: entry for entry in register}

        assert by_ref["FULL"].allocation_status == AllocationStatus.ALLOCATED
        assert by_ref["FULL"].allocated_amount == Decimal("700")
        assert by_ref["PARTIAL"].allocation_status == AllocationStatus.PARTIAL
        assert by_ref["PARTIAL"].allocated_amount == Decimal("300")
        assert by_ref["NONE"].allocation_status == AllocationStatus.UNALLOCATED
        assert all(e.customer_name == "Kiran General Store" for e in register)

    def test_register_filters_by_customer(self, db_session, customer):
        other = CustomerRepository(db_session).create(CustomerCreate(name="Other"))
        _pay(db_session, customer, "10")
        _pay(db_session, other, "20")

        service = CustomerPaymentService(db_session)
        assert len(service.list_register()) == 2
        only = service.list_register(customer_id=other.id)
        assert [e.customer_id for e in only] == [other.id]

    def test_receipt(self, db_session, customer, two_invoices):
        older, newer = two_invoices
        outcome = _pay(db_session, customer, "700", payment_method="upi", reference="UTR-1")

        receipt = CustomerPaymentService(db_session).get_receipt(outcome.customer_payment.id)

        assert receipt.customer_name == "Kiran General Store"
        assert receipt.customer_phone == "9811111111"
        assert receipt.reference == "UTR-1"
        assert [a.invoice_number for a in receipt.allocations] == ["INV-0001", "INV-0002"]
        assert [a.applied for a in receipt.allocations] == [Decimal("400"), Decimal("300")]
        assert receipt.allocations[0].remaining_due == Decimal("0")
        assert receipt.allocations[1].remaining_due == Decimal("300")
        assert receipt.allocations[1].invoice_total == Decimal("600")
        assert receipt.unallocated_amount == Decimal("0")

    def test_receipt_unknown_payment(self, db_session):
        with pytest.raises(ValueError, match="not found"):
            CustomerPaymentService(db_session).get_receipt(uuid4())


class TestCustomerPaymentsAPI:
    """Tests for the /v1/customer_payments endpoints."""

    def _setup(self, client):
        customer_id = client.post("/v1/customers/", json={"name": "API Payer"}).json()["id"]
        invoice_ids = []
        for number, day, subtotal in [("INV-1", "2026-01-01", "400"), ("INV-2", "2026-02-01", "600")]:
            response = client.post(
                "/v1/invoices/",
                json={
                    "customer_id": customer_id,
                    "invoice_number": number,
                    "date": day,
                    "subtotal": subtotal,
                },
            )
            invoice_ids.append(response.json()["id"])
        return customer_id, invoice_ids

    def test_record_payment(self, client):
        customer_id, invoice_ids = self._setup(client)

        response = client.post(
            "/v1/customer_payments/",
            json={
                "customer_id": customer_id,
                "amount": "700",
                "payment_method": "cash",
                "received_at": "2026-03-01T10:00:00Z",
            },
        )
        assert response.status_code == 201, response.text
        data = response.json()
        assert data["customer_payment"]["customer_id"] == customer_id
        assert [a["invoice_id"] for a in data["allocations"]] == invoice_ids
        assert [Decimal(a["allocated"]) for a in data["allocations"]] == [
            Decimal("400"),
            Decimal("300"),
        ]
        assert Decimal(data["allocated_amount"]) == Decimal("700")
        assert Decimal(data["unallocated_amount"]) == Decimal("0")
        assert [e["label"] for e in data["eligible_invoices"]] == ["unpaid", "unpaid"]

        status = client.get(f"/v1/invoices/{invoice_ids[1]}/status").json()
        assert status["state"]["label"] == "partial"
        assert Decimal(status["state"]["collectible_due"]) == Decimal("300")

    def test_idempotent_retry_does_not_allocate_twice(self, client, db_session):
        customer_id, _ = self._setup(client)
        payload = {"customer_id": customer_id, "amount": "700"}
        headers = {"Idempotency-Key": "pay-123"}

        first = client.post("/v1/customer_payments/", json=payload, headers=headers)
        second = client.post("/v1/customer_payments/", json=payload, headers=headers)

        assert first.status_code == 201
        assert second.status_code == 201
        assert second.headers["Idempotency-Replayed"] == "true"
        assert second.json() == first.json()
        assert db_session.query(CustomerPayment).count() == 1
        assert db_session.query(InvoicePayment).count() == 2

    def test_without_key_each_request_records(self, client, db_session):
        customer_id, _ = self._setup(client)
        payload = {"customer_id": customer_id, "amount": "100"}

        client.post("/v1/customer_payments/", json=payload)
        client.post("/v1/customer_payments/", json=payload)

        assert db_session.query(CustomerPayment).count() == 2

    def test_record_payment_unknown_customer(self, client):
        response = client.post(
            "/v1/customer_payments/", json={"customer_id": str(uuid4()), "amount": "10"}
        )
        assert response.status_code == 404

    @pytest.mark.parametrize("amount", ["0", "-10"])
    def test_record_payment_non_positive(self, client, amount):
        customer_id, _ = self._setup(client)
        response = client.post(
            "/v1/customer_payments/", json={"customer_id": customer_id, "amount": amount}
        )
        assert response.status_code == 422

    def test_preview(self, client, db_session):
        customer_id, invoice_ids = self._setup(client)

        response = client.post(
            "/v1/customer_payments/preview", json={"customer_id": customer_id, "amount": "450"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["customer_payment"] is None
        assert [Decimal(a["allocated"]) for a in data["allocations"]] == [
            Decimal("400"),
            Decimal("50"),
        ]
        assert db_session.query(InvoicePayment).count() == 0

    def test_preview_unknown_customer(self, client):
        response = client.post(
            "/v1/customer_payments/preview", json={"customer_id": str(uuid4()), "amount": "1"}
        )
        assert response.status_code == 404

    def test_register_and_receipt(self, client):
        customer_id, _ = self._setup(client)
        created = client.post(
            "/v1/customer_payments/",
            json={"customer_id": customer_id, "amount": "1500", "reference": "CHQ-9"},
        ).json()
        payment_id = created["customer_payment"]["id"]

        register = client.get("/v1/customer_payments/", params={"customer_id": customer_id})
        assert register.status_code == 200
        entries = register.json()
        assert len(entries) == 1
        assert entries[0]["allocation_status"] == "partial"
        assert Decimal(entries[0]["allocated_amount"]) == Decimal("1000")
        assert entries[0]["customer_name"] == "API Payer"

        receipt = client.get(f"/v1/customer_payments/{payment_id}")
        assert receipt.status_code == 200
        data = receipt.json()
        assert data["reference"] == "CHQ-9"
        assert len(data["allocations"]) == 2
        assert Decimal(data["unallocated_amount"]) == Decimal("500")

    def test_receipt_unknown(self, client):
        assert client.get(f"/v1/customer_payments/{uuid4()}").status_code == 404

    def test_allocate_endpoint(self, client):
        customer_id = client.post("/v1/customers/", json={"name": "Early Payer"}).json()["id"]
        created = client.post(
            "/v1/customer_payments/", json={"customer_id": customer_id, "amount": "200"}
        ).json()
        assert created["allocations"] == []

        client.post(
            "/v1/invoices/",
            json={
                "customer_id": customer_id,
                "invoice_number": "INV-AFTER",
                "date": "2026-04-01",
                "subtotal": "150",
            },
        )
        response = client.post(
            f"/v1/customer_payments/{created['customer_payment']['id']}/allocate"
        )
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["allocated_amount"]) == Decimal("150")
        assert Decimal(data["unallocated_amount"]) == Decimal("50")

    def test_allocate_unknown(self, client):
        assert client.post(f"/v1/customer_payments/{uuid4()}/allocate").status_code == 404
