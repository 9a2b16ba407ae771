"""
Tests for the invoices module

Covers:
- Status resolution rules (pure, no database)
- Invoice and payment numbering, including numbers typed in by hand
- Creation, update with demotion, void, delete and payments through the service
- Revenue ledger sync for paid invoices
- HTTP endpoints
"""

import logging
import pytest
from datetime import date
from decimal import Decimal
from fastapi import HTTPException
from sqlalchemy import delete, update

from billing.modules.invoices.lifecycle import infer_status, resolve_status, check_void
from billing.modules.invoices.models import Invoice, InvoiceStatus, InvoiceSequence
from billing.modules.invoices.numbering import (
    BatchNumberReserver, InvoiceNumberAllocator, format_invoice_number, max_suffix
)
from billing.modules.invoices.schemas import (
    InvoiceCreate, InvoiceFromRevenue, InvoiceUpdate, PaymentCreate
)
from billing.modules.invoices.service import InvoiceService
from billing.modules.revenue.models import Revenue


# ===== FIXTURES =====

@pytest.fixture
def service(db_session, converter):
    return InvoiceService(db_session, converter)


def invoice_data(**overrides):
    data = {
        "client_name": "Acme Traders",
        "client_state": "Gujarat",
        "invoice_date": date(2026, 3, 10),
        "service_description": "SEO retainer",
        "base_amount": Decimal("10000"),
        "gst_percentage": Decimal("18"),
    }
    data.update(overrides)
    return InvoiceCreate(**data)


def revenue_count(db_session):
    return db_session.query(Revenue).filter(Revenue.invoice_generated.is_(True)).count()


# ===== LIFECYCLE RULES =====

class TestResolveStatus:
    """Status decisions without persistence"""

    @pytest.mark.parametrize("received, expected", [
        (0, InvoiceStatus.UNPAID),
        (1, InvoiceStatus.PARTIAL),
        (4999.99, InvoiceStatus.PARTIAL),
        (5000, InvoiceStatus.PAID),
        (6000, InvoiceStatus.PAID),
    ])
    def test_infer_status(self, received, expected):
        assert infer_status(received, 5000) == expected

    def test_new_invoice_defaults_to_unpaid(self):
        decision = resolve_status(None, None, 0, 5000)
        assert decision.status == InvoiceStatus.UNPAID

    def test_paid_requires_full_receipt(self):
        with pytest.raises(HTTPException) as exc:
            resolve_status(None, InvoiceStatus.PAID, 3000, 5000, received_supplied=True)
        assert exc.value.status_code == 400
        assert "shortfall 2000.00" in exc.value.detail

    def test_paid_with_full_receipt(self):
        decision = resolve_status(None, InvoiceStatus.PAID, 5000, 5000, received_supplied=True)
        assert decision.status == InvoiceStatus.PAID
        assert decision.paid_amount == Decimal("5000.00")

    def test_amount_edit_demotes_paid(self):
        decision = resolve_status(InvoiceStatus.PAID, None, 5000, 6000, amounts_changed=True)
        assert decision.status == InvoiceStatus.UNPAID
        assert decision.received_amount == Decimal("0.00")
        assert decision.paid_amount == Decimal("0.00")
        assert decision.demoted

    def test_amount_edit_with_new_receipt_repays(self):
        decision = resolve_status(
            InvoiceStatus.PAID, None, 6000, 6000, amounts_changed=True, received_supplied=True
        )
        assert decision.status == InvoiceStatus.PAID
        assert decision.demoted

    def test_paid_cannot_leave_paid_without_amount_change(self):
        with pytest.raises(HTTPException):
            resolve_status(InvoiceStatus.PAID, InvoiceStatus.UNPAID, 5000, 5000)

    def test_requesting_current_status_is_a_no_op(self):
        decision = resolve_status(InvoiceStatus.PAID, InvoiceStatus.PAID, 5000, 5000)
        assert decision.status == InvoiceStatus.PAID

    def test_partial_only_moves_to_paid(self):
        with pytest.raises(HTTPException):
            resolve_status(InvoiceStatus.PARTIAL, InvoiceStatus.UNPAID, 2000, 5000)
        with pytest.raises(HTTPException):
            resolve_status(InvoiceStatus.PARTIAL, None, 0, 5000, received_supplied=True)

    def test_void_only_returns_to_unpaid(self):
        with pytest.raises(HTTPException):
            resolve_status(InvoiceStatus.VOID, InvoiceStatus.PAID, 5000, 5000, received_supplied=True)
        assert resolve_status(InvoiceStatus.VOID, InvoiceStatus.UNPAID, 0, 5000).status == InvoiceStatus.UNPAID

    def test_void_is_not_inferred_away(self):
        decision = resolve_status(InvoiceStatus.VOID, None, 0, 5000, amounts_changed=True)
        assert decision.status == InvoiceStatus.VOID

    @pytest.mark.parametrize("current", [InvoiceStatus.PAID, InvoiceStatus.PARTIAL, InvoiceStatus.VOID])
    def test_check_void_rejects(self, current):
        with pytest.raises(HTTPException):
            check_void(current)


# ===== NUMBERING =====

class TestNumbering:
    """Invoice number formats and allocation"""

    def test_format(self):
        assert format_invoice_number("KVPL", 2026, 7) == "KVPL2026007"
        assert format_invoice_number("KVPL", 2026, 1234) == "KVPL20261234"

    def test_max_suffix_ignores_foreign_numbers(self):
        numbers = ["KVPL2026003", "KVPL2026012", "KVPL2025099", "MANUAL-1", None]
        assert max_suffix(numbers, "KVPL2026") == 12

    def test_sequential_allocation(self, service):
        first = service.create_invoice(invoice_data())
        second = service.create_invoice(invoice_data(base_amount=Decimal("500")))
        assert first.invoice_number == "KVPL2026001"
        assert second.invoice_number == "KVPL2026002"

    def test_years_have_separate_sequences(self, service):
        service.create_invoice(invoice_data())
        older = service.create_invoice(invoice_data(invoice_date=date(2025, 12, 31)))
        assert older.invoice_number == "KVPL2025001"

    def test_counter_skips_past_manual_numbers(self, service):
        service.create_invoice(invoice_data())
        service.create_invoice(invoice_data(invoice_number="KVPL2026010"))
        nxt = service.create_invoice(invoice_data(base_amount=Decimal("700")))
        assert nxt.invoice_number == "KVPL2026011"

    def test_peek_does_not_reserve(self, service, db_session):
        assert service.get_next_invoice_number(date(2026, 1, 1))["invoice_number"] == "KVPL2026001"
        assert service.get_next_invoice_number(date(2026, 1, 1))["invoice_number"] == "KVPL2026001"
        assert db_session.query(InvoiceSequence).count() == 0

    def test_batch_reserver_advances_counter(self, service, db_session):
        service.create_invoice(invoice_data(invoice_number="KVPL2026005"))

        reserver = BatchNumberReserver(db_session)
        assert reserver.next(date(2026, 2, 1)) == "KVPL2026006"
        reserver.note_existing("KVPL2026020", date(2026, 2, 1))
        assert reserver.next(date(2026, 2, 1)) == "KVPL2026021"
        reserver.commit_counters()
        db_session.commit()

        assert InvoiceNumberAllocator(db_session).allocate(date(2026, 5, 1)) == "KVPL2026022"

    def test_duplicate_number_is_conflict(self, service):
        service.create_invoice(invoice_data(invoice_number="KVPL2026050"))
        with pytest.raises(HTTPException) as exc:
            service.create_invoice(invoice_data(invoice_number="KVPL2026050"))
        assert exc.value.status_code == 409


# ===== CREATE =====

class TestCreateInvoice:
    """Invoice creation through the service"""

    def test_same_state_invoice(self, service):
        invoice = service.create_invoice(invoice_data())

        assert invoice.gst_type == "CGST_SGST"
        assert invoice.cgst == Decimal("900.00")
        assert invoice.sgst == Decimal("900.00")
        assert invoice.igst == Decimal("0.00")
        assert invoice.invoice_total == Decimal("11800.00")
        assert invoice.receivable_amount == Decimal("11800.00")
        assert invoice.status == InvoiceStatus.UNPAID
        assert invoice.due_date == date(2026, 4, 9)
        assert len(invoice.items) == 1
        assert invoice.items[0].amount == Decimal("10000.00")

    def test_other_state_invoice(self, service):
        invoice = service.create_invoice(invoice_data(client_state="Maharashtra"))
        assert invoice.gst_type == "IGST"
        assert invoice.igst == Decimal("1800.00")

    def test_items_define_the_base(self, service):
        invoice = service.create_invoice(invoice_data(
            base_amount=None,
            items=[
                {"name": "Landing page", "quantity": "2", "rate": "2500"},
                {"name": "Hosting", "rate": "1000"},
            ]
        ))
        assert invoice.base_amount == Decimal("6000.00")
        assert [item.name for item in invoice.items] == ["Landing page", "Hosting"]

    def test_non_positive_base_rejected(self, service, db_session):
        with pytest.raises(HTTPException) as exc:
            service.create_invoice(invoice_data(base_amount=Decimal("0")))
        assert exc.value.status_code == 400
        assert db_session.query(Invoice).count() == 0

    def test_blank_client_rejected(self, service):
        with pytest.raises(HTTPException) as exc:
            service.create_invoice(invoice_data(client_name="   "))
        assert exc.value.detail == "Client name is required"

    def test_paid_without_receipt_rejected_and_nothing_saved(self, service, db_session):
        with pytest.raises(HTTPException) as exc:
            service.create_invoice(invoice_data(status=InvoiceStatus.PAID))
        assert exc.value.status_code == 400
        assert db_session.query(Invoice).count() == 0
        assert db_session.query(InvoiceSequence).count() == 0

    def test_paid_invoice_creates_revenue(self, service, db_session):
        invoice = service.create_invoice(invoice_data(
            status=InvoiceStatus.PAID, received_amount=Decimal("11800")
        ))

        assert invoice.status == InvoiceStatus.PAID
        assert invoice.revenue is not None
        assert invoice.revenue.service == "SEO"
        assert invoice.revenue.received_amount == Decimal("11800.00")
        assert invoice.revenue.gst_amount == Decimal("1800.00")
        assert invoice.revenue.due_amount == Decimal("0.00")
        assert invoice.revenue.month == "Mar"
        assert invoice.revenue.invoice_id == invoice.id
        assert revenue_count(db_session) == 1

    def test_received_amount_infers_partial(self, service):
        invoice = service.create_invoice(invoice_data(received_amount=Decimal("1000")))
        assert invoice.status == InvoiceStatus.PARTIAL

    def test_export_invoice_has_no_tax_and_converts(self, service):
        invoice = service.create_invoice(invoice_data(
            client_country="USA",
            client_state=None,
            currency="USD",
            base_amount=Decimal("1000"),
            tds_percentage=Decimal("10"),
        ))
        assert invoice.total_gst == Decimal("0.00")
        assert invoice.tds_amount == Decimal("0.00")
        assert invoice.receivable_amount == Decimal("1000.00")
        assert invoice.exchange_rate == Decimal("80.000000")
        assert invoice.inr_equivalent == Decimal("80000.00")

    def test_paid_export_invoice_revenue_in_rupees(self, service):
        invoice = service.create_invoice(invoice_data(
            client_country="USA", currency="USD", base_amount=Decimal("1000"),
            received_amount=Decimal("1000"),
        ))
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.revenue.invoice_amount == Decimal("80000.00")
        assert invoice.revenue.received_amount == Decimal("80000.00")

    def test_explicit_exchange_rate_wins(self, service):
        invoice = service.create_invoice(invoice_data(
            client_country="USA", currency="USD", base_amount=Decimal("100"),
            exchange_rate=Decimal("83.5"),
        ))
        assert invoice.inr_equivalent == Decimal("8350.00")

    def test_status_history_starts_with_creation(self, service):
        invoice = service.create_invoice(invoice_data())
        history = service.get_status_history(invoice.id)
        assert [(h.from_status, h.to_status) for h in history] == [(None, "Unpaid")]

    def test_send_email_queues_task(self, service, queued_emails):
        invoice = service.create_invoice(invoice_data(client_email="accounts@acme.test"), send_email=True)
        assert queued_emails == [(str(invoice.id), "accounts@acme.test")]


# ===== UPDATE =====

class TestUpdateInvoice:
    """Partial updates, demotion and transition gates"""

    def test_saving_paid_invoice_twice_keeps_one_revenue(self, service, db_session):
        invoice = service.create_invoice(invoice_data(received_amount=Decimal("11800")))
        revenue_id = invoice.revenue_id

        service.update_invoice(invoice.id, InvoiceUpdate(notes="Thanks"))
        updated = service.update_invoice(invoice.id, InvoiceUpdate(notes="Thanks again"))

        assert updated.status == InvoiceStatus.PAID
        assert updated.revenue_id == revenue_id
        assert revenue_count(db_session) == 1

    def test_amount_edit_demotes_paid_invoice(self, service, db_session):
        invoice = service.create_invoice(invoice_data(received_amount=Decimal("11800")))

        updated = service.update_invoice(invoice.id, InvoiceUpdate(base_amount=Decimal("12000")))

        assert updated.status == InvoiceStatus.UNPAID
        assert updated.received_amount == Decimal("0.00")
        assert updated.paid_amount == Decimal("0.00")
        assert updated.receivable_amount == Decimal("14160.00")
        assert updated.items[0].amount == Decimal("12000.00")
        history = service.get_status_history(invoice.id)
        assert history[-1].reason == "Amounts changed on a paid invoice"

    def test_repaying_after_demotion_reuses_revenue(self, service, db_session):
        invoice = service.create_invoice(invoice_data(received_amount=Decimal("11800")))
        revenue_id = invoice.revenue_id
        service.update_invoice(invoice.id, InvoiceUpdate(base_amount=Decimal("12000")))

        repaid = service.update_invoice(invoice.id, InvoiceUpdate(received_amount=Decimal("14160")))

        assert repaid.status == InvoiceStatus.PAID
        assert repaid.revenue_id == revenue_id
        assert repaid.revenue.invoice_amount == Decimal("12000.00")
        assert revenue_count(db_session) == 1

    def test_unchanged_amounts_do_not_demote(self, service):
        invoice = service.create_invoice(invoice_data(received_amount=Decimal("11800")))
        updated = service.update_invoice(invoice.id, InvoiceUpdate(
            base_amount=Decimal("10000.00"), client_state="gujarat"
        ))
        assert updated.status == InvoiceStatus.PAID

    def test_paid_gate_leaves_status_unchanged(self, service, db_session):
        invoice = service.create_invoice(invoice_data())

        with pytest.raises(HTTPException) as exc:
            service.update_invoice(invoice.id, InvoiceUpdate(
                status=InvoiceStatus.PAID, received_amount=Decimal("5000")
            ))
        assert exc.value.status_code == 400
        assert "shortfall 6800.00" in exc.value.detail

        db_session.expire_all()
        assert db_session.get(Invoice, invoice.id).status == InvoiceStatus.UNPAID

    def test_partial_cannot_return_to_unpaid(self, service):
        invoice = service.create_invoice(invoice_data(received_amount=Decimal("2000")))
        with pytest.raises(HTTPException):
            service.update_invoice(invoice.id, InvoiceUpdate(status=InvoiceStatus.UNPAID))

    def test_switching_to_export_recomputes_taxes(self, service):
        invoice = service.create_invoice(invoice_data())
        updated = service.update_invoice(invoice.id, InvoiceUpdate(client_country="USA"))
        assert updated.total_gst == Decimal("0.00")
        assert updated.receivable_amount == Decimal("10000.00")

    def test_unknown_invoice(self, service):
        from uuid import uuid4
        with pytest.raises(HTTPException) as exc:
            service.update_invoice(uuid4(), InvoiceUpdate(notes="x"))
        assert exc.value.status_code == 404


# ===== VOID / DELETE =====

class TestVoidAndDelete:

    def test_void_then_restore_is_logged(self, service):
        invoice = service.create_invoice(invoice_data())
        service.void_invoice(invoice.id, "Raised in error")
        restored = service.update_invoice(invoice.id, InvoiceUpdate(
            status=InvoiceStatus.UNPAID, status_reason="Client confirmed"
        ))

        assert restored.status == InvoiceStatus.UNPAID
        history = [(h.from_status, h.to_status, h.reason) for h in service.get_status_history(invoice.id)]
        assert history == [
            (None, "Unpaid", "Created"),
            ("Unpaid", "Void", "Raised in error"),
            ("Void", "Unpaid", "Client confirmed"),
        ]

    def test_void_to_paid_rejected(self, service):
        invoice = service.create_invoice(invoice_data())
        service.void_invoice(invoice.id)
        with pytest.raises(HTTPException):
            service.update_invoice(invoice.id, InvoiceUpdate(
                status=InvoiceStatus.PAID, received_amount=Decimal("11800")
            ))

    def test_cannot_void_paid_invoice(self, service):
        invoice = service.create_invoice(invoice_data(received_amount=Decimal("11800")))
        with pytest.raises(HTTPException) as exc:
            service.void_invoice(invoice.id)
        assert exc.value.detail == "Cannot void a paid invoice"

    def test_delete_releases_source_revenue(self, service, db_session):
        source = Revenue(
            client_name="Globex", country="India", service="Website Design",
            engagement_type="One Time", invoice_date=date(2026, 2, 1),
            month="Feb", year=2026, invoice_amount=Decimal("20000"),
            gst_percentage=Decimal("18"), tds_percentage=Decimal("0"),
            invoice_generated=False
        )
        db_session.add(source)
        db_session.commit()

        invoice = service.create_from_revenue(source.id)
        db_session.refresh(source)
        assert source.invoice_generated is True
        assert source.invoice_id == invoice.id
        assert invoice.base_amount == Decimal("20000.00")
        assert invoice.status == InvoiceStatus.UNPAID

        with pytest.raises(HTTPException) as exc:
            service.create_from_revenue(source.id)
        assert exc.value.status_code == 409

        service.delete_invoice(invoice.id)
        db_session.refresh(source)
        assert source.invoice_generated is False
        assert source.invoice_id is None
        assert db_session.query(Invoice).count() == 0

    def test_converted_invoice_keeps_source_and_generated_entries_apart(self, service, db_session):
        source = Revenue(
            client_name="Globex", country="India", service="SEO", engagement_type="One Time",
            invoice_date=date(2026, 2, 1), invoice_amount=Decimal("1000"), invoice_generated=False
        )
        db_session.add(source)
        db_session.commit()

        invoice = service.create_from_revenue(source.id, InvoiceFromRevenue(place_of_supply="Gujarat"))
        paid = service.record_payment(invoice.id, PaymentCreate(amount=Decimal("1000"), payment_date=date(2026, 2, 5)))
        invoice = service.get_invoice_by_id(paid.invoice_id)

        assert invoice.status == InvoiceStatus.PAID
        assert invoice.revenue_id != source.id
        assert invoice.source_revenue_id == source.id

    def test_bulk_delete_reports_missing(self, service):
        from uuid import uuid4
        first = service.create_invoice(invoice_data())
        second = service.create_invoice(invoice_data(base_amount=Decimal("200")))
        missing = uuid4()

        result = service.delete_invoices([first.id, second.id, missing])
        assert result.deleted == 2
        assert result.not_found == [missing]


# ===== PAYMENTS =====

class TestPayments:

    def test_partial_then_paid_creates_one_revenue(self, service, db_session):
        invoice = service.create_invoice(invoice_data(base_amount=Decimal("5000"), gst_percentage=Decimal("0")))

        first = service.record_payment(invoice.id, PaymentCreate(amount=Decimal("2000"), payment_date=date(2026, 4, 1)))
        assert service.get_invoice_by_id(invoice.id).status == InvoiceStatus.PARTIAL
        assert revenue_count(db_session) == 0

        second = service.record_payment(invoice.id, PaymentCreate(amount=Decimal("3000"), payment_date=date(2026, 4, 2)))
        paid = service.get_invoice_by_id(invoice.id)

        assert first.payment_number == "PAY20260001"
        assert second.payment_number == "PAY20260002"
        assert paid.status == InvoiceStatus.PAID
        assert paid.received_amount == Decimal("5000.00")
        assert revenue_count(db_session) == 1
        assert paid.revenue.received_amount == Decimal("5000.00")

    def test_overpayment_rejected(self, service):
        invoice = service.create_invoice(invoice_data(base_amount=Decimal("5000"), gst_percentage=Decimal("0")))
        service.record_payment(invoice.id, PaymentCreate(amount=Decimal("2000")))
        with pytest.raises(HTTPException) as exc:
            service.record_payment(invoice.id, PaymentCreate(amount=Decimal("3500")))
        assert exc.value.detail == "Payment amount 3500.00 exceeds the balance due 3000.00"

    def test_payment_on_void_rejected(self, service):
        invoice = service.create_invoice(invoice_data())
        service.void_invoice(invoice.id)
        with pytest.raises(HTTPException) as exc:
            service.record_payment(invoice.id, PaymentCreate(amount=Decimal("100")))
        assert exc.value.detail == "Cannot record payment for a voided invoice"

    def test_payment_on_paid_rejected(self, service):
        invoice = service.create_invoice(invoice_data(received_amount=Decimal("11800")))
        with pytest.raises(HTTPException) as exc:
            service.record_payment(invoice.id, PaymentCreate(amount=Decimal("1")))
        assert exc.value.detail == "Invoice is already fully paid"

    def test_foreign_payment_converted_to_rupees(self, service):
        invoice = service.create_invoice(invoice_data(
            client_country="USA", currency="USD", base_amount=Decimal("1000")
        ))
        payment = service.record_payment(invoice.id, PaymentCreate(amount=Decimal("250")))
        assert payment.amount_inr == Decimal("20000.00")


# ===== POST-SAVE REPAIR =====

class TestPostSaveRepair:
    """Re-read after save corrects status and revenue link that did not persist"""

    LOGGER = "billing.modules.invoices.service"

    def test_missing_revenue_entry_is_recreated(self, service, db_session, caplog):
        invoice = service.create_invoice(invoice_data(
            status=InvoiceStatus.PAID, received_amount=Decimal("11800")
        ))
        lost_id = invoice.revenue_id
        db_session.execute(delete(Revenue).where(Revenue.id == lost_id))
        db_session.commit()

        with caplog.at_level(logging.WARNING, logger=self.LOGGER):
            repaired = service._verify_persisted(invoice.id, InvoiceStatus.PAID)

        assert repaired.status == InvoiceStatus.PAID
        assert repaired.revenue_id is not None
        assert repaired.revenue_id != lost_id
        assert repaired.revenue.invoice_id == invoice.id
        assert repaired.revenue.received_amount == Decimal("11800.00")
        assert revenue_count(db_session) == 1
        assert any(
            r.levelno == logging.WARNING and "paid invoice has no revenue entry" in r.getMessage()
            for r in caplog.records
        )

    def test_lost_status_is_restored(self, service, db_session, caplog):
        invoice = service.create_invoice(invoice_data(
            status=InvoiceStatus.PAID, received_amount=Decimal("11800")
        ))
        revenue_id = invoice.revenue_id
        db_session.execute(
            update(Invoice).where(Invoice.id == invoice.id).values(status=InvoiceStatus.UNPAID)
        )
        db_session.commit()

        with caplog.at_level(logging.WARNING, logger=self.LOGGER):
            repaired = service._verify_persisted(invoice.id, InvoiceStatus.PAID)

        db_session.expire_all()
        stored = db_session.get(Invoice, invoice.id)
        assert stored.status == InvoiceStatus.PAID
        assert repaired.revenue_id == revenue_id
        assert revenue_count(db_session) == 1
        assert any(
            r.levelno == logging.WARNING and "status is Unpaid, expected Paid" in r.getMessage()
            for r in caplog.records
        )

    def test_consistent_invoice_logs_nothing(self, service, caplog):
        invoice = service.create_invoice(invoice_data())

        with caplog.at_level(logging.WARNING, logger=self.LOGGER):
            checked = service._verify_persisted(invoice.id, InvoiceStatus.UNPAID)

        assert checked.status == InvoiceStatus.UNPAID
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


# ===== API =====

class TestInvoiceAPI:

    def payload(self, **overrides):
        data = {
            "client_name": "Acme Traders",
            "client_state": "Gujarat",
            "invoice_date": "2026-03-10",
            "service_description": "Website Design",
            "base_amount": "10000",
            "gst_percentage": "18",
        }
        data.update(overrides)
        return data

    def test_create_and_get(self, client):
        response = client.post("/invoices/", json=self.payload())
        assert response.status_code == 201
        body = response.json()
        assert body["invoice_number"] == "KVPL2026001"
        assert body["status"] == "Unpaid"
        assert Decimal(body["invoice_total"]) == Decimal("11800")

        fetched = client.get(f"/invoices/{body['id']}")
        assert fetched.status_code == 200
        assert len(fetched.json()["items"]) == 1

    def test_create_paid_shortfall_is_400(self, client):
        response = client.post("/invoices/", json=self.payload(status="Paid", received_amount="100"))
        assert response.status_code == 400
        assert "shortfall" in response.json()["detail"]

    def test_list_counts_ignore_status_filter(self, client):
        client.post("/invoices/", json=self.payload())
        client.post("/invoices/", json=self.payload(received_amount="11800"))

        response = client.get("/invoices/", params={"status": "Paid"})
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["status_counts"]["Paid"] == 1
        assert body["status_counts"]["Unpaid"] == 1

    def test_next_number(self, client):
        response = client.get("/invoices/next-number", params={"invoice_date": "2026-06-01"})
        assert response.json()["invoice_number"] == "KVPL2026001"

    def test_patch_void_and_history(self, client):
        invoice_id = client.post("/invoices/", json=self.payload()).json()["id"]

        patched = client.patch(f"/invoices/{invoice_id}", json={"gst_percentage": "5"})
        assert patched.status_code == 200
        assert Decimal(patched.json()["invoice_total"]) == Decimal("10500")

        voided = client.post(f"/invoices/{invoice_id}/void", params={"reason": "Duplicate"})
        assert voided.json()["status"] == "Void"

        history = client.get(f"/invoices/{invoice_id}/status-history").json()
        assert [h["to_status"] for h in history] == ["Unpaid", "Void"]

    def test_payments_endpoints(self, client):
        invoice_id = client.post("/invoices/", json=self.payload(gst_percentage="0", base_amount="5000")).json()["id"]

        response = client.post(f"/invoices/{invoice_id}/payments", json={"amount": "2000", "payment_date": "2026-04-01"})
        assert response.status_code == 201
        assert response.json()["payment_number"] == "PAY20260001"

        payments = client.get(f"/invoices/{invoice_id}/payments").json()
        assert len(payments) == 1
        assert client.get(f"/invoices/{invoice_id}").json()["status"] == "Partial"

    def test_pdf(self, client):
        invoice_id = client.post("/invoices/", json=self.payload()).json()["id"]
        response = client.get(f"/invoices/{invoice_id}/pdf")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_send_email(self, client, queued_emails):
        invoice_id = client.post("/invoices/", json=self.payload()).json()["id"]

        missing = client.post(f"/invoices/{invoice_id}/send-email")
        assert missing.status_code == 400

        response = client.post(f"/invoices/{invoice_id}/send-email", json={"to_email": "ap@acme.test"})
        assert response.json()["queued"] is True
        assert queued_emails == [(invoice_id, "ap@acme.test")]

    def test_bulk_delete_and_delete(self, client):
        first = client.post("/invoices/", json=self.payload()).json()["id"]
        second = client.post("/invoices/", json=self.payload(base_amount="300")).json()["id"]

        assert client.delete(f"/invoices/{first}").status_code == 200
        response = client.post("/invoices/bulk-delete", json={"invoice_ids": [first, second]})
        assert response.json()["deleted"] == 1
        assert response.json()["not_found"] == [first]
        assert client.get(f"/invoices/{second}").status_code == 404

    def test_from_revenue_endpoint(self, client):
        entry = client.post("/revenue/", json={
            "client_name": "Initech", "service": "SEO", "invoice_date": "2026-01-15",
            "invoice_amount": "4000", "gst_percentage": "18"
        }).json()

        response = client.post(f"/invoices/from-revenue/{entry['id']}")
        assert response.status_code == 201
        assert response.json()["source_revenue_id"] == entry["id"]
        assert client.get(f"/revenue/{entry['id']}").json()["invoice_generated"] is True
