"""
Tests for invoice documents

Covers:
- PDF rendering from an invoice snapshot
- Email template and SMTP delivery (SMTP replaced by a fake)
- The Celery email task run eagerly against the test database
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from billing.common.exceptions import DependencyFailure
from billing.modules.documents import service as email_module
from billing.modules.documents.renderer import render_invoice_pdf, snapshot_from_invoice
from billing.modules.documents.service import EmailService
from billing.modules.documents.tasks import send_invoice_email_task
from billing.modules.invoices.models import Invoice
from billing.modules.invoices.schemas import InvoiceCreate
from billing.modules.invoices.service import InvoiceService


# ===== FIXTURES =====

@pytest.fixture
def invoice(db_session, converter):
    return InvoiceService(db_session, converter).create_invoice(InvoiceCreate(
        client_name="Acme Traders",
        client_email="accounts@acme.test",
        client_state="Maharashtra",
        invoice_date=date(2026, 5, 4),
        items=[
            {"name": "Website Design", "rate": "40000"},
            {"name": "Hosting (12 months)", "quantity": "12", "rate": "500"},
        ],
        gst_percentage=Decimal("18"),
        tds_percentage=Decimal("2"),
        notes="Bank: HDFC, A/C 0000000000",
    ))


class FakeSMTP:
    sent = []

    def __init__(self, host, port, *args, **kwargs):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def login(self, username, password):
        pass

    def sendmail(self, from_addr, to_addrs, message):
        FakeSMTP.sent.append((from_addr, to_addrs, message))


class BrokenSMTP(FakeSMTP):
    def __init__(self, host, port, *args, **kwargs):
        raise OSError("connection refused")


class RecordingEmailService:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send_invoice_email(self, to_email, snapshot, pdf):
        if self.fail:
            raise DependencyFailure("Error sending email: mailbox full", service="smtp")
        self.sent.append((to_email, snapshot["invoice_number"], pdf[:4]))


# ===== RENDERING =====

class TestRenderer:

    def test_snapshot_is_plain_data(self, invoice):
        snapshot = snapshot_from_invoice(invoice)
        assert snapshot["invoice_number"] == "KVPL2026001"
        assert snapshot["invoice_date"] == "2026-05-04"
        assert snapshot["gst_type"] == "IGST"
        assert snapshot["place_of_supply"] == "Maharashtra"
        assert [item["name"] for item in snapshot["items"]] == ["Website Design", "Hosting (12 months)"]
        assert Decimal(snapshot["invoice_total"]) == Decimal("54280.00")
        assert Decimal(snapshot["receivable_amount"]) == Decimal("53360.00")

    def test_render_pdf(self, invoice):
        content = render_invoice_pdf(snapshot_from_invoice(invoice))
        assert content.startswith(b"%PDF")

    def test_render_many_items(self, invoice):
        snapshot = snapshot_from_invoice(invoice)
        snapshot["items"] = snapshot["items"] * 40
        assert render_invoice_pdf(snapshot).startswith(b"%PDF")

    def test_incomplete_snapshot_fails_cleanly(self):
        with pytest.raises(DependencyFailure):
            render_invoice_pdf({"invoice_number": "KVPL2026001"})


# ===== EMAIL =====

class TestEmailService:

    @pytest.fixture
    def email_service(self, monkeypatch):
        FakeSMTP.sent = []
        monkeypatch.setattr(email_module.smtplib, "SMTP_SSL", FakeSMTP)
        service = EmailService()
        service.use_tls = False
        service.username = None
        return service

    def test_template(self, email_service, invoice):
        html = email_service.render_template("invoice_email.html", {
            "company_name": "KVPL",
            "invoice": snapshot_from_invoice(invoice),
        })
        assert "KVPL2026001" in html
        assert "Acme Traders" in html

    def test_send_invoice_email(self, email_service, invoice):
        snapshot = snapshot_from_invoice(invoice)
        email_service.send_invoice_email("accounts@acme.test", snapshot, render_invoice_pdf(snapshot))

        assert len(FakeSMTP.sent) == 1
        _, recipients, message = FakeSMTP.sent[0]
        assert recipients == ["accounts@acme.test"]
        assert "Subject: Invoice KVPL2026001" in message
        assert 'filename="KVPL2026001.pdf"' in message

    def test_smtp_failure(self, email_service, monkeypatch):
        monkeypatch.setattr(email_module.smtplib, "SMTP_SSL", BrokenSMTP)
        with pytest.raises(DependencyFailure) as exc:
            email_service.send_email(["a@b.test"], "Hi", "<p>Hi</p>")
        assert exc.value.service == "smtp"


# ===== TASK =====

class TestSendInvoiceEmailTask:

    @pytest.fixture(autouse=True)
    def task_session(self, monkeypatch, session_factory):
        monkeypatch.setattr("billing.modules.documents.tasks.SessionLocal", session_factory)

    def test_sends_and_marks_invoice(self, monkeypatch, invoice, db_session):
        recorder = RecordingEmailService()
        monkeypatch.setattr("billing.modules.documents.tasks.email_service", recorder)

        result = send_invoice_email_task.apply(args=(str(invoice.id), "accounts@acme.test")).get()

        assert result["status"] == "success"
        assert recorder.sent == [("accounts@acme.test", "KVPL2026001", b"%PDF")]
        db_session.expire_all()
        stored = db_session.get(Invoice, invoice.id)
        assert stored.email_sent is True
        assert stored.email_sent_at is not None

    def test_missing_invoice_is_skipped(self, monkeypatch):
        recorder = RecordingEmailService()
        monkeypatch.setattr("billing.modules.documents.tasks.email_service", recorder)

        result = send_invoice_email_task.apply(args=(str(uuid4()), "x@y.test")).get()

        assert result["status"] == "skipped"
        assert recorder.sent == []

    def test_gives_up_after_last_retry(self, monkeypatch, invoice, db_session):
        monkeypatch.setattr("billing.modules.documents.tasks.email_service", RecordingEmailService(fail=True))

        result = send_invoice_email_task.apply(
            args=(str(invoice.id), "accounts@acme.test"), retries=3
        ).get()

        assert result["status"] == "failed"
        assert "mailbox full" in result["error"]
        db_session.expire_all()
        assert db_session.get(Invoice, invoice.id).email_sent is False
