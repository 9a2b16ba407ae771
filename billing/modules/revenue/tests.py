"""
Tests for the revenue ledger

Covers:
- Service classification from free-form text
- Home-currency mirroring of invoice figures
- RevenueSynchronizer create / update / leave-alone behaviour
- Manual ledger entries and the list endpoints
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from billing.modules.invoices.models import EngagementType, Invoice, InvoiceStatus
from billing.modules.revenue.classifier import ServiceCategory, classify_service
from billing.modules.revenue.models import Revenue
from billing.modules.revenue.sync import (
    RevenueSynchronizer, SyncAction, build_revenue_fields, conversion_factor
)


# ===== FIXTURES =====

def make_invoice(**overrides):
    values = dict(
        id=uuid4(),
        invoice_number="KVPL2026001",
        invoice_date=date(2026, 7, 14),
        client_name="Acme Traders",
        client_country="India",
        service_description="Monthly SEO and content",
        engagement_type=EngagementType.RECURRING,
        period_month=None,
        period_year=None,
        base_amount=Decimal("10000.00"),
        gst_percentage=Decimal("18.00"),
        cgst=Decimal("900.00"),
        sgst=Decimal("900.00"),
        igst=Decimal("0.00"),
        tds_percentage=Decimal("2.00"),
        tds_amount=Decimal("200.00"),
        remittance_charges=Decimal("0.00"),
        receivable_amount=Decimal("11600.00"),
        currency="INR",
        exchange_rate=Decimal("1"),
        inr_equivalent=Decimal("11600.00"),
        status=InvoiceStatus.PAID,
        revenue_id=None,
        source_revenue_id=None,
    )
    values.update(overrides)
    return Invoice(**values)


# ===== CLASSIFIER =====

class TestClassifyService:
    """Free-form service text to ledger category"""

    @pytest.mark.parametrize("text, expected", [
        ("Website Design - phase 2", ServiceCategory.WEBSITE_DESIGN),
        ("website design", ServiceCategory.WEBSITE_DESIGN),
        ("B2B Sales Consulting retainer", ServiceCategory.B2B_SALES_CONSULTING),
        ("Outbound Lead Generation (Q3)", ServiceCategory.OUTBOUND_LEAD_GENERATION),
        ("Social Media Marketing", ServiceCategory.SOCIAL_MEDIA_MARKETING),
        ("Local SEO audit", ServiceCategory.SEO),
        ("Telecalling campaign", ServiceCategory.TELECALLING),
        ("Logo refresh", ServiceCategory.OTHER),
        ("", ServiceCategory.OTHER),
        (None, ServiceCategory.OTHER),
    ])
    def test_classify(self, text, expected):
        assert classify_service(text) == expected

    @pytest.mark.parametrize("text, expected", [
        ("Web", ServiceCategory.WEBSITE_DESIGN),
        ("Sales", ServiceCategory.B2B_SALES_CONSULTING),
        ("lead generation", ServiceCategory.OUTBOUND_LEAD_GENERATION),
        (" Marketing ", ServiceCategory.SOCIAL_MEDIA_MARKETING),
    ])
    def test_text_inside_category_name_matches(self, text, expected):
        assert classify_service(text) == expected


# ===== MIRRORING =====

class TestRevenueFields:

    def test_domestic_invoice(self):
        fields = build_revenue_fields(make_invoice())

        assert fields["service"] == "SEO"
        assert fields["engagement_type"] == "Recurring"
        assert fields["month"] == "Jul"
        assert fields["year"] == 2026
        assert fields["invoice_amount"] == Decimal("10000.00")
        assert fields["gst_amount"] == Decimal("1800.00")
        assert fields["tds_amount"] == Decimal("200.00")
        assert fields["received_amount"] == Decimal("11600.00")
        assert fields["due_amount"] == Decimal("0.00")

    def test_period_overrides_invoice_date(self):
        fields = build_revenue_fields(make_invoice(period_month="Jun", period_year=2025))
        assert (fields["month"], fields["year"]) == ("Jun", 2025)

    def test_foreign_invoice_converted(self):
        invoice = make_invoice(
            client_country="USA", currency="USD",
            base_amount=Decimal("1000.00"), cgst=Decimal("0"), sgst=Decimal("0"),
            tds_amount=Decimal("0"), receivable_amount=Decimal("1000.00"),
            exchange_rate=Decimal("83.25"), inr_equivalent=Decimal("83250.00"),
        )
        assert conversion_factor(invoice) == Decimal("83.25")

        fields = build_revenue_fields(invoice)
        assert fields["country"] == "USA"
        assert fields["invoice_amount"] == Decimal("83250.00")
        assert fields["received_amount"] == Decimal("83250.00")

    def test_factor_falls_back_to_rate(self):
        invoice = make_invoice(currency="EUR", receivable_amount=Decimal("0"), exchange_rate=Decimal("90"))
        assert conversion_factor(invoice) == Decimal("90")

    def test_blank_description_without_items_is_other(self):
        invoice = make_invoice(service_description="  ")
        assert build_revenue_fields(invoice)["service"] == "Other Services"


# ===== SYNCHRONIZER =====

class TestRevenueSynchronizer:

    def persist(self, db_session, invoice):
        db_session.add(invoice)
        db_session.flush()
        return invoice

    def test_unpaid_invoice_left_alone(self, db_session):
        invoice = self.persist(db_session, make_invoice(status=InvoiceStatus.PARTIAL))
        assert RevenueSynchronizer(db_session).sync(invoice) == SyncAction.UNCHANGED
        assert db_session.query(Revenue).count() == 0

    def test_paid_invoice_creates_then_updates(self, db_session):
        sync = RevenueSynchronizer(db_session)
        invoice = self.persist(db_session, make_invoice())

        assert sync.sync(invoice, None) == SyncAction.CREATED
        revenue_id = invoice.revenue_id
        assert revenue_id is not None

        invoice.client_name = "Acme Traders Pvt Ltd"
        assert sync.sync(invoice, InvoiceStatus.PAID) == SyncAction.UPDATED
        assert invoice.revenue_id == revenue_id

        entries = db_session.query(Revenue).all()
        assert len(entries) == 1
        assert entries[0].client_name == "Acme Traders Pvt Ltd"
        assert entries[0].invoice_generated is True
        assert entries[0].invoice_id == invoice.id

    def test_lost_link_found_by_invoice_id(self, db_session):
        sync = RevenueSynchronizer(db_session)
        invoice = self.persist(db_session, make_invoice())
        sync.sync(invoice, None)

        invoice.revenue_id = None
        assert sync.sync(invoice, InvoiceStatus.UNPAID) == SyncAction.UPDATED
        assert db_session.query(Revenue).count() == 1

    def test_unlink_for_deletion(self, db_session):
        sync = RevenueSynchronizer(db_session)
        invoice = self.persist(db_session, make_invoice())
        sync.sync(invoice, None)

        assert sync.unlink_for_deletion(invoice) == 1
        entry = db_session.query(Revenue).one()
        assert entry.invoice_generated is False
        assert entry.invoice_id is None
        assert invoice.revenue_id is None


# ===== API =====

class TestRevenueAPI:

    def entry(self, **overrides):
        data = {
            "client_name": "Initech",
            "service": "Website Design",
            "invoice_date": "2026-02-11",
            "invoice_amount": "25000",
            "gst_percentage": "18",
        }
        data.update(overrides)
        return data

    def test_create_fills_period(self, client):
        response = client.post("/revenue/", json=self.entry())
        assert response.status_code == 201
        body = response.json()
        assert body["month"] == "Feb"
        assert body["year"] == 2026
        assert body["invoice_generated"] is False

    def test_create_rejects_unknown_service(self, client):
        response = client.post("/revenue/", json=self.entry(service="Catering"))
        assert response.status_code == 422

    def test_create_requires_amount(self, client):
        data = self.entry()
        del data["invoice_amount"]
        assert client.post("/revenue/", json=data).status_code == 422

    def test_list_and_available(self, client):
        first = client.post("/revenue/", json=self.entry()).json()
        client.post("/revenue/", json=self.entry(client_name="Hooli", service="SEO"))
        client.post(f"/invoices/from-revenue/{first['id']}")

        listed = client.get("/revenue/").json()
        assert listed["total"] == 2

        searched = client.get("/revenue/", params={"search": "hooli"}).json()
        assert [r["client_name"] for r in searched["revenues"]] == ["Hooli"]

        available = client.get("/revenue/available").json()
        assert [r["client_name"] for r in available["revenues"]] == ["Hooli"]

    def test_paid_invoice_appears_in_ledger(self, client):
        client.post("/invoices/", json={
            "client_name": "Umbrella", "invoice_date": "2026-09-01",
            "service_description": "Outbound lead generation sprint",
            "base_amount": "5000", "received_amount": "5000",
        })
        entries = client.get("/revenue/", params={"invoice_generated": True}).json()["revenues"]
        assert len(entries) == 1
        assert entries[0]["service"] == "Outbound Lead Generation"
        assert entries[0]["month"] == "Sep"

    def test_get_unknown(self, client):
        assert client.get(f"/revenue/{uuid4()}").status_code == 404
