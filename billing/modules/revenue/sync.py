"""
Keeps the revenue ledger in step with paid invoices.

A revenue entry tied to an invoice exists only once the invoice has been Paid.
While the invoice stays Paid, later saves update the same entry in place; when
an invoice is demoted the entry is left as it was and is reused if the invoice
is paid again. All writes happen in the caller's unit of work.
"""
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional
import logging

from sqlalchemy.orm import Session

from billing.core.config import settings
from billing.modules.invoices.models import Invoice, InvoiceStatus
from billing.modules.revenue.classifier import classify_service
from billing.modules.revenue.models import Revenue
from billing.modules.taxes.calculator import round_money, to_decimal

logger = logging.getLogger(__name__)

MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


class SyncAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


def conversion_factor(invoice: Invoice, home_currency: Optional[str] = None) -> Decimal:
    """Multiplier taking invoice-currency amounts to the home currency."""
    home = (home_currency or settings.HOME_CURRENCY).upper()
    if (invoice.currency or home).upper() == home:
        return Decimal('1')

    inr_equivalent = to_decimal(invoice.inr_equivalent)
    receivable = to_decimal(invoice.receivable_amount)
    if inr_equivalent > 0 and receivable > 0:
        return inr_equivalent / receivable
    return to_decimal(invoice.exchange_rate) or Decimal('1')


def service_text(invoice: Invoice) -> Optional[str]:
    if invoice.service_description and invoice.service_description.strip():
        return invoice.service_description
    if invoice.items:
        return invoice.items[0].name
    return None


def build_revenue_fields(invoice: Invoice) -> Dict:
    """Column values of the revenue entry mirroring ``invoice``, in the home currency."""
    factor = conversion_factor(invoice)

    def home(value):
        return round_money(to_decimal(value) * factor)

    month = invoice.period_month or MONTH_NAMES[invoice.invoice_date.month - 1]
    year = invoice.period_year or invoice.invoice_date.year
    engagement = getattr(invoice.engagement_type, "value", invoice.engagement_type)

    return {
        "client_name": invoice.client_name,
        "country": invoice.client_country or settings.HOME_COUNTRY,
        "service": classify_service(service_text(invoice)).value,
        "engagement_type": engagement or "One Time",
        "invoice_number": invoice.invoice_number,
        "invoice_date": invoice.invoice_date,
        "month": month,
        "year": year,
        "invoice_amount": home(invoice.base_amount),
        "gst_percentage": to_decimal(invoice.gst_percentage),
        "gst_amount": home(invoice.total_gst),
        "tds_percentage": to_decimal(invoice.tds_percentage),
        "tds_amount": home(invoice.tds_amount),
        "remittance_charges": home(invoice.remittance_charges),
        "received_amount": home(invoice.receivable_amount),
        "due_amount": Decimal('0.00'),
    }


class RevenueSynchronizer:
    def __init__(self, db: Session):
        self.db = db

    def linked_revenue(self, invoice: Invoice) -> Optional[Revenue]:
        if invoice.revenue_id:
            revenue = self.db.get(Revenue, invoice.revenue_id)
            if revenue is not None:
                return revenue
        if invoice.id is None:
            return None
        query = self.db.query(Revenue).filter(Revenue.invoice_id == invoice.id)
        if invoice.source_revenue_id:
            # The entry the invoice was converted from is not its generated entry
            query = query.filter(Revenue.id != invoice.source_revenue_id)
        return query.first()

    def sync(self, invoice: Invoice, prior_status: Optional[InvoiceStatus] = None) -> SyncAction:
        """
        Create or refresh the revenue entry of a Paid invoice.

        Non-paid invoices are left alone, including a previously generated
        entry after a demotion.
        """
        if invoice.status != InvoiceStatus.PAID:
            return SyncAction.UNCHANGED

        fields = build_revenue_fields(invoice)
        revenue = self.linked_revenue(invoice)

        if revenue is None:
            revenue = Revenue(**fields, invoice_generated=True, invoice_id=invoice.id)
            self.db.add(revenue)
            self.db.flush()
            invoice.revenue_id = revenue.id
            logger.info(f"Created revenue entry for invoice {invoice.invoice_number}")
            return SyncAction.CREATED

        for key, value in fields.items():
            setattr(revenue, key, value)
        revenue.invoice_generated = True
        revenue.invoice_id = invoice.id
        invoice.revenue_id = revenue.id

        if prior_status == InvoiceStatus.PAID:
            logger.info(f"Updated revenue entry for invoice {invoice.invoice_number}")
        else:
            logger.info(f"Re-linked revenue entry for re-paid invoice {invoice.invoice_number}")
        return SyncAction.UPDATED

    def mark_source(self, invoice: Invoice):
        """Flag the ledger entry the invoice was converted from as consumed."""
        if not invoice.source_revenue_id:
            return
        source = self.db.get(Revenue, invoice.source_revenue_id)
        if source is not None:
            source.invoice_generated = True
            source.invoice_id = invoice.id

    def unlink_for_deletion(self, invoice: Invoice) -> int:
        """Release the source and generated entries before the invoice is deleted."""
        released = 0
        ids = {rid for rid in (invoice.source_revenue_id, invoice.revenue_id) if rid}
        entries = list(self.db.query(Revenue).filter(Revenue.id.in_(ids)).all()) if ids else []
        entries += [
            r for r in self.db.query(Revenue).filter(Revenue.invoice_id == invoice.id).all()
            if r.id not in ids
        ]
        for revenue in entries:
            revenue.invoice_generated = False
            revenue.invoice_id = None
            released += 1

        invoice.revenue_id = None
        invoice.source_revenue_id = None
        return released
