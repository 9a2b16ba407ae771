"""
Invoice PDF rendering with reportlab.

The renderer works on a plain snapshot dict so it can run in a Celery worker
after the request session is gone.
"""
from io import BytesIO
from decimal import Decimal
from typing import Any, Dict
import logging

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from billing.common.exceptions import DependencyFailure
from billing.core.config import settings

logger = logging.getLogger(__name__)

NAVY = HexColor('#1B2A4A')
SLATE = HexColor('#64748B')
SLATE_PALE = HexColor('#F1F5F9')

W, H = A4
MARGIN = 45
CONTENT_W = W - 2 * MARGIN


def snapshot_from_invoice(invoice) -> Dict[str, Any]:
    """Everything the document needs, detached from the ORM."""
    return {
        "invoice_number": invoice.invoice_number,
        "invoice_date": invoice.invoice_date.isoformat(),
        "due_date": invoice.due_date.isoformat() if invoice.due_date else None,
        "client_name": invoice.client_name,
        "client_email": invoice.client_email,
        "client_address": invoice.client_address,
        "client_country": invoice.client_country,
        "place_of_supply": invoice.place_of_supply or invoice.client_state,
        "gst_no": invoice.gst_no,
        "currency": invoice.currency,
        "status": invoice.status.value,
        "items": [
            {
                "name": item.name,
                "hsn_sac": item.hsn_sac,
                "quantity": str(item.quantity),
                "rate": str(item.rate),
                "amount": str(item.amount),
            }
            for item in invoice.items
        ],
        "sub_total": str(invoice.sub_total),
        "gst_type": invoice.gst_type,
        "gst_percentage": str(invoice.gst_percentage),
        "cgst": str(invoice.cgst),
        "sgst": str(invoice.sgst),
        "igst": str(invoice.igst),
        "tds_amount": str(invoice.tds_amount),
        "tcs_amount": str(invoice.tcs_amount),
        "remittance_charges": str(invoice.remittance_charges),
        "invoice_total": str(invoice.invoice_total),
        "receivable_amount": str(invoice.receivable_amount),
        "notes": invoice.notes,
    }


def _money(currency: str, value) -> str:
    return f"{currency} {Decimal(str(value or 0)):,.2f}"


class InvoiceDocument:
    def __init__(self, snapshot: Dict[str, Any]):
        self.snapshot = snapshot
        self.buffer = BytesIO()
        self.c = canvas.Canvas(self.buffer, pagesize=A4)
        self.c.setTitle(f"Invoice {snapshot['invoice_number']}")
        self.c.setAuthor(settings.COMPANY_NAME)
        self.y = H - MARGIN

    def _ensure_space(self, needed: float):
        if self.y - needed < MARGIN:
            self.c.showPage()
            self.y = H - MARGIN

    def _header(self):
        s = self.snapshot
        self.c.setFillColor(NAVY)
        self.c.setFont("Helvetica-Bold", 20)
        self.c.drawString(MARGIN, self.y, settings.COMPANY_NAME)
        self.c.drawRightString(W - MARGIN, self.y, "TAX INVOICE")
        self.y -= 16

        self.c.setFillColor(SLATE)
        self.c.setFont("Helvetica", 9)
        if settings.COMPANY_ADDRESS:
            self.c.drawString(MARGIN, self.y, settings.COMPANY_ADDRESS)
        if settings.COMPANY_GSTIN:
            self.c.drawRightString(W - MARGIN, self.y, f"GSTIN: {settings.COMPANY_GSTIN}")
        self.y -= 28

        self.c.setFillColor(NAVY)
        self.c.setFont("Helvetica-Bold", 10)
        self.c.drawString(MARGIN, self.y, "Bill To")
        self.c.drawRightString(W - MARGIN, self.y, f"Invoice # {s['invoice_number']}")
        self.y -= 14

        self.c.setFont("Helvetica", 10)
        left = [s["client_name"], s.get("client_address"), s.get("client_country")]
        if s.get("gst_no"):
            left.append(f"GSTIN: {s['gst_no']}")
        right = [f"Date: {s['invoice_date']}"]
        if s.get("due_date"):
            right.append(f"Due: {s['due_date']}")
        if s.get("place_of_supply"):
            right.append(f"Place of supply: {s['place_of_supply']}")

        for i in range(max(len(left), len(right))):
            if i < len(left) and left[i]:
                self.c.drawString(MARGIN, self.y, str(left[i]))
            if i < len(right):
                self.c.drawRightString(W - MARGIN, self.y, right[i])
            self.y -= 13
        self.y -= 12

    def _items(self):
        s = self.snapshot
        cols = [MARGIN + 6, MARGIN + CONTENT_W * 0.55, MARGIN + CONTENT_W * 0.68, MARGIN + CONTENT_W * 0.83, W - MARGIN - 6]

        self.c.setFillColor(SLATE_PALE)
        self.c.rect(MARGIN, self.y - 6, CONTENT_W, 20, stroke=0, fill=1)
        self.c.setFillColor(NAVY)
        self.c.setFont("Helvetica-Bold", 9)
        self.c.drawString(cols[0], self.y, "Item")
        self.c.drawString(cols[1], self.y, "HSN/SAC")
        self.c.drawRightString(cols[2] + 30, self.y, "Qty")
        self.c.drawRightString(cols[3] + 30, self.y, "Rate")
        self.c.drawRightString(cols[4], self.y, "Amount")
        self.y -= 22

        self.c.setFont("Helvetica", 9)
        for item in s["items"]:
            self._ensure_space(16)
            self.c.drawString(cols[0], self.y, item["name"][:60])
            self.c.drawString(cols[1], self.y, item.get("hsn_sac") or "")
            self.c.drawRightString(cols[2] + 30, self.y, item["quantity"])
            self.c.drawRightString(cols[3] + 30, self.y, f"{Decimal(item['rate']):,.2f}")
            self.c.drawRightString(cols[4], self.y, f"{Decimal(item['amount']):,.2f}")
            self.y -= 16
        self.y -= 8

    def _totals(self):
        s = self.snapshot
        cur = s["currency"]
        rows = [("Sub total", s["sub_total"])]
        if s["gst_type"] == "CGST_SGST":
            half = Decimal(s["gst_percentage"]) / 2
            rows += [(f"CGST ({half}%)", s["cgst"]), (f"SGST ({half}%)", s["sgst"])]
        elif Decimal(s["igst"]) > 0:
            rows.append((f"IGST ({s['gst_percentage']}%)", s["igst"]))
        rows.append(("Invoice total", s["invoice_total"]))
        if Decimal(s["tds_amount"]) > 0:
            rows.append(("Less TDS", s["tds_amount"]))
        if Decimal(s["remittance_charges"]) > 0:
            rows.append(("Less remittance charges", s["remittance_charges"]))
        if Decimal(s["tcs_amount"]) > 0:
            rows.append(("TCS collected", s["tcs_amount"]))
        rows.append(("Amount receivable", s["receivable_amount"]))

        self._ensure_space(16 * len(rows) + 40)
        for label, value in rows:
            bold = label in ("Invoice total", "Amount receivable")
            self.c.setFont("Helvetica-Bold" if bold else "Helvetica", 10)
            self.c.drawRightString(W - MARGIN - 120, self.y, label)
            self.c.drawRightString(W - MARGIN - 6, self.y, _money(cur, value))
            self.y -= 16

        if s.get("notes"):
            self.y -= 10
            self.c.setFillColor(SLATE)
            self.c.setFont("Helvetica-Oblique", 9)
            self.c.drawString(MARGIN, self.y, s["notes"][:120])

    def render(self) -> bytes:
        self._header()
        self._items()
        self._totals()
        self.c.showPage()
        self.c.save()
        return self.buffer.getvalue()


def render_invoice_pdf(snapshot: Dict[str, Any]) -> bytes:
    """
    Args:
        snapshot: Output of ``snapshot_from_invoice``

    Returns:
        PDF bytes

    Raises:
        DependencyFailure: reportlab could not produce the document
    """
    try:
        return InvoiceDocument(snapshot).render()
    except (KeyError, ValueError, ArithmeticError) as e:
        raise DependencyFailure(f"Could not render invoice PDF: {e}", service="renderer")
