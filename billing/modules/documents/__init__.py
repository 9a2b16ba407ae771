"""
Invoice documents: PDF rendering and email delivery.
"""

from .renderer import render_invoice_pdf, snapshot_from_invoice
from .service import email_service
from .tasks import send_invoice_email_task

__all__ = [
    "render_invoice_pdf",
    "snapshot_from_invoice",
    "email_service",
    "send_invoice_email_task"
]
