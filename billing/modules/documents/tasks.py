"""
Celery tasks for invoice documents.
"""
from datetime import datetime, timezone
from uuid import UUID
import logging

from billing.core.celery import celery_app
from billing.database.database import SessionLocal
from billing.modules.documents.renderer import render_invoice_pdf, snapshot_from_invoice
from billing.modules.documents.service import email_service
from billing.modules.invoices.models import Invoice

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def send_invoice_email_task(self, invoice_id: str, to_email: str):
    """
    Render the invoice PDF, mail it, and stamp ``email_sent``.
    """
    db = SessionLocal()
    try:
        invoice = db.get(Invoice, UUID(invoice_id))
        if invoice is None:
            logger.warning(f"Invoice {invoice_id} no longer exists; email not sent")
            return {"status": "skipped", "invoice_id": invoice_id}

        snapshot = snapshot_from_invoice(invoice)
        pdf = render_invoice_pdf(snapshot)
        email_service.send_invoice_email(to_email, snapshot, pdf)

        invoice.email_sent = True
        invoice.email_sent_at = datetime.now(timezone.utc)
        db.commit()

        logger.info(f"Invoice {invoice.invoice_number} emailed to {to_email}")
        return {"status": "success", "invoice_id": invoice_id, "recipient": to_email}

    except Exception as exc:
        db.rollback()
        logger.error(f"Invoice email failed for {invoice_id}: {str(exc)}")

        # Retry with exponential backoff
        if self.request.retries < self.max_retries:
            raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))

        # Final failure
        return {"status": "failed", "error": str(exc), "invoice_id": invoice_id}
    finally:
        db.close()
