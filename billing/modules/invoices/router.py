"""
Router for the invoices module

- Create, update, void and delete invoices
- Record payments and read the status history
- Render and email the invoice document
"""

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from datetime import date

from billing.core.config import settings
from billing.database.database import get_db
from billing.modules.currency.service import CurrencyConverter, get_currency_converter
from billing.modules.invoices.models import InvoiceStatus
from billing.modules.invoices.schemas import (
    BulkDeleteRequest, BulkDeleteResult, InvoiceCreate, InvoiceDetail, InvoiceFromRevenue,
    InvoiceList, InvoiceUpdate, NextInvoiceNumber, PaymentCreate, PaymentOut,
    SendEmailRequest, StatusChangeOut
)
from billing.modules.invoices.service import InvoiceService

invoices_router = APIRouter(
    prefix="/invoices",
    tags=["Invoices"],
    responses={404: {"description": "Not found"}}
)


def get_invoice_service(
    db: Session = Depends(get_db),
    converter: CurrencyConverter = Depends(get_currency_converter)
) -> InvoiceService:
    return InvoiceService(db, converter)


@invoices_router.post("/", response_model=InvoiceDetail, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    invoice_data: InvoiceCreate,
    send_email: bool = Query(False, description="Queue the invoice email after saving"),
    service: InvoiceService = Depends(get_invoice_service)
):
    """
    Create an invoice

    - **client_name**: required
    - **items** or **base_amount**: base amount must end up greater than 0
    - **status** / **received_amount**: optional; the status is inferred from the received amount
    - **revenue_id**: convert an existing ledger entry
    """
    return service.create_invoice(invoice_data, send_email=send_email)


@invoices_router.post("/from-revenue/{revenue_id}", response_model=InvoiceDetail, status_code=status.HTTP_201_CREATED)
async def create_invoice_from_revenue(
    revenue_id: UUID,
    overrides: Optional[InvoiceFromRevenue] = Body(None),
    service: InvoiceService = Depends(get_invoice_service)
):
    return service.create_from_revenue(revenue_id, overrides)


@invoices_router.get("/", response_model=InvoiceList)
async def get_invoices(
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    client: Optional[str] = Query(None, description="Client name contains"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    search: Optional[str] = Query(None, description="Invoice number, client or service"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    service: InvoiceService = Depends(get_invoice_service)
):
    return service.get_invoices(status_filter, client, date_from, date_to, search, limit, offset)


@invoices_router.get("/next-number", response_model=NextInvoiceNumber)
async def get_next_invoice_number(
    invoice_date: Optional[date] = Query(None),
    service: InvoiceService = Depends(get_invoice_service)
):
    return service.get_next_invoice_number(invoice_date)


@invoices_router.post("/bulk-delete", response_model=BulkDeleteResult)
async def bulk_delete_invoices(
    request: BulkDeleteRequest,
    service: InvoiceService = Depends(get_invoice_service)
):
    return service.delete_invoices(request.invoice_ids)


@invoices_router.get("/{invoice_id}", response_model=InvoiceDetail)
async def get_invoice(invoice_id: UUID, service: InvoiceService = Depends(get_invoice_service)):
    return service.get_invoice_by_id(invoice_id)


@invoices_router.patch("/{invoice_id}", response_model=InvoiceDetail)
async def update_invoice(
    invoice_id: UUID,
    invoice_data: InvoiceUpdate,
    service: InvoiceService = Depends(get_invoice_service)
):
    """
    Partial update

    Editing an amount-affecting field on a Paid invoice demotes it to Unpaid
    and resets the received amount unless one is sent in the same request.
    """
    return service.update_invoice(invoice_id, invoice_data)


@invoices_router.post("/{invoice_id}/void", response_model=InvoiceDetail)
async def void_invoice(
    invoice_id: UUID,
    reason: Optional[str] = Query(None, max_length=500),
    service: InvoiceService = Depends(get_invoice_service)
):
    return service.void_invoice(invoice_id, reason)


@invoices_router.delete("/{invoice_id}")
async def delete_invoice(invoice_id: UUID, service: InvoiceService = Depends(get_invoice_service)):
    return service.delete_invoice(invoice_id)


@invoices_router.post("/{invoice_id}/payments", response_model=PaymentOut, status_code=status.HTTP_201_CREATED)
async def record_payment(
    invoice_id: UUID,
    payment_data: PaymentCreate,
    service: InvoiceService = Depends(get_invoice_service)
):
    return service.record_payment(invoice_id, payment_data)


@invoices_router.get("/{invoice_id}/payments", response_model=List[PaymentOut])
async def get_invoice_payments(invoice_id: UUID, service: InvoiceService = Depends(get_invoice_service)):
    return service.get_invoice_payments(invoice_id)


@invoices_router.get("/{invoice_id}/status-history", response_model=List[StatusChangeOut])
async def get_status_history(invoice_id: UUID, service: InvoiceService = Depends(get_invoice_service)):
    return service.get_status_history(invoice_id)


@invoices_router.get("/{invoice_id}/pdf")
async def get_invoice_pdf(invoice_id: UUID, service: InvoiceService = Depends(get_invoice_service)):
    filename, content = service.render_pdf(invoice_id)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'}
    )


@invoices_router.post("/{invoice_id}/send-email")
async def send_invoice_email(
    invoice_id: UUID,
    request: Optional[SendEmailRequest] = Body(None),
    service: InvoiceService = Depends(get_invoice_service)
):
    return service.send_invoice_email(invoice_id, request.to_email if request else None)
