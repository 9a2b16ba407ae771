from sqlalchemy.orm import Session, selectinload
from sqlalchemy import or_, desc, func
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException, status
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
from datetime import date, timedelta
import logging

from billing.common.exceptions import ConflictError, DependencyFailure, ValidationError
from billing.core.config import settings
from billing.database.unit_of_work import unit_of_work
from billing.modules.contacts.service import CustomerService
from billing.modules.currency.service import CurrencyConverter, get_currency_converter
from billing.modules.documents.renderer import render_invoice_pdf, snapshot_from_invoice
from billing.modules.documents.tasks import send_invoice_email_task
from billing.modules.invoices.lifecycle import StatusDecision, check_void, resolve_status
from billing.modules.invoices.models import (
    Invoice, InvoiceItem, InvoiceStatus, InvoiceStatusChange, Payment
)
from billing.modules.invoices.numbering import InvoiceNumberAllocator, next_payment_number
from billing.modules.invoices.schemas import (
    BulkDeleteResult, InvoiceCreate, InvoiceFromRevenue, InvoiceItemCreate, InvoiceUpdate, PaymentCreate
)
from billing.modules.revenue.models import Revenue
from billing.modules.revenue.sync import RevenueSynchronizer, conversion_factor
from billing.modules.taxes.calculator import TaxCalculator, round_money, to_decimal
from billing.modules.taxes.schemas import TaxComputation

logger = logging.getLogger(__name__)

# Changing any of these on a paid invoice demotes it
AMOUNT_FIELDS = (
    "base_amount", "gst_percentage", "tds_percentage", "tcs_percentage", "remittance_charges",
    "place_of_supply", "client_state", "client_country", "currency",
)
TEXT_FIELDS = ("place_of_supply", "client_state", "client_country", "currency")


def _same(field: str, old, new) -> bool:
    if field in TEXT_FIELDS:
        return (old or "").strip().casefold() == (new or "").strip().casefold()
    if old is None or new is None:
        return old is None and new is None
    return round_money(old) == round_money(new)


def build_items(
    items: Optional[List[InvoiceItemCreate]],
    fallback_name: Optional[str],
    base_amount: Optional[Decimal]
) -> Tuple[List[Dict[str, Any]], Decimal]:
    """
    Line items with computed amounts, plus their total.

    With no items a single item is synthesised from the service description
    and the base amount.
    """
    if not items:
        base = round_money(base_amount)
        return [{
            "position": 0,
            "name": (fallback_name or "Professional services").strip()[:255],
            "description": fallback_name,
            "quantity": Decimal('1'),
            "rate": base,
            "amount": base,
        }], base

    rows = []
    for position, item in enumerate(items):
        rows.append({
            "position": position,
            "name": item.name,
            "description": item.description,
            "hsn_sac": item.hsn_sac,
            "quantity": item.quantity,
            "rate": round_money(item.rate),
            "amount": round_money(item.quantity * item.rate),
        })
    return rows, round_money(sum(row["amount"] for row in rows))


class InvoiceService:
    def __init__(self, db: Session, converter: Optional[CurrencyConverter] = None):
        self.db = db
        self.converter = converter
        self.calculator = TaxCalculator()
        self.revenue_sync = RevenueSynchronizer(db)

    # ===== HELPERS =====

    def _get_converter(self) -> CurrencyConverter:
        if self.converter is None:
            self.converter = get_currency_converter()
        return self.converter

    def _compute(self, base_amount, values: Dict[str, Any]) -> TaxComputation:
        return self.calculator.compute(
            base_amount=base_amount,
            gst_percentage=values.get("gst_percentage") or 0,
            tds_percentage=values.get("tds_percentage") or 0,
            tcs_percentage=values.get("tcs_percentage") or 0,
            remittance_charges=values.get("remittance_charges") or 0,
            client_country=values.get("client_country"),
            currency=values.get("currency"),
            place_of_supply=values.get("place_of_supply"),
            client_state=values.get("client_state")
        )

    def _currency_figures(
        self,
        currency: str,
        receivable: Decimal,
        requested_rate: Optional[Decimal] = None,
        stored_rate: Optional[Decimal] = None
    ) -> Tuple[Decimal, Decimal]:
        """(exchange_rate, inr_equivalent) for a receivable in ``currency``."""
        if currency.upper() == settings.HOME_CURRENCY:
            return Decimal('1'), round_money(receivable)

        if requested_rate:
            rate = to_decimal(requested_rate)
        elif stored_rate and to_decimal(stored_rate) != Decimal('1'):
            rate = to_decimal(stored_rate)
        else:
            rate = self._get_converter().rate(currency, settings.HOME_CURRENCY)
        return rate, round_money(to_decimal(receivable) * rate)

    @staticmethod
    def _assign_amounts(invoice: Invoice, computation: TaxComputation):
        invoice.base_amount = computation.base_amount
        invoice.gst_percentage = computation.gst_percentage
        invoice.gst_type = computation.gst.gst_type.value
        invoice.cgst = computation.gst.cgst
        invoice.sgst = computation.gst.sgst
        invoice.igst = computation.gst.igst
        invoice.tds_percentage = computation.tds_percentage
        invoice.tds_amount = computation.tds_amount
        invoice.tcs_percentage = computation.tcs_percentage
        invoice.tcs_amount = computation.tcs_amount
        invoice.remittance_charges = computation.remittance_charges
        invoice.sub_total = computation.amounts.sub_total
        invoice.invoice_total = computation.amounts.invoice_total
        invoice.receivable_amount = computation.amounts.receivable_amount

    @staticmethod
    def _apply_decision(invoice: Invoice, decision: StatusDecision, prior: Optional[InvoiceStatus], reason: Optional[str]):
        invoice.status = decision.status
        invoice.received_amount = decision.received_amount
        invoice.paid_amount = decision.paid_amount

        if prior != decision.status:
            if reason is None and decision.demoted:
                reason = "Amounts changed on a paid invoice"
            invoice.status_changes.append(InvoiceStatusChange(
                from_status=prior.value if prior else None,
                to_status=decision.status.value,
                reason=reason
            ))
            logger.info(
                f"Invoice {invoice.invoice_number} status "
                f"{prior.value if prior else 'new'} -> {decision.status.value}"
            )

    def _get_source_revenue(self, revenue_id: UUID) -> Revenue:
        revenue = self.db.get(Revenue, revenue_id)
        if not revenue:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Revenue entry not found"
            )
        if revenue.invoice_generated:
            raise ConflictError("This revenue entry has already been invoiced")
        return revenue

    def _verify_persisted(self, invoice_id: UUID, expected_status: InvoiceStatus) -> Invoice:
        """
        Re-read the invoice from the database and repair status or revenue
        link if they did not persist as decided.
        """
        self.db.expire_all()
        invoice = self.get_invoice_by_id(invoice_id)

        problems = []
        if invoice.status != expected_status:
            problems.append(f"status is {invoice.status.value}, expected {expected_status.value}")
        if expected_status == InvoiceStatus.PAID and (
            invoice.revenue_id is None or self.db.get(Revenue, invoice.revenue_id) is None
        ):
            problems.append("paid invoice has no revenue entry")

        if not problems:
            return invoice

        logger.warning(f"Invoice {invoice.invoice_number} inconsistent after save: {'; '.join(problems)}; correcting")
        with unit_of_work(self.db):
            prior = invoice.status
            invoice.status = expected_status
            self.db.flush()
            self.revenue_sync.sync(invoice, prior)
        self.db.refresh(invoice)
        return invoice

    def _enqueue_email(self, invoice: Invoice, to_email: Optional[str] = None) -> bool:
        recipient = to_email or invoice.client_email
        if not recipient:
            logger.info(f"Invoice {invoice.invoice_number} has no client email; not sending")
            return False
        try:
            send_invoice_email_task.delay(str(invoice.id), recipient)
            logger.info(f"Queued email for invoice {invoice.invoice_number} to {recipient}")
            return True
        except Exception as e:
            logger.error(f"Could not queue email for invoice {invoice.invoice_number}: {e}")
            return False

    # ===== CREATE =====

    def create_invoice(self, invoice_data: InvoiceCreate, send_email: bool = False) -> Invoice:
        """
        Create an invoice, computing taxes, currency figures and status.

        Raises:
            ValidationError: Missing client, non-positive base amount, illegal status
            ConflictError: Invoice number taken, source revenue already invoiced
        """
        try:
            if not invoice_data.client_name:
                raise ValidationError("Client name is required")

            values = invoice_data.model_dump(exclude={"items"})

            customer = CustomerService(self.db).find_by_name(invoice_data.client_name)
            if customer:
                for field, source in (
                    ("client_email", customer.email),
                    ("client_state", customer.state),
                    ("place_of_supply", customer.place_of_supply),
                    ("gst_no", customer.gst_no),
                    ("client_address", customer.billing_address),
                ):
                    if not values.get(field) and source:
                        values[field] = source

            items, base = build_items(invoice_data.items, invoice_data.service_description, invoice_data.base_amount)
            if base <= 0:
                raise ValidationError("Base amount is required and must be greater than 0")

            if invoice_data.revenue_id:
                self._get_source_revenue(invoice_data.revenue_id)

            if invoice_data.invoice_number and self.db.query(Invoice.id).filter(
                Invoice.invoice_number == invoice_data.invoice_number
            ).first():
                raise ConflictError(f"Invoice number {invoice_data.invoice_number} already exists")

            computation = self._compute(base, values)
            receivable = computation.amounts.receivable_amount
            rate, inr_equivalent = self._currency_figures(
                invoice_data.currency, receivable, invoice_data.exchange_rate
            )
            decision = resolve_status(
                None,
                invoice_data.status,
                invoice_data.received_amount or 0,
                receivable,
                received_supplied=invoice_data.received_amount is not None
            )

            with unit_of_work(self.db):
                number = invoice_data.invoice_number or InvoiceNumberAllocator(self.db).allocate(invoice_data.invoice_date)

                invoice = Invoice(
                    invoice_number=number,
                    invoice_date=invoice_data.invoice_date,
                    due_date=invoice_data.due_date or invoice_data.invoice_date + timedelta(days=settings.DEFAULT_DUE_DAYS),
                    customer_id=customer.id if customer else None,
                    client_name=invoice_data.client_name,
                    client_email=values.get("client_email"),
                    client_address=values.get("client_address"),
                    client_country=invoice_data.client_country or settings.HOME_COUNTRY,
                    client_state=values.get("client_state"),
                    place_of_supply=values.get("place_of_supply"),
                    gst_no=values.get("gst_no"),
                    service_description=invoice_data.service_description,
                    engagement_type=invoice_data.engagement_type,
                    period_month=invoice_data.period_month,
                    period_year=invoice_data.period_year,
                    currency=invoice_data.currency,
                    exchange_rate=rate,
                    inr_equivalent=inr_equivalent,
                    notes=invoice_data.notes,
                    invoice_url=invoice_data.invoice_url,
                    source_revenue_id=invoice_data.revenue_id,
                    items=[InvoiceItem(**item) for item in items]
                )
                self._assign_amounts(invoice, computation)
                self._apply_decision(invoice, decision, None, "Created")

                self.db.add(invoice)
                self.db.flush()

                self.revenue_sync.mark_source(invoice)
                self.revenue_sync.sync(invoice, None)

            logger.info(f"Created invoice {invoice.invoice_number} ({invoice.status.value}) for {invoice.client_name}")
            invoice = self._verify_persisted(invoice.id, decision.status)

            if send_email:
                self._enqueue_email(invoice)
            return invoice

        except IntegrityError as e:
            logger.warning(f"Integrity error creating invoice: {e}")
            raise ConflictError("Invoice number already exists")
        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating invoice: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creating invoice: {str(e)}"
            )

    def create_from_revenue(self, revenue_id: UUID, overrides: Optional[InvoiceFromRevenue] = None) -> Invoice:
        """Convert an uninvoiced ledger entry into an invoice."""
        revenue = self._get_source_revenue(revenue_id)
        if to_decimal(revenue.invoice_amount) <= 0:
            raise ValidationError("Revenue amount must be greater than 0")

        overrides = overrides or InvoiceFromRevenue()
        invoice_data = InvoiceCreate(
            client_name=revenue.client_name,
            client_country=revenue.country,
            client_email=overrides.client_email,
            place_of_supply=overrides.place_of_supply,
            invoice_date=revenue.invoice_date,
            service_description=revenue.service,
            engagement_type=revenue.engagement_type,
            period_month=revenue.month,
            period_year=revenue.year,
            base_amount=revenue.invoice_amount,
            gst_percentage=revenue.gst_percentage,
            tds_percentage=revenue.tds_percentage,
            remittance_charges=revenue.remittance_charges,
            currency=overrides.currency,
            exchange_rate=overrides.exchange_rate,
            notes=overrides.notes,
            revenue_id=revenue.id
        )
        return self.create_invoice(invoice_data)

    # ===== UPDATE =====

    def update_invoice(self, invoice_id: UUID, invoice_data: InvoiceUpdate) -> Invoice:
        """
        Apply a partial update.

        Amounts are recomputed before the status is decided; editing an amount
        on a paid invoice demotes it to Unpaid.
        """
        try:
            invoice = self.get_invoice_by_id(invoice_id)
            updates = invoice_data.model_dump(exclude_unset=True)

            requested = updates.pop("status", None)
            reason = updates.pop("status_reason", None)
            received_in = updates.pop("received_amount", None)
            items_in = updates.pop("items", None)
            requested_rate = updates.pop("exchange_rate", None)

            amounts_changed = any(
                field in updates and not _same(field, getattr(invoice, field), updates[field])
                for field in AMOUNT_FIELDS
            )

            values = {field: updates.get(field, getattr(invoice, field)) for field in AMOUNT_FIELDS}
            new_items = None
            if items_in:
                new_items, base = build_items(invoice_data.items, None, None)
                current = [(i.name, round_money(i.quantity), round_money(i.rate)) for i in invoice.items]
                proposed = [(i["name"], round_money(i["quantity"]), i["rate"]) for i in new_items]
                amounts_changed = amounts_changed or current != proposed
            elif "base_amount" in updates and not _same("base_amount", invoice.base_amount, updates["base_amount"]):
                name = invoice.items[0].name if invoice.items else updates.get("service_description", invoice.service_description)
                new_items, base = build_items(None, name, updates["base_amount"])
            else:
                base = to_decimal(invoice.base_amount)

            if base <= 0:
                raise ValidationError("Base amount is required and must be greater than 0")
            if "client_name" in updates and not (updates["client_name"] or "").strip():
                raise ValidationError("Client name is required")

            currency = (values["currency"] or settings.HOME_CURRENCY).upper()
            computation = self._compute(base, values)
            receivable = computation.amounts.receivable_amount
            currency_unchanged = _same("currency", invoice.currency, currency)
            rate, inr_equivalent = self._currency_figures(
                currency,
                receivable,
                requested_rate,
                invoice.exchange_rate if currency_unchanged else None
            )

            prior = invoice.status
            received_supplied = received_in is not None
            decision = resolve_status(
                prior,
                requested,
                received_in if received_supplied else invoice.received_amount,
                receivable,
                amounts_changed=amounts_changed,
                received_supplied=received_supplied
            )

            with unit_of_work(self.db):
                for field, value in updates.items():
                    setattr(invoice, field, value)
                invoice.currency = currency
                invoice.exchange_rate = rate
                invoice.inr_equivalent = inr_equivalent
                self._assign_amounts(invoice, computation)
                if new_items is not None:
                    invoice.items = [InvoiceItem(**item) for item in new_items]
                self._apply_decision(invoice, decision, prior, reason)

                self.db.flush()
                self.revenue_sync.sync(invoice, prior)

            logger.info(f"Updated invoice {invoice.invoice_number} (amounts changed: {amounts_changed})")
            return self._verify_persisted(invoice.id, decision.status)

        except IntegrityError as e:
            logger.warning(f"Integrity error updating invoice {invoice_id}: {e}")
            raise ConflictError("Invoice number already exists")
        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating invoice {invoice_id}: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating invoice: {str(e)}"
            )

    # ===== VOID / DELETE =====

    def void_invoice(self, invoice_id: UUID, reason: Optional[str] = None) -> Invoice:
        try:
            invoice = self.get_invoice_by_id(invoice_id)
            check_void(invoice.status)

            prior = invoice.status
            with unit_of_work(self.db):
                self._apply_decision(
                    invoice,
                    StatusDecision(InvoiceStatus.VOID, to_decimal(invoice.received_amount), to_decimal(invoice.paid_amount)),
                    prior,
                    reason
                )

            return self._verify_persisted(invoice.id, InvoiceStatus.VOID)

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error voiding invoice {invoice_id}: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error voiding invoice: {str(e)}"
            )

    def _delete(self, invoice: Invoice):
        released = self.revenue_sync.unlink_for_deletion(invoice)
        payments = len(invoice.payments)
        self.db.delete(invoice)
        logger.info(
            f"Deleted invoice {invoice.invoice_number} "
            f"({payments} payment(s), {released} revenue entr{'y' if released == 1 else 'ies'} released)"
        )

    def delete_invoice(self, invoice_id: UUID) -> dict:
        try:
            invoice = self.get_invoice_by_id(invoice_id)
            number = invoice.invoice_number
            with unit_of_work(self.db):
                self._delete(invoice)
            return {"message": f"Invoice {number} deleted", "invoice_id": invoice_id}

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting invoice {invoice_id}: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting invoice: {str(e)}"
            )

    def delete_invoices(self, invoice_ids: List[UUID]) -> BulkDeleteResult:
        """Delete several invoices in one transaction; unknown ids are reported, not fatal."""
        try:
            invoices = self.db.query(Invoice).filter(Invoice.id.in_(invoice_ids)).all()
            found = {invoice.id for invoice in invoices}

            with unit_of_work(self.db):
                for invoice in invoices:
                    self._delete(invoice)

            return BulkDeleteResult(
                deleted=len(invoices),
                not_found=[invoice_id for invoice_id in invoice_ids if invoice_id not in found]
            )

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting invoices: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting invoices: {str(e)}"
            )

    # ===== QUERIES =====

    def get_invoices(
        self,
        status_filter: Optional[InvoiceStatus] = None,
        client: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> dict:
        try:
            query = self.db.query(Invoice)

            if client:
                query = query.filter(Invoice.client_name.ilike(f"%{client}%"))
            if date_from:
                query = query.filter(Invoice.invoice_date >= date_from)
            if date_to:
                query = query.filter(Invoice.invoice_date <= date_to)
            if search:
                query = query.filter(or_(
                    Invoice.invoice_number.ilike(f"%{search}%"),
                    Invoice.client_name.ilike(f"%{search}%"),
                    Invoice.service_description.ilike(f"%{search}%")
                ))

            # Counts ignore the status filter so every tab shows its size
            counts = {s.value: 0 for s in InvoiceStatus}
            for row_status, count in query.with_entities(Invoice.status, func.count(Invoice.id)).group_by(Invoice.status).all():
                counts[row_status.value] = count

            if status_filter:
                query = query.filter(Invoice.status == status_filter)

            total = query.count()
            invoices = query.order_by(desc(Invoice.invoice_date), desc(Invoice.invoice_number)).offset(offset).limit(limit).all()

            return {
                "invoices": invoices,
                "total": total,
                "limit": limit,
                "offset": offset,
                "status_counts": counts
            }

        except Exception as e:
            logger.error(f"Error listing invoices: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error listing invoices: {str(e)}"
            )

    def get_invoice_by_id(self, invoice_id: UUID) -> Invoice:
        invoice = self.db.query(Invoice).options(
            selectinload(Invoice.items),
            selectinload(Invoice.payments),
            selectinload(Invoice.revenue),
            selectinload(Invoice.source_revenue)
        ).filter(Invoice.id == invoice_id).first()

        if not invoice:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invoice not found"
            )
        return invoice

    def get_next_invoice_number(self, invoice_date: Optional[date] = None) -> dict:
        invoice_date = invoice_date or date.today()
        return {
            "invoice_number": InvoiceNumberAllocator(self.db).peek(invoice_date),
            "invoice_date": invoice_date
        }

    def get_status_history(self, invoice_id: UUID) -> List[InvoiceStatusChange]:
        return list(self.get_invoice_by_id(invoice_id).status_changes)

    # ===== PAYMENTS =====

    def record_payment(self, invoice_id: UUID, payment_data: PaymentCreate) -> Payment:
        """Record money received in the invoice currency and re-infer the status."""
        try:
            invoice = self.get_invoice_by_id(invoice_id)

            if invoice.status == InvoiceStatus.VOID:
                raise ValidationError("Cannot record payment for a voided invoice")

            balance = round_money(invoice.balance_due)
            if balance <= 0:
                raise ValidationError("Invoice is already fully paid")
            if payment_data.amount > balance:
                raise ValidationError(
                    f"Payment amount {round_money(payment_data.amount)} exceeds the balance due {balance}"
                )

            prior = invoice.status
            received = round_money(to_decimal(invoice.received_amount) + payment_data.amount)
            decision = resolve_status(
                prior, None, received, invoice.receivable_amount, received_supplied=True
            )
            factor = conversion_factor(invoice)

            with unit_of_work(self.db):
                payment = Payment(
                    payment_number=next_payment_number(self.db, payment_data.payment_date),
                    invoice_id=invoice.id,
                    payment_date=payment_data.payment_date,
                    amount=round_money(payment_data.amount),
                    amount_inr=round_money(payment_data.amount * factor),
                    payment_mode=payment_data.payment_mode,
                    reference_number=payment_data.reference_number,
                    bank_charges=round_money(payment_data.bank_charges),
                    notes=payment_data.notes
                )
                self.db.add(payment)
                self._apply_decision(invoice, decision, prior, f"Payment {payment.payment_number}")

                self.db.flush()
                self.revenue_sync.sync(invoice, prior)

            logger.info(f"Recorded payment {payment.payment_number} of {payment.amount} on invoice {invoice.invoice_number}")
            self._verify_persisted(invoice.id, decision.status)
            self.db.refresh(payment)
            return payment

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error recording payment on invoice {invoice_id}: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error recording payment: {str(e)}"
            )

    def get_invoice_payments(self, invoice_id: UUID) -> List[Payment]:
        return list(self.get_invoice_by_id(invoice_id).payments)

    # ===== DOCUMENTS =====

    def render_pdf(self, invoice_id: UUID) -> Tuple[str, bytes]:
        invoice = self.get_invoice_by_id(invoice_id)
        try:
            content = render_invoice_pdf(snapshot_from_invoice(invoice))
        except DependencyFailure as e:
            logger.error(f"PDF rendering failed for invoice {invoice.invoice_number}: {e.message}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Invoice document could not be rendered"
            )
        return f"{invoice.invoice_number}.pdf", content

    def send_invoice_email(self, invoice_id: UUID, to_email: Optional[str] = None) -> dict:
        invoice = self.get_invoice_by_id(invoice_id)
        if not (to_email or invoice.client_email):
            raise ValidationError("Client email is required to send the invoice")

        queued = self._enqueue_email(invoice, to_email)
        return {
            "invoice_id": invoice.id,
            "queued": queued,
            "message": "Invoice email queued" if queued else "Invoice email could not be queued"
        }
