"""
Bulk import of historical invoices from a spreadsheet.

The import runs in three passes:

1. Every row is parsed and validated; bad rows are reported, not fatal.
2. Missing customers and service items are created in one transaction.
3. Each parsed row is saved in its own transaction, skipping rows that match
   an existing invoice. Numbers are reserved in memory for the whole batch and
   the per-year counters are advanced once at the end.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from billing.core.config import settings
from billing.database.unit_of_work import unit_of_work
from billing.modules.contacts.models import Customer
from billing.modules.contacts.service import CustomerService
from billing.modules.imports.columns import resolve_columns
from billing.modules.imports.parsing import (
    RowError, cell_text, normalize_country, normalize_engagement, parse_date_cell,
    parse_int, parse_month_index, parse_number, parse_split_date
)
from billing.modules.imports.reader import SheetRow, read_spreadsheet
from billing.modules.imports.schemas import ImportResult, MastersCreated
from billing.modules.invoices.models import (
    EngagementType, Invoice, InvoiceItem, InvoiceStatus, InvoiceStatusChange
)
from billing.modules.invoices.numbering import BatchNumberReserver
from billing.modules.items.service import ServiceItemService
from billing.modules.revenue.sync import MONTH_NAMES, RevenueSynchronizer
from billing.modules.taxes.calculator import calculate_invoice_amounts, round_money
from billing.modules.taxes.schemas import GSTType, InvoiceAmounts

logger = logging.getLogger(__name__)

PAID_TOLERANCE = Decimal('0.01')


@dataclass
class ParsedRow:
    row_number: int
    invoice_number: str
    client: str
    country: str
    service: str
    engagement_type: EngagementType
    invoice_date: date
    period_month: str
    period_year: int
    base_amount: Decimal
    gst_amount: Decimal
    gst_percentage: Decimal
    tds_amount: Decimal
    tds_percentage: Decimal
    remittance_charges: Decimal
    amounts: InvoiceAmounts
    received_amount: Decimal
    status: InvoiceStatus
    invoice_url: str

    @property
    def due_date(self) -> date:
        return self.invoice_date + timedelta(days=settings.DEFAULT_DUE_DAYS)


def sheet_headers(rows: List[SheetRow]) -> List[str]:
    headers: List[str] = []
    for _, row in rows:
        headers.extend(h for h in row.keys() if h not in headers)
    return headers


def _percentage_of(amount: Decimal, base: Decimal) -> Decimal:
    if base <= 0:
        return Decimal('0.00')
    return round_money(amount / base * 100)


def imported_status(received: Decimal, receivable: Decimal) -> InvoiceStatus:
    """Status of an imported row; a shortfall of one paisa still counts as paid."""
    if receivable > 0 and received >= receivable - PAID_TOLERANCE:
        return InvoiceStatus.PAID
    if received > PAID_TOLERANCE:
        return InvoiceStatus.PARTIAL
    return InvoiceStatus.UNPAID


def parse_row(row_number: int, row: Dict[str, Any], columns: Dict[str, Optional[str]], today: date) -> ParsedRow:
    """
    Validate one sheet row and compute its amounts.

    Raises:
        RowError: Missing client or service, non-positive amount, bad date parts
    """
    def value(name):
        header = columns.get(name)
        return row.get(header) if header else None

    client = cell_text(value("client"))
    service = cell_text(value("service"))
    if not client:
        raise RowError("Client is required", row_number)
    if not service:
        raise RowError("Service is required", row_number)

    country = normalize_country(value("country"))
    engagement = normalize_engagement(value("engagement"))

    base = parse_number(value("revenue_amount")) or parse_number(value("invoice_amount"))
    if base <= 0:
        raise RowError("Revenue_Amount (or Invoice Amount) must be > 0", row_number)

    date_value, month_value, year_value = value("date"), value("month"), value("year")
    invoice_date = None
    if cell_text(month_value) and cell_text(year_value):
        try:
            invoice_date = parse_split_date(date_value, month_value, year_value)
        except RowError as e:
            raise RowError(e.message, row_number)
    elif date_value not in (None, ""):
        invoice_date = parse_date_cell(date_value)
    invoice_date = invoice_date or today

    month_index = parse_month_index(month_value) if cell_text(month_value) else invoice_date.month - 1
    period_year = parse_int(year_value) if cell_text(year_value) else invoice_date.year
    if not period_year or period_year < 1900 or period_year > 2100:
        raise RowError(f"Invalid Year value: {cell_text(year_value)}", row_number)

    gst = parse_number(value("gst"))
    tds = parse_number(value("tds"))
    remittance = parse_number(value("remittance"))
    received = max(Decimal('0'), parse_number(value("received")))

    # Export of services carries no GST or TDS
    if country.lower() != settings.HOME_COUNTRY.lower():
        gst = Decimal('0')
        tds = Decimal('0')

    amounts = calculate_invoice_amounts(base, gst, tds, 0, remittance)
    received = round_money(received)

    return ParsedRow(
        row_number=row_number,
        invoice_number=cell_text(value("invoice_number")),
        client=client,
        country=country,
        service=service,
        engagement_type=engagement,
        invoice_date=invoice_date,
        period_month=MONTH_NAMES[max(0, min(11, month_index))],
        period_year=period_year,
        base_amount=round_money(base),
        gst_amount=round_money(gst),
        gst_percentage=_percentage_of(gst, base),
        tds_amount=round_money(tds),
        tds_percentage=_percentage_of(tds, base),
        remittance_charges=round_money(remittance),
        amounts=amounts,
        received_amount=received,
        status=imported_status(received, amounts.receivable_amount),
        invoice_url=cell_text(value("invoice_url")),
    )


class BulkImporter:
    def __init__(self, db: Session):
        self.db = db
        self.revenue_sync = RevenueSynchronizer(db)
        self.customer_cache: Dict[str, Optional[Customer]] = {}

    # ===== PARSING =====

    def parse_rows(self, rows: List[SheetRow], today: Optional[date] = None) -> Tuple[List[ParsedRow], List[str]]:
        today = today or date.today()
        columns = resolve_columns(sheet_headers(rows))

        parsed, errors = [], []
        for row_number, row in rows:
            try:
                parsed.append(parse_row(row_number, row, columns, today))
            except RowError as e:
                errors.append(f"Row {row_number}: {e.message}")
            except (ArithmeticError, ValueError, TypeError) as e:
                errors.append(f"Row {row_number}: Failed to parse row ({e})")
        return parsed, errors

    # ===== MASTERS =====

    def create_masters(self, rows: List[SheetRow]) -> MastersCreated:
        """Auto-create customers and service items named anywhere in the sheet."""
        columns = resolve_columns(sheet_headers(rows))
        clients: Dict[str, str] = {}
        services: List[str] = []
        for _, row in rows:
            client = cell_text(row.get(columns["client"])) if columns["client"] else ""
            service = cell_text(row.get(columns["service"])) if columns["service"] else ""
            if client and client not in clients:
                country = row.get(columns["country"]) if columns["country"] else None
                clients[client] = normalize_country(country)
            if service and service not in services:
                services.append(service)

        try:
            with unit_of_work(self.db):
                customers = CustomerService(self.db).ensure_customers(clients)
                items = ServiceItemService(self.db).ensure_items(services)
        except Exception as e:
            # Invoices can still be imported without their masters
            logger.error(f"Creating masters during import failed: {e}", exc_info=True)
            return MastersCreated()
        return MastersCreated(customers=customers, items=items)

    # ===== SAVING =====

    def _customer(self, name: str) -> Optional[Customer]:
        key = name.strip().lower()
        if key not in self.customer_cache:
            self.customer_cache[key] = CustomerService(self.db).find_by_name(name)
        return self.customer_cache[key]

    def is_duplicate(self, row: ParsedRow) -> bool:
        return self.db.query(Invoice.id).filter(
            Invoice.invoice_date == row.invoice_date,
            Invoice.client_name == row.client,
            Invoice.service_description == row.service,
            Invoice.engagement_type == row.engagement_type,
            Invoice.period_month == row.period_month,
            Invoice.period_year == row.period_year,
            Invoice.base_amount == row.base_amount
        ).first() is not None

    def number_taken(self, invoice_number: str) -> bool:
        return self.db.query(Invoice.id).filter(Invoice.invoice_number == invoice_number).first() is not None

    def build_invoice(self, row: ParsedRow, invoice_number: str) -> Invoice:
        customer = self._customer(row.client)
        received = row.received_amount if row.status != InvoiceStatus.UNPAID else Decimal('0.00')

        return Invoice(
            invoice_number=invoice_number,
            invoice_date=row.invoice_date,
            due_date=row.due_date,
            customer_id=customer.id if customer else None,
            client_name=row.client,
            client_email=customer.email if customer else None,
            client_country=row.country,
            service_description=row.service,
            engagement_type=row.engagement_type,
            period_month=row.period_month,
            period_year=row.period_year,
            base_amount=row.base_amount,
            gst_percentage=row.gst_percentage,
            gst_type=GSTType.IGST.value,
            cgst=Decimal('0.00'),
            sgst=Decimal('0.00'),
            igst=row.gst_amount,
            tds_percentage=row.tds_percentage,
            tds_amount=row.tds_amount,
            tcs_percentage=Decimal('0.00'),
            tcs_amount=Decimal('0.00'),
            remittance_charges=row.remittance_charges,
            sub_total=row.amounts.sub_total,
            invoice_total=row.amounts.invoice_total,
            receivable_amount=row.amounts.receivable_amount,
            currency=settings.HOME_CURRENCY,
            exchange_rate=Decimal('1'),
            inr_equivalent=row.amounts.receivable_amount,
            status=row.status,
            received_amount=received,
            paid_amount=received,
            invoice_url=row.invoice_url or None,
            items=[InvoiceItem(
                position=0,
                name=row.service[:255],
                quantity=Decimal('1'),
                rate=row.base_amount,
                amount=row.base_amount
            )],
            status_changes=[InvoiceStatusChange(
                from_status=None,
                to_status=row.status.value,
                reason="Imported"
            )]
        )

    def save_row(self, row: ParsedRow, numbers: BatchNumberReserver) -> Optional[str]:
        """
        Save one parsed row; returns a skip message or None when imported.
        """
        if self.is_duplicate(row):
            return f"Row {row.row_number}: Skipped (duplicate invoice already exists)"

        if row.invoice_number:
            invoice_number = row.invoice_number
            numbers.note_existing(invoice_number, row.invoice_date)
        else:
            invoice_number = numbers.next(row.invoice_date)

        if self.number_taken(invoice_number):
            return f"Row {row.row_number}: Skipped (invoice number already exists: {invoice_number})"

        with unit_of_work(self.db):
            invoice = self.build_invoice(row, invoice_number)
            self.db.add(invoice)
            self.db.flush()
            self.revenue_sync.sync(invoice, None)
        return None

    # ===== ENTRY POINT =====

    def import_rows(self, rows: List[SheetRow], today: Optional[date] = None) -> ImportResult:
        parsed, errors = self.parse_rows(rows, today)
        if not parsed:
            logger.info(f"Import found no valid rows ({len(errors)} error(s))")
            return ImportResult(
                message="No valid rows found to import",
                errors=errors[:settings.IMPORT_MAX_ERRORS]
            )

        masters = self.create_masters(rows)
        numbers = BatchNumberReserver(self.db)

        imported = 0
        skips: List[str] = []
        for row in parsed:
            try:
                skip = self.save_row(row, numbers)
            except Exception as e:
                logger.error(f"Import row {row.row_number} failed: {e}", exc_info=True)
                errors.append(f"Row {row.row_number}: Failed to import row ({e})")
                continue
            if skip:
                skips.append(skip)
            else:
                imported += 1

        with unit_of_work(self.db):
            numbers.commit_counters()

        all_errors = (errors + skips)[:settings.IMPORT_MAX_ERRORS]
        if imported == 0 and all_errors:
            message = f"Import failed: No invoices were imported. {len(all_errors)} error(s) found."
        else:
            message = f"Imported {imported} invoice(s). Skipped {len(skips)} row(s)."
            created = []
            if masters.customers:
                created.append(f"{masters.customers} customer{'' if masters.customers == 1 else 's'}")
            if masters.items:
                created.append(f"{masters.items} item{'' if masters.items == 1 else 's'}")
            if created:
                message += f" Automatically created {', '.join(created)}."

        logger.info(f"Import finished: {imported} imported, {len(skips)} skipped, {len(errors)} error(s)")
        return ImportResult(
            message=message,
            imported=imported,
            skipped=len(skips),
            masters_created=masters,
            errors=all_errors
        )

    def import_file(self, content: bytes, filename: str) -> ImportResult:
        return self.import_rows(read_spreadsheet(content, filename))
