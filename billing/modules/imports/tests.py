"""
Tests for the spreadsheet importer

Covers:
- Header aliases and matching
- Cell parsers (numbers, months, single and split dates, countries)
- Reading .xlsx and .csv uploads
- Full imports: statuses, export rows, masters, duplicates and numbering
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO

from fastapi import HTTPException
from openpyxl import Workbook

from billing.modules.contacts.models import Customer
from billing.modules.imports.columns import match_column, normalize_header, resolve_columns
from billing.modules.imports.parsing import (
    RowError, normalize_country, parse_date_cell, parse_month_index, parse_number, parse_split_date
)
from billing.modules.imports.reader import read_spreadsheet
from billing.modules.imports.service import BulkImporter, imported_status
from billing.modules.invoices.models import Invoice, InvoiceStatus
from billing.modules.invoices.numbering import InvoiceNumberAllocator
from billing.modules.items.models import ServiceItem
from billing.modules.revenue.models import Revenue

XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

HEADERS = [
    "Date", "Month", "Year", "Client", "Country", "Service", "Revenue_Amount", "Engagement",
    "Invoice Amount", "GST", "TDS", "Remittance Fee", "Recieved", "Invoice Url", "Invoice #",
]

ROWS = [
    [15, "Mar", 2026, "Acme Traders", "India", "Website Design", 10000, "One Time",
     11800, 1800, 200, 0, 11600, "https://files.example/acme.pdf", None],
    [5, "April", 2026, "Globex Inc", "US", "SEO", 2000, "Recurring",
     2000, 360, 100, 50, 0, None, None],
    [1, "May", 2026, None, "India", "Social Media Marketing", 500, "One Time",
     None, None, None, None, None, None, None],
    [31, "Feb", 2026, "Initech", "India", "SEO", 750, "One Time",
     None, None, None, None, None, None, None],
]


# ===== FIXTURES =====

def workbook_bytes(headers=HEADERS, rows=ROWS):
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(headers)
    for row in rows:
        sheet.append(row)
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


CSV_CONTENT = (
    "Date,Client,Country,Service,Invoice Amount,GST,TDS,Recieved,Invoice #\n"
    '12/05/2026,Acme Traders,India,SEO,"5,000",900,0,5900,KVPL2026040\n'
    "\n"
    "2026-06-01,Hooli,,Website Design,1000,0,0,0,\n"
).encode("utf-8")


@pytest.fixture
def importer(db_session):
    return BulkImporter(db_session)


# ===== COLUMNS =====

class TestColumns:

    @pytest.mark.parametrize("raw, expected", [
        ("Revenue_Amount", "revenue amount"),
        ("  Invoice   Amount ", "invoice amount"),
        (None, ""),
    ])
    def test_normalize_header(self, raw, expected):
        assert normalize_header(raw) == expected

    def test_exact_match_beats_containment(self):
        headers = ["Invoice Date", "Date"]
        assert match_column(headers, ["date", "day"]) == "Date"

    def test_containment_fallback(self):
        assert match_column(["Client Name (Legal)"], ["client name"]) == "Client Name (Legal)"

    def test_resolve_columns(self):
        columns = resolve_columns(HEADERS)
        assert columns["revenue_amount"] == "Revenue_Amount"
        assert columns["invoice_amount"] == "Invoice Amount"
        assert columns["received"] == "Recieved"
        assert columns["remittance"] == "Remittance Fee"
        assert columns["invoice_number"] == "Invoice #"
        assert columns["invoice_url"] == "Invoice Url"

    def test_missing_column_is_none(self):
        assert resolve_columns(["Client", "Service"])["gst"] is None

    def test_due_date_is_not_the_invoice_date(self):
        columns = resolve_columns(["Client", "Due Date", "Invoice Date", "Service"])
        assert columns["date"] == "Invoice Date"

    def test_due_date_alone_leaves_date_unmapped(self):
        assert resolve_columns(["Client", "Due_Date", "Month", "Year"])["date"] is None

    def test_excluded_heading_skipped_in_containment(self):
        headers = ["Payment Due Date", "Date of Issue"]
        assert match_column(headers, ["date"], ["due"]) == "Date of Issue"


# ===== PARSING =====

class TestParsing:

    @pytest.mark.parametrize("raw, expected", [
        ("1,25,000.50", Decimal("125000.50")),
        (1800, Decimal("1800")),
        ("", Decimal("0")),
        ("n/a", Decimal("0")),
        ("NaN", Decimal("0")),
        (None, Decimal("0")),
    ])
    def test_parse_number(self, raw, expected):
        assert parse_number(raw) == expected

    @pytest.mark.parametrize("raw, expected", [
        ("3", 2), (12.0, 11), ("mar", 2), ("March", 2), ("SEPT", 8), ("Sept.", 8), ("xyz", -1), ("", -1),
    ])
    def test_parse_month_index(self, raw, expected):
        assert parse_month_index(raw) == expected

    @pytest.mark.parametrize("raw, expected", [
        (datetime(2026, 4, 2, 10, 30), date(2026, 4, 2)),
        (date(2026, 4, 2), date(2026, 4, 2)),
        ("2026-04-02", date(2026, 4, 2)),
        ("02/04/2026", date(2026, 4, 2)),
        ("2-4-26", date(2026, 4, 2)),
        ("02-Apr-2026", date(2026, 4, 2)),
        ("31/02/2026", None),
        ("someday", None),
        ("", None),
    ])
    def test_parse_date_cell(self, raw, expected):
        assert parse_date_cell(raw) == expected

    def test_split_date(self):
        assert parse_split_date(7, "Aug", 2025) == date(2025, 8, 7)
        assert parse_split_date(None, "8", "2025") == date(2025, 8, 1)
        assert parse_split_date(datetime(2025, 1, 19), "Aug", 2025) == date(2025, 8, 19)

    @pytest.mark.parametrize("day, month, year, message", [
        (1, "Jan", 1850, "Invalid Year value: 1850"),
        (1, "Jan", "abc", "Invalid Year value: abc"),
        (1, "Foo", 2025, "Invalid Month value: Foo"),
        (1, "13", 2025, "Invalid Month value: 13"),
        (40, "Jan", 2025, "Invalid Date (day) value: 40"),
        (30, "Feb", 2025, "Invalid date combination: Date=30, Month=Feb, Year=2025"),
    ])
    def test_split_date_errors(self, day, month, year, message):
        with pytest.raises(RowError) as exc:
            parse_split_date(day, month, year)
        assert exc.value.message == message

    @pytest.mark.parametrize("raw, expected", [
        ("us", "USA"), ("United States", "USA"), ("IN", "India"), ("", "India"), (None, "India"), ("Germany", "Germany"),
    ])
    def test_normalize_country(self, raw, expected):
        assert normalize_country(raw) == expected

    @pytest.mark.parametrize("received, receivable, expected", [
        (Decimal("11599.99"), Decimal("11600"), InvoiceStatus.PAID),
        (Decimal("11599.98"), Decimal("11600"), InvoiceStatus.PARTIAL),
        (Decimal("0.01"), Decimal("11600"), InvoiceStatus.UNPAID),
        (Decimal("0"), Decimal("11600"), InvoiceStatus.UNPAID),
    ])
    def test_imported_status(self, received, receivable, expected):
        assert imported_status(received, receivable) == expected


# ===== READER =====

class TestReader:

    def test_excel_rows_keep_sheet_numbers(self):
        rows = read_spreadsheet(workbook_bytes(), "invoices.xlsx")
        assert [number for number, _ in rows] == [2, 3, 4, 5]
        assert rows[0][1]["Client"] == "Acme Traders"

    def test_csv_skips_blank_lines(self):
        rows = read_spreadsheet(CSV_CONTENT, "invoices.CSV")
        assert [number for number, _ in rows] == [2, 4]
        assert rows[0][1]["Invoice Amount"] == "5,000"

    def test_rejects_other_file_types(self):
        with pytest.raises(HTTPException) as exc:
            read_spreadsheet(b"%PDF-1.4", "invoices.pdf")
        assert exc.value.status_code == 400
        assert "Invalid file type" in exc.value.detail

    def test_rejects_corrupted_workbook(self):
        with pytest.raises(HTTPException) as exc:
            read_spreadsheet(b"not a zip file", "invoices.xlsx")
        assert exc.value.detail == "Failed to read Excel file. Please ensure the file is not corrupted."

    def test_rejects_header_only_sheet(self):
        with pytest.raises(HTTPException) as exc:
            read_spreadsheet(workbook_bytes(rows=[]), "invoices.xlsx")
        assert exc.value.detail == "Excel file is empty or has no data"


# ===== IMPORT =====

class TestBulkImport:

    def test_import_workbook(self, importer, db_session):
        result = importer.import_file(workbook_bytes(), "invoices.xlsx")

        assert result.imported == 2
        assert result.skipped == 0
        assert result.errors == [
            "Row 4: Client is required",
            "Row 5: Invalid date combination: Date=31, Month=Feb, Year=2026",
        ]
        assert result.masters_created.customers == 3
        assert result.masters_created.items == 3
        assert result.message == (
            "Imported 2 invoice(s). Skipped 0 row(s). Automatically created 3 customers, 3 items."
        )

        acme = db_session.query(Invoice).filter(Invoice.client_name == "Acme Traders").one()
        assert acme.invoice_number == "KVPL2026001"
        assert acme.invoice_date == date(2026, 3, 15)
        assert acme.due_date == date(2026, 4, 14)
        assert acme.gst_type == "IGST"
        assert acme.igst == Decimal("1800.00")
        assert acme.gst_percentage == Decimal("18.00")
        assert acme.tds_percentage == Decimal("2.00")
        assert acme.receivable_amount == Decimal("11600.00")
        assert acme.status == InvoiceStatus.PAID
        assert acme.invoice_url == "https://files.example/acme.pdf"
        assert acme.client_email == "acmetraders@imported.local"
        assert [c.reason for c in acme.status_changes] == ["Imported"]

        globex = db_session.query(Invoice).filter(Invoice.client_name == "Globex Inc").one()
        assert globex.invoice_number == "KVPL2026002"
        assert globex.client_country == "USA"
        assert globex.period_month == "Apr"
        assert globex.total_gst == Decimal("0.00")
        assert globex.tds_amount == Decimal("0.00")
        assert globex.receivable_amount == Decimal("1950.00")
        assert globex.status == InvoiceStatus.UNPAID

    def test_paid_rows_reach_the_ledger(self, importer, db_session):
        importer.import_file(workbook_bytes(), "invoices.xlsx")

        entry = db_session.query(Revenue).one()
        assert entry.client_name == "Acme Traders"
        assert entry.service == "Website Design"
        assert entry.month == "Mar"
        assert entry.received_amount == Decimal("11600.00")

    def test_masters_reuse_existing_records(self, importer, db_session):
        db_session.add(Customer(display_name="acme traders", email="ap@acme.test"))
        db_session.add(ServiceItem(name="SEO"))
        db_session.commit()

        result = importer.import_file(workbook_bytes(), "invoices.xlsx")

        assert result.masters_created.customers == 2
        assert result.masters_created.items == 2
        acme = db_session.query(Invoice).filter(Invoice.client_name == "Acme Traders").one()
        assert acme.client_email == "ap@acme.test"
        globex = db_session.query(Customer).filter(Customer.display_name == "Globex Inc").one()
        assert globex.country == "USA"
        assert globex.currency == "USD"

    def test_reimport_skips_everything(self, importer):
        importer.import_file(workbook_bytes(), "invoices.xlsx")
        result = importer.import_file(workbook_bytes(), "invoices.xlsx")

        assert result.imported == 0
        assert result.skipped == 2
        assert "Row 2: Skipped (duplicate invoice already exists)" in result.errors
        assert "Row 3: Skipped (duplicate invoice already exists)" in result.errors
        assert result.message == "Import failed: No invoices were imported. 4 error(s) found."

    def test_csv_numbers_continue_after_explicit_ones(self, importer, db_session):
        result = importer.import_file(CSV_CONTENT, "invoices.csv")
        assert result.imported == 2

        numbers = {
            invoice.client_name: invoice.invoice_number
            for invoice in db_session.query(Invoice).all()
        }
        assert numbers == {"Acme Traders": "KVPL2026040", "Hooli": "KVPL2026041"}

        acme = db_session.query(Invoice).filter(Invoice.client_name == "Acme Traders").one()
        assert acme.invoice_date == date(2026, 5, 12)
        assert acme.base_amount == Decimal("5000.00")
        assert acme.status == InvoiceStatus.PAID

        assert InvoiceNumberAllocator(db_session).allocate(date(2026, 7, 1)) == "KVPL2026042"

    def test_taken_number_is_skipped(self, importer):
        importer.import_file(CSV_CONTENT, "invoices.csv")
        changed = CSV_CONTENT.replace(b"12/05/2026", b"13/05/2026")
        result = importer.import_file(changed, "invoices.csv")

        assert result.imported == 0
        assert "Row 2: Skipped (invoice number already exists: KVPL2026040)" in result.errors

    def test_rows_without_dates_use_today(self, importer, db_session):
        rows = [(2, {"Client": "Acme Traders", "Service": "SEO", "Invoice Amount": 100})]
        result = importer.import_rows(rows, today=date(2026, 10, 19))

        assert result.imported == 1
        invoice = db_session.query(Invoice).one()
        assert invoice.invoice_date == date(2026, 10, 19)
        assert invoice.period_month == "Oct"

    def test_nothing_valid(self, importer):
        rows = [(2, {"Client": "", "Service": "SEO", "Invoice Amount": 100}),
                (3, {"Client": "Acme", "Service": "SEO", "Invoice Amount": 0})]
        result = importer.import_rows(rows)

        assert result.message == "No valid rows found to import"
        assert result.errors == [
            "Row 2: Client is required",
            "Row 3: Revenue_Amount (or Invoice Amount) must be > 0",
        ]


class TestImportAPI:

    def upload(self, client, content, filename="invoices.xlsx", content_type=XLSX_TYPE):
        return client.post("/invoices/import", files={"file": (filename, content, content_type)})

    def test_import_then_reimport(self, client):
        first = self.upload(client, workbook_bytes())
        assert first.status_code == 200
        assert first.json()["imported"] == 2

        second = self.upload(client, workbook_bytes())
        assert second.status_code == 400
        body = second.json()
        assert body["imported"] == 0
        assert body["skipped"] == 2

    def test_interactive_numbering_continues(self, client):
        self.upload(client, workbook_bytes())
        response = client.post("/invoices/", json={
            "client_name": "Acme Traders", "invoice_date": "2026-08-01", "base_amount": "100"
        })
        assert response.json()["invoice_number"] == "KVPL2026003"

    def test_bad_file_type(self, client):
        response = self.upload(client, b"hello", filename="notes.txt", content_type="text/plain")
        assert response.status_code == 400

    def test_file_is_required(self, client):
        assert client.post("/invoices/import").status_code == 422
