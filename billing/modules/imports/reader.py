"""
Spreadsheet reader for invoice imports.

Returns the data rows of the first worksheet (or the CSV file) keyed by their
header text, together with the row number a user sees in the sheet.
"""
import csv
import io
from io import BytesIO
from typing import Any, Dict, List, Tuple
from zipfile import BadZipFile
import logging

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from billing.common.exceptions import ValidationError

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = (".xlsx", ".xlsm")
CSV_EXTENSIONS = (".csv",)

SheetRow = Tuple[int, Dict[str, Any]]


def _is_blank(values) -> bool:
    return all(value is None or str(value).strip() == "" for value in values)


def _rows_from_table(table: List[List[Any]]) -> List[SheetRow]:
    if not table:
        return []

    headers = [str(h).strip() if h is not None else "" for h in table[0]]
    if _is_blank(headers):
        raise ValidationError("The first row of the sheet must hold the column headings")

    rows = []
    for row_number, values in enumerate(table[1:], start=2):
        if _is_blank(values):
            continue
        row = {}
        for header, value in zip(headers, values):
            if header:
                row[header] = value
        rows.append((row_number, row))
    return rows


def read_excel(file_bytes: bytes) -> List[SheetRow]:
    try:
        workbook = openpyxl.load_workbook(BytesIO(file_bytes), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError) as e:
        logger.warning(f"Unreadable workbook: {e}")
        raise ValidationError("Failed to read Excel file. Please ensure the file is not corrupted.")

    try:
        sheet = workbook.worksheets[0]
        table = [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()
    return _rows_from_table(table)


def read_csv(file_bytes: bytes) -> List[SheetRow]:
    try:
        content = file_bytes.decode("utf-8-sig")
    except UnicodeDecodeError:
        content = file_bytes.decode("latin-1")

    delimiter = ","
    first_line = content.split("\n", 1)[0]
    if "\t" in first_line:
        delimiter = "\t"
    elif ";" in first_line and "," not in first_line:
        delimiter = ";"

    table = list(csv.reader(io.StringIO(content), delimiter=delimiter))
    return _rows_from_table(table)


def read_spreadsheet(content: bytes, filename: str) -> List[SheetRow]:
    """
    Read an uploaded ``.xlsx`` or ``.csv`` file.

    Raises:
        ValidationError: Unsupported extension, unreadable or empty file
    """
    name = (filename or "").lower()
    if name.endswith(EXCEL_EXTENSIONS):
        rows = read_excel(content)
    elif name.endswith(CSV_EXTENSIONS):
        rows = read_csv(content)
    else:
        raise ValidationError("Invalid file type. Please upload an Excel (.xlsx) or CSV file")

    if not rows:
        raise ValidationError("Excel file is empty or has no data")

    logger.info(f"Read {len(rows)} data row(s) from {filename}")
    return rows
