"""
Cell parsers for invoice spreadsheets.

Cells arrive either as native values from openpyxl (numbers, datetimes) or as
text from CSV exports, so every parser accepts both.
"""
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
import re

from billing.core.config import settings
from billing.modules.invoices.models import EngagementType
from billing.modules.revenue.sync import MONTH_NAMES

FULL_MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

COUNTRY_ALIASES = {
    "india": "India",
    "in": "India",
    "usa": "USA",
    "us": "USA",
    "united states": "USA",
    "canada": "Canada",
    "ca": "Canada",
    "australia": "Australia",
    "au": "Australia",
}

NUMERIC_DATE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})$")
NAMED_MONTH_DATE = re.compile(r"^(\d{1,2})[/\-\s]([A-Za-z]{3,})[/\-\s](\d{4})$")


class RowError(Exception):
    """A single sheet row cannot be imported."""

    def __init__(self, message: str, row_number: int = None):
        self.message = message
        self.row_number = row_number
        super().__init__(self.message)


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_number(value: Any) -> Decimal:
    """Numeric cell as Decimal; thousands separators ignored, junk reads as 0."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    text = str(value).strip().replace(",", "")
    if not text:
        return Decimal("0")
    try:
        number = Decimal(text)
    except InvalidOperation:
        return Decimal("0")
    return number if number.is_finite() else Decimal("0")


def parse_month_index(value: Any) -> int:
    """
    Zero-based month for ``value``, or -1.

    Accepts 1-12, three-letter abbreviations and full month names.
    """
    text = cell_text(value)
    if not text:
        return -1
    if text.isdigit():
        return int(text) - 1

    lowered = text.lower()
    for index, name in enumerate(MONTH_NAMES):
        if lowered[:3] == name.lower():
            return index
    for index, name in enumerate(FULL_MONTH_NAMES):
        if name.lower().startswith(lowered):
            return index
    return -1


def parse_int(value: Any) -> Optional[int]:
    text = cell_text(value)
    try:
        return int(Decimal(text))
    except (InvalidOperation, ValueError):
        return None


def parse_date_cell(value: Any) -> Optional[date]:
    """Single date cell: native date, ISO, dd/mm/yyyy (or dd-mm-yy), dd-Mon-yyyy."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass

    match = NUMERIC_DATE.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        if year < 100:
            year += 2000
        try:
            return date(year, month, day)
        except ValueError:
            pass

    match = NAMED_MONTH_DATE.match(text)
    if match:
        month_index = parse_month_index(match.group(2))
        if 0 <= month_index <= 11:
            try:
                return date(int(match.group(3)), month_index + 1, int(match.group(1)))
            except ValueError:
                pass

    return None


def parse_split_date(day_value: Any, month_value: Any, year_value: Any) -> date:
    """
    Date from separate day, month and year cells.

    Raises:
        RowError: Year outside 1900-2100, unknown month, day outside 1-31,
            or a day the month does not have
    """
    if isinstance(day_value, date):
        day = day_value.day
    else:
        day = parse_int(day_value or 1) or 1
    year = parse_int(year_value)
    month_index = parse_month_index(month_value)

    if not year or year < 1900 or year > 2100:
        raise RowError(f"Invalid Year value: {cell_text(year_value)}")
    if month_index < 0 or month_index > 11:
        raise RowError(f"Invalid Month value: {cell_text(month_value)}")
    if day < 1 or day > 31:
        raise RowError(f"Invalid Date (day) value: {cell_text(day_value)}")

    try:
        return date(year, month_index + 1, day)
    except ValueError:
        raise RowError(
            f"Invalid date combination: Date={cell_text(day_value)}, "
            f"Month={cell_text(month_value)}, Year={cell_text(year_value)}"
        )


def normalize_country(value: Any) -> str:
    """Canonical country name; blank means the home country, unknown names pass through."""
    text = cell_text(value)
    if not text:
        return settings.HOME_COUNTRY
    return COUNTRY_ALIASES.get(text.lower(), text)


def normalize_engagement(value: Any) -> EngagementType:
    if "recurr" in cell_text(value).lower():
        return EngagementType.RECURRING
    return EngagementType.ONE_TIME
