"""
Invoice and payment number allocation.

Invoice numbers look like ``KVPL2026007``: prefix, calendar year, then a
sequence padded to three digits that simply widens past 999. Interactive
creation draws from a per-year counter row incremented atomically in the
database; the bulk importer reserves numbers in memory for the whole batch and
advances the counter once afterwards.
"""
from datetime import date
from typing import Dict, Optional
import logging
import re

from sqlalchemy import update
from sqlalchemy.orm import Session

from billing.core.config import settings
from billing.modules.invoices.models import Invoice, InvoiceSequence, Payment

logger = logging.getLogger(__name__)


def format_invoice_number(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}{year}{sequence:03d}"


def format_payment_number(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}{year}{sequence:04d}"


def max_suffix(numbers, prefix: str) -> int:
    """Highest numeric suffix among ``numbers`` that start with ``prefix``."""
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    highest = 0
    for number in numbers:
        match = pattern.match(number or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


def max_invoice_sequence(db: Session, year: int, prefix: Optional[str] = None) -> int:
    year_prefix = f"{prefix or settings.INVOICE_PREFIX}{year}"
    rows = db.query(Invoice.invoice_number).filter(
        Invoice.invoice_number.like(f"{year_prefix}%")
    ).all()
    return max_suffix((number for (number,) in rows), year_prefix)


class InvoiceNumberAllocator:
    """Per-year counter backed by ``invoice_sequences``."""

    def __init__(self, db: Session, prefix: Optional[str] = None):
        self.db = db
        self.prefix = prefix or settings.INVOICE_PREFIX

    def _sequence(self, year: int) -> Optional[InvoiceSequence]:
        return self.db.query(InvoiceSequence).filter(InvoiceSequence.year == year).first()

    def peek(self, invoice_date: Optional[date] = None) -> str:
        """Number the next interactive invoice would get, without reserving it."""
        year = (invoice_date or date.today()).year
        sequence = self._sequence(year)
        current = max(sequence.current_number if sequence else 0, max_invoice_sequence(self.db, year, self.prefix))
        return format_invoice_number(self.prefix, year, current + 1)

    def allocate(self, invoice_date: Optional[date] = None) -> str:
        """
        Reserve the next number for the invoice's year.

        Must run inside the caller's unit of work so the reservation is rolled
        back with the invoice.
        """
        year = (invoice_date or date.today()).year
        result = self.db.execute(
            update(InvoiceSequence)
            .where(InvoiceSequence.year == year)
            .values(current_number=InvoiceSequence.current_number + 1)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            seed = max_invoice_sequence(self.db, year, self.prefix)
            self.db.add(InvoiceSequence(year=year, prefix=self.prefix, current_number=seed + 1))
            self.db.flush()
            logger.info(f"Started invoice sequence for {year} after {seed}")

        sequence = self._sequence(year)
        self.db.refresh(sequence)

        # Numbers typed in by hand may have overtaken the counter
        floor = max_invoice_sequence(self.db, year, self.prefix)
        if sequence.current_number <= floor:
            logger.warning(f"Invoice counter for {year} behind existing numbers ({floor}); skipping ahead")
            sequence.current_number = floor + 1
            self.db.flush()

        return format_invoice_number(self.prefix, year, sequence.current_number)

    def advance_to(self, year: int, number: int):
        """Move the year counter forward to at least ``number``."""
        sequence = self._sequence(year)
        if sequence is None:
            self.db.add(InvoiceSequence(year=year, prefix=self.prefix, current_number=number))
        elif sequence.current_number < number:
            sequence.current_number = number
        self.db.flush()


class BatchNumberReserver:
    """
    In-memory numbering for one import batch.

    Each year is seeded once from the larger of the highest existing suffix and
    the stored counter; ``commit_counters`` then advances the stored counters.
    """

    def __init__(self, db: Session, prefix: Optional[str] = None):
        self.db = db
        self.allocator = InvoiceNumberAllocator(db, prefix)
        self.prefix = self.allocator.prefix
        self.counters: Dict[int, int] = {}

    def _seed(self, year: int):
        if year not in self.counters:
            sequence = self.allocator._sequence(year)
            self.counters[year] = max(
                max_invoice_sequence(self.db, year, self.prefix),
                sequence.current_number if sequence else 0
            )

    def next(self, invoice_date: date) -> str:
        year = invoice_date.year
        self._seed(year)
        self.counters[year] += 1
        return format_invoice_number(self.prefix, year, self.counters[year])

    def note_existing(self, invoice_number: str, invoice_date: date):
        """Keep the counter ahead of explicit numbers taken from the sheet."""
        year = invoice_date.year
        suffix = max_suffix([invoice_number], f"{self.prefix}{year}")
        if not suffix:
            return
        self._seed(year)
        if suffix > self.counters[year]:
            self.counters[year] = suffix

    def commit_counters(self):
        for year, number in self.counters.items():
            self.allocator.advance_to(year, number)


def next_payment_number(db: Session, payment_date: Optional[date] = None) -> str:
    year = (payment_date or date.today()).year
    year_prefix = f"{settings.PAYMENT_PREFIX}{year}"
    rows = db.query(Payment.payment_number).filter(Payment.payment_number.like(f"{year_prefix}%")).all()
    return format_payment_number(settings.PAYMENT_PREFIX, year, max_suffix((n for (n,) in rows), year_prefix) + 1)
