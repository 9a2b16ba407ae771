"""
Transaction boundary for multi-record writes.

An invoice save touches the invoice row, its linked revenue record and the
"already invoiced" flag of the revenue entry it was converted from. All of them
are written inside one ``unit_of_work`` block so a failure in any step leaves
none of them changed.
"""
from contextlib import contextmanager
from typing import Iterator
import logging

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """Commit on success, roll back and re-raise on any error."""
    try:
        yield db
        db.commit()
    except Exception as e:
        logger.debug(f"Rolling back unit of work: {e}")
        db.rollback()
        raise
