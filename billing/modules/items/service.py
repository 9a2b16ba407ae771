from sqlalchemy.orm import Session
from decimal import Decimal
from typing import Iterable
import logging

from billing.modules.items.models import ServiceItem

logger = logging.getLogger(__name__)


class ServiceItemService:
    def __init__(self, db: Session):
        self.db = db

    def ensure_items(self, names: Iterable[str]) -> int:
        """Create a Service item for every name not already present; returns the count created."""
        existing = {
            (name or "").strip().lower()
            for (name,) in self.db.query(ServiceItem.name).all()
        }

        created = 0
        for name in names:
            key = (name or "").strip().lower()
            if not key or key in existing:
                continue
            self.db.add(ServiceItem(
                name=name.strip(),
                item_type="Service",
                selling_price=Decimal("0"),
                sales_account="Sales",
                sales_description=name.strip(),
                is_active=True
            ))
            existing.add(key)
            created += 1

        if created:
            self.db.flush()
            logger.info(f"Auto-created {created} service item(s)")
        return created
