from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Dict, Optional, Set
import logging
import re

from billing.core.config import settings
from billing.modules.contacts.models import Customer

logger = logging.getLogger(__name__)

PLACEHOLDER_DOMAIN = "imported.local"


def placeholder_email(name: str, taken: Set[str]) -> str:
    """``<alnum name>@imported.local``, suffixed with a counter when already used."""
    local = re.sub(r"[^a-z0-9]", "", name.lower())[:40] or "customer"
    candidate = f"{local}@{PLACEHOLDER_DOMAIN}"
    counter = 1
    while candidate in taken:
        candidate = f"{local}{counter}@{PLACEHOLDER_DOMAIN}"
        counter += 1
    return candidate


class CustomerService:
    def __init__(self, db: Session):
        self.db = db

    def find_by_name(self, name: Optional[str]) -> Optional[Customer]:
        """Case-insensitive lookup by display name."""
        if not name or not name.strip():
            return None
        return self.db.query(Customer).filter(
            func.lower(Customer.display_name) == name.strip().lower()
        ).first()

    def ensure_customers(self, clients: Dict[str, str]) -> int:
        """
        Create a customer for every client name that has none yet.

        Args:
            clients: client name -> country as found in the source rows

        Returns:
            Number of customers created (flushed, not committed)
        """
        existing = {
            (name or "").strip().lower()
            for (name,) in self.db.query(Customer.display_name).all()
        }
        taken_emails = {
            email.lower()
            for (email,) in self.db.query(Customer.email).filter(Customer.email.isnot(None)).all()
        }

        created = 0
        for name, country in clients.items():
            key = name.strip().lower()
            if not key or key in existing:
                continue

            country = country or settings.HOME_COUNTRY
            domestic = country.strip().lower() == settings.HOME_COUNTRY.lower()
            email = placeholder_email(name, taken_emails)
            taken_emails.add(email)

            self.db.add(Customer(
                display_name=name.strip(),
                company_name=name.strip(),
                email=email,
                country=country,
                place_of_supply=settings.COMPANY_STATE if domestic else None,
                currency=settings.HOME_CURRENCY if domestic else "USD",
                is_active=True
            ))
            existing.add(key)
            created += 1

        if created:
            self.db.flush()
            logger.info(f"Auto-created {created} customer(s)")
        return created
