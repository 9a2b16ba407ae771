"""
Customer master records.

Invoices keep their own copy of the client fields; the customer record is only
used to fill in missing details (email, GST number, place of supply) when an
invoice is raised for a known client name.
"""

from billing.database.database import Base
from sqlalchemy import Column, String, Boolean, Text
from billing.common.mixins import BaseMixin


class Customer(Base, BaseMixin):
    __tablename__ = "customers"

    display_name = Column(String(255), nullable=False, index=True)
    company_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)

    country = Column(String(100), nullable=False, default="India")
    state = Column(String(100), nullable=True)
    place_of_supply = Column(String(100), nullable=True)
    gst_no = Column(String(20), nullable=True)
    currency = Column(String(3), nullable=False, default="INR")
    billing_address = Column(Text, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Customer(display_name='{self.display_name}', country='{self.country}')>"
