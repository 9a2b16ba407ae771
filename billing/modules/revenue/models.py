"""
Revenue ledger entries.

Every amount on a revenue entry is in the home currency. An entry is either
typed in directly (and later converted into an invoice, which sets
``invoice_generated``), or produced by the synchronizer when an invoice is paid.
"""

from billing.database.database import Base
from sqlalchemy import Column, String, Boolean, Date, Numeric, Integer, Uuid
from billing.common.mixins import BaseMixin


class Revenue(Base, BaseMixin):
    __tablename__ = "revenues"

    client_name = Column(String(255), nullable=False, index=True)
    country = Column(String(100), nullable=False, default="India")
    service = Column(String(100), nullable=False)
    engagement_type = Column(String(20), nullable=False, default="One Time")

    invoice_number = Column(String(50), nullable=True, index=True)
    invoice_date = Column(Date, nullable=False)
    month = Column(String(20), nullable=True)
    year = Column(Integer, nullable=True)

    # Money facts, home currency
    invoice_amount = Column(Numeric(15, 2), nullable=False, default=0)
    gst_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    gst_amount = Column(Numeric(15, 2), nullable=False, default=0)
    tds_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    tds_amount = Column(Numeric(15, 2), nullable=False, default=0)
    remittance_charges = Column(Numeric(15, 2), nullable=False, default=0)
    received_amount = Column(Numeric(15, 2), nullable=False, default=0)
    due_amount = Column(Numeric(15, 2), nullable=False, default=0)

    invoice_generated = Column(Boolean, nullable=False, default=False, index=True)
    # Plain reference; invoices already point here through revenue_id/source_revenue_id
    invoice_id = Column(Uuid, nullable=True, index=True)

    def __repr__(self):
        return f"<Revenue(client_name='{self.client_name}', invoice_number='{self.invoice_number}')>"
