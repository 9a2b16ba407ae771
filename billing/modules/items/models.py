from billing.database.database import Base
from sqlalchemy import Column, String, Boolean, Numeric, Text
from billing.common.mixins import BaseMixin


class ServiceItem(Base, BaseMixin):
    """Sellable service used as the default line item on invoices"""
    __tablename__ = "service_items"

    name = Column(String(255), nullable=False, index=True)
    item_type = Column(String(20), nullable=False, default="Service")
    unit = Column(String(20), nullable=True)
    hsn_sac = Column(String(20), nullable=True)
    selling_price = Column(Numeric(15, 2), nullable=False, default=0)
    sales_account = Column(String(100), nullable=False, default="Sales")
    sales_description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<ServiceItem(name='{self.name}')>"
