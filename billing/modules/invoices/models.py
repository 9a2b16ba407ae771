from billing.database.database import Base
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Numeric, Enum, Date, Text, Uuid
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import date
from billing.common.mixins import BaseMixin
from billing.modules.contacts.models import Customer
from billing.modules.revenue.models import Revenue
import enum


class InvoiceStatus(str, enum.Enum):
    UNPAID = "Unpaid"
    PARTIAL = "Partial"
    PAID = "Paid"
    VOID = "Void"


class EngagementType(str, enum.Enum):
    ONE_TIME = "One Time"
    RECURRING = "Recurring"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Invoice(Base, BaseMixin):
    """
    Sales invoice for a service engagement.

    Tax and amount columns are never written directly by callers; they are
    recomputed together whenever an amount-affecting field changes.
    """
    __tablename__ = "invoices"

    invoice_number = Column(String(50), nullable=False, unique=True, index=True)
    invoice_date = Column(Date, nullable=False, default=date.today)
    due_date = Column(Date, nullable=True)

    # Client
    customer_id = Column(Uuid, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)
    client_name = Column(String(255), nullable=False, index=True)
    client_email = Column(String(255), nullable=True)
    client_address = Column(Text, nullable=True)
    client_country = Column(String(100), nullable=False, default="India")
    client_state = Column(String(100), nullable=True)
    place_of_supply = Column(String(100), nullable=True)
    gst_no = Column(String(20), nullable=True)

    # Engagement
    service_description = Column(Text, nullable=True)
    engagement_type = Column(
        Enum(EngagementType, name="engagement_type", values_callable=_enum_values),
        nullable=False, default=EngagementType.ONE_TIME
    )
    period_month = Column(String(20), nullable=True)
    period_year = Column(Integer, nullable=True)

    # Money facts
    base_amount = Column(Numeric(15, 2), nullable=False, default=0)
    gst_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    gst_type = Column(String(10), nullable=False, default="IGST")
    cgst = Column(Numeric(15, 2), nullable=False, default=0)
    sgst = Column(Numeric(15, 2), nullable=False, default=0)
    igst = Column(Numeric(15, 2), nullable=False, default=0)
    tds_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    tds_amount = Column(Numeric(15, 2), nullable=False, default=0)
    tcs_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    tcs_amount = Column(Numeric(15, 2), nullable=False, default=0)
    remittance_charges = Column(Numeric(15, 2), nullable=False, default=0)
    sub_total = Column(Numeric(15, 2), nullable=False, default=0)
    invoice_total = Column(Numeric(15, 2), nullable=False, default=0)
    receivable_amount = Column(Numeric(15, 2), nullable=False, default=0)

    # Currency
    currency = Column(String(3), nullable=False, default="INR")
    exchange_rate = Column(Numeric(15, 6), nullable=False, default=1)
    inr_equivalent = Column(Numeric(15, 2), nullable=False, default=0)

    # Lifecycle
    status = Column(
        Enum(InvoiceStatus, name="invoice_status", values_callable=_enum_values),
        nullable=False, default=InvoiceStatus.UNPAID, index=True
    )
    received_amount = Column(Numeric(15, 2), nullable=False, default=0)
    paid_amount = Column(Numeric(15, 2), nullable=False, default=0)

    notes = Column(Text, nullable=True)
    invoice_url = Column(String(500), nullable=True)
    email_sent = Column(Boolean, nullable=False, default=False)
    email_sent_at = Column(DateTime(timezone=True), nullable=True)

    # Revenue links
    revenue_id = Column(Uuid, ForeignKey("revenues.id", ondelete="SET NULL"), nullable=True)
    source_revenue_id = Column(Uuid, ForeignKey("revenues.id", ondelete="SET NULL"), nullable=True)

    revenue = relationship(Revenue, foreign_keys=[revenue_id])
    source_revenue = relationship(Revenue, foreign_keys=[source_revenue_id])
    customer = relationship(Customer)
    items = relationship(
        "InvoiceItem", back_populates="invoice",
        cascade="all, delete-orphan", order_by="InvoiceItem.position"
    )
    payments = relationship(
        "Payment", back_populates="invoice",
        cascade="all, delete-orphan", order_by="Payment.payment_date"
    )
    status_changes = relationship(
        "InvoiceStatusChange", back_populates="invoice",
        cascade="all, delete-orphan", order_by="InvoiceStatusChange.id"
    )

    @property
    def total_gst(self):
        return (self.cgst or 0) + (self.sgst or 0) + (self.igst or 0)

    @property
    def balance_due(self):
        return (self.receivable_amount or 0) - (self.received_amount or 0)

    def __repr__(self):
        return f"<Invoice(invoice_number='{self.invoice_number}', status='{self.status}')>"


class InvoiceItem(Base, BaseMixin):
    __tablename__ = "invoice_items"

    invoice_id = Column(Uuid, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    hsn_sac = Column(String(20), nullable=True)
    quantity = Column(Numeric(10, 3), nullable=False, default=1)
    rate = Column(Numeric(15, 2), nullable=False, default=0)
    amount = Column(Numeric(15, 2), nullable=False, default=0)  # quantity * rate

    invoice = relationship("Invoice", back_populates="items")


class Payment(Base, BaseMixin):
    """Money received against an invoice, in the invoice currency"""
    __tablename__ = "payments"

    payment_number = Column(String(50), nullable=False, unique=True, index=True)
    invoice_id = Column(Uuid, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_date = Column(Date, nullable=False, default=date.today)
    amount = Column(Numeric(15, 2), nullable=False)
    amount_inr = Column(Numeric(15, 2), nullable=False, default=0)
    payment_mode = Column(String(30), nullable=False, default="Cash")
    reference_number = Column(String(100), nullable=True)
    bank_charges = Column(Numeric(15, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    invoice = relationship("Invoice", back_populates="payments")


class InvoiceSequence(Base, BaseMixin):
    """One counter per calendar year for interactive numbering"""
    __tablename__ = "invoice_sequences"

    year = Column(Integer, nullable=False, unique=True)
    prefix = Column(String(10), nullable=False)
    current_number = Column(Integer, nullable=False, default=0)


class InvoiceStatusChange(Base):
    """Audit trail of lifecycle transitions"""
    __tablename__ = "invoice_status_changes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id = Column(Uuid, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    invoice = relationship("Invoice", back_populates="status_changes")
