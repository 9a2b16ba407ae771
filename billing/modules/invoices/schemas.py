from pydantic import BaseModel, Field, field_validator, model_validator
from decimal import Decimal
from typing import Optional, List, Dict
from uuid import UUID
from datetime import date, datetime

from billing.modules.invoices.models import InvoiceStatus, EngagementType
from billing.modules.revenue.schemas import RevenueOut


# ===== LINE ITEMS =====

class InvoiceItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    hsn_sac: Optional[str] = Field(None, max_length=20)
    quantity: Decimal = Field(Decimal('1'), gt=0)
    rate: Decimal = Field(..., ge=0)


class InvoiceItemOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    hsn_sac: Optional[str] = None
    quantity: Decimal
    rate: Decimal
    amount: Decimal

    class Config:
        from_attributes = True


# ===== INVOICES =====

class InvoiceBase(BaseModel):
    client_email: Optional[str] = Field(None, max_length=255)
    client_address: Optional[str] = None
    client_state: Optional[str] = Field(None, max_length=100)
    place_of_supply: Optional[str] = Field(None, max_length=100)
    gst_no: Optional[str] = Field(None, max_length=20)
    service_description: Optional[str] = None
    period_month: Optional[str] = None
    period_year: Optional[int] = Field(None, ge=1900, le=2100)
    due_date: Optional[date] = None
    notes: Optional[str] = None
    invoice_url: Optional[str] = Field(None, max_length=500)


class InvoiceCreate(InvoiceBase):
    client_name: str = Field(..., max_length=255)
    client_country: str = Field("India", max_length=100)
    invoice_date: date = Field(default_factory=date.today)
    invoice_number: Optional[str] = Field(None, max_length=50, description="Generated when omitted")
    engagement_type: EngagementType = EngagementType.ONE_TIME

    base_amount: Optional[Decimal] = Field(None, ge=0, description="Ignored when items are given")
    items: List[InvoiceItemCreate] = []
    gst_percentage: Decimal = Field(Decimal('0'), ge=0, le=100)
    tds_percentage: Decimal = Field(Decimal('0'), ge=0, le=100)
    tcs_percentage: Decimal = Field(Decimal('0'), ge=0, le=100)
    remittance_charges: Decimal = Field(Decimal('0'), ge=0)

    currency: str = Field("INR", min_length=3, max_length=3)
    exchange_rate: Optional[Decimal] = Field(None, gt=0, description="Overrides the live rate")

    status: Optional[InvoiceStatus] = None
    received_amount: Optional[Decimal] = Field(None, ge=0)
    revenue_id: Optional[UUID] = Field(None, description="Ledger entry this invoice is converted from")

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v):
        return v.strip().upper()

    @field_validator('client_name')
    @classmethod
    def strip_client_name(cls, v):
        return v.strip()


class InvoiceUpdate(InvoiceBase):
    """Partial update; only the fields sent are applied"""
    client_name: Optional[str] = Field(None, min_length=1, max_length=255)
    client_country: Optional[str] = Field(None, max_length=100)
    invoice_date: Optional[date] = None
    engagement_type: Optional[EngagementType] = None

    base_amount: Optional[Decimal] = Field(None, ge=0)
    items: Optional[List[InvoiceItemCreate]] = None
    gst_percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    tds_percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    tcs_percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    remittance_charges: Optional[Decimal] = Field(None, ge=0)

    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    exchange_rate: Optional[Decimal] = Field(None, gt=0)

    status: Optional[InvoiceStatus] = None
    status_reason: Optional[str] = Field(None, max_length=500)
    received_amount: Optional[Decimal] = Field(None, ge=0)

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v):
        return v.strip().upper() if v else v


class InvoiceOut(BaseModel):
    id: UUID
    invoice_number: str
    invoice_date: date
    due_date: Optional[date] = None
    client_name: str
    client_email: Optional[str] = None
    client_country: str
    client_state: Optional[str] = None
    place_of_supply: Optional[str] = None
    gst_no: Optional[str] = None
    service_description: Optional[str] = None
    engagement_type: EngagementType
    period_month: Optional[str] = None
    period_year: Optional[int] = None

    base_amount: Decimal
    gst_percentage: Decimal
    gst_type: str
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    tds_percentage: Decimal
    tds_amount: Decimal
    tcs_percentage: Decimal
    tcs_amount: Decimal
    remittance_charges: Decimal
    sub_total: Decimal
    invoice_total: Decimal
    receivable_amount: Decimal

    currency: str
    exchange_rate: Decimal
    inr_equivalent: Decimal

    status: InvoiceStatus
    received_amount: Decimal
    paid_amount: Decimal

    notes: Optional[str] = None
    invoice_url: Optional[str] = None
    email_sent: bool
    revenue_id: Optional[UUID] = None
    source_revenue_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PaymentOut(BaseModel):
    id: UUID
    payment_number: str
    invoice_id: UUID
    payment_date: date
    amount: Decimal
    amount_inr: Decimal
    payment_mode: str
    reference_number: Optional[str] = None
    bank_charges: Decimal
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class InvoiceDetail(InvoiceOut):
    client_address: Optional[str] = None
    items: List[InvoiceItemOut] = []
    payments: List[PaymentOut] = []
    revenue: Optional[RevenueOut] = None
    source_revenue: Optional[RevenueOut] = None


class InvoiceList(BaseModel):
    invoices: List[InvoiceOut]
    total: int
    limit: int
    offset: int
    status_counts: Dict[str, int]


class InvoiceFromRevenue(BaseModel):
    """Overrides applied when converting a ledger entry into an invoice"""
    client_email: Optional[str] = None
    place_of_supply: Optional[str] = None
    currency: str = Field("INR", min_length=3, max_length=3)
    exchange_rate: Optional[Decimal] = Field(None, gt=0)
    notes: Optional[str] = None

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v):
        return v.strip().upper()


# ===== PAYMENTS =====

class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, description="Invoice currency")
    payment_date: date = Field(default_factory=date.today)
    payment_mode: str = Field("Cash", max_length=30)
    reference_number: Optional[str] = Field(None, max_length=100)
    bank_charges: Decimal = Field(Decimal('0'), ge=0)
    notes: Optional[str] = None


# ===== MISC =====

class StatusChangeOut(BaseModel):
    id: int
    from_status: Optional[str] = None
    to_status: str
    reason: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BulkDeleteRequest(BaseModel):
    invoice_ids: List[UUID] = Field(..., min_length=1)

    @model_validator(mode='after')
    def dedupe_ids(self):
        self.invoice_ids = list(dict.fromkeys(self.invoice_ids))
        return self


class BulkDeleteResult(BaseModel):
    deleted: int
    not_found: List[UUID] = []


class NextInvoiceNumber(BaseModel):
    invoice_number: str
    invoice_date: date


class SendEmailRequest(BaseModel):
    to_email: Optional[str] = Field(None, description="Defaults to the invoice's client email")
