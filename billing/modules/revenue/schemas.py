from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime

from billing.modules.revenue.classifier import ServiceCategory


class RevenueCreate(BaseModel):
    client_name: str = Field(..., min_length=1, max_length=255)
    country: str = Field("India", max_length=100)
    service: ServiceCategory = ServiceCategory.OTHER
    engagement_type: str = Field("One Time", max_length=20)
    invoice_number: Optional[str] = Field(None, max_length=50)
    invoice_date: date
    month: Optional[str] = None
    year: Optional[int] = Field(None, ge=1900, le=2100)

    invoice_amount: Decimal = Field(..., ge=0)
    gst_percentage: Decimal = Field(Decimal('0'), ge=0, le=100)
    gst_amount: Decimal = Field(Decimal('0'), ge=0)
    tds_percentage: Decimal = Field(Decimal('0'), ge=0, le=100)
    tds_amount: Decimal = Field(Decimal('0'), ge=0)
    remittance_charges: Decimal = Field(Decimal('0'), ge=0)
    received_amount: Decimal = Field(Decimal('0'), ge=0)
    due_amount: Decimal = Field(Decimal('0'), ge=0)

    @field_validator('client_name')
    @classmethod
    def strip_client_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Client name is required')
        return v

    @field_validator('engagement_type')
    @classmethod
    def normalize_engagement(cls, v):
        return "Recurring" if "recurr" in (v or "").lower() else "One Time"


class RevenueOut(BaseModel):
    id: UUID
    client_name: str
    country: str
    service: str
    engagement_type: str
    invoice_number: Optional[str] = None
    invoice_date: date
    month: Optional[str] = None
    year: Optional[int] = None
    invoice_amount: Decimal
    gst_percentage: Decimal
    gst_amount: Decimal
    tds_percentage: Decimal
    tds_amount: Decimal
    remittance_charges: Decimal
    received_amount: Decimal
    due_amount: Decimal
    invoice_generated: bool
    invoice_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RevenueList(BaseModel):
    revenues: List[RevenueOut]
    total: int
    limit: int
    offset: int
