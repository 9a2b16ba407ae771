from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional
from enum import Enum


class GSTType(str, Enum):
    CGST_SGST = "CGST_SGST"  # Intra-state supply
    IGST = "IGST"            # Inter-state supply or export


class GSTBreakdown(BaseModel):
    cgst: Decimal = Decimal('0.00')
    sgst: Decimal = Decimal('0.00')
    igst: Decimal = Decimal('0.00')
    total_gst: Decimal = Decimal('0.00')
    gst_type: GSTType = GSTType.IGST


class InvoiceAmounts(BaseModel):
    sub_total: Decimal
    invoice_total: Decimal      # base + GST, printed on the document
    receivable_amount: Decimal  # base + GST - TDS - remittance, booked as revenue


class TaxComputation(BaseModel):
    """Every tax and amount figure an invoice stores, computed in one pass."""
    base_amount: Decimal
    is_foreign: bool
    gst_percentage: Decimal
    tds_percentage: Decimal
    tcs_percentage: Decimal
    gst: GSTBreakdown
    tds_amount: Decimal
    tcs_amount: Decimal
    remittance_charges: Decimal
    amounts: InvoiceAmounts


class TaxCalculationRequest(BaseModel):
    base_amount: Decimal = Field(..., ge=0)
    gst_percentage: Decimal = Field(Decimal('0'), ge=0, le=100)
    tds_percentage: Decimal = Field(Decimal('0'), ge=0, le=100)
    tcs_percentage: Decimal = Field(Decimal('0'), ge=0, le=100)
    remittance_charges: Decimal = Field(Decimal('0'), ge=0)
    client_country: str = 'India'
    currency: str = 'INR'
    place_of_supply: Optional[str] = None
    client_state: Optional[str] = None

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v):
        return v.strip().upper()
