"""
Tax module

GST split (CGST + SGST inside the company's state, IGST elsewhere in India),
TDS and TCS, and the composition of invoice totals. Foreign clients are
treated as export of services and carry no tax.
"""

from .calculator import TaxCalculator, calculate_invoice_amounts, round_money, to_decimal
from .schemas import GSTBreakdown, GSTType, InvoiceAmounts, TaxComputation
from .router import taxes_router

__all__ = [
    "TaxCalculator", "calculate_invoice_amounts", "round_money", "to_decimal",
    "GSTBreakdown", "GSTType", "InvoiceAmounts", "TaxComputation",
    "taxes_router"
]
