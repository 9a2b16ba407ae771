"""
GST, TDS and TCS calculation for service invoices.

Indian GST is split by supply location: a supply inside the company's own state
is taxed as CGST + SGST (half each), any other Indian state as IGST. Services
exported to a foreign client (client outside India, or billed in a foreign
currency) carry no GST, TDS or TCS.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from billing.core.config import settings
from billing.modules.taxes.schemas import (
    GSTBreakdown, GSTType, InvoiceAmounts, TaxComputation
)

TWO_PLACES = Decimal('0.01')
ZERO = Decimal('0.00')

Number = Union[Decimal, int, float, str]


def to_decimal(value: Optional[Number]) -> Decimal:
    if value is None or value == '':
        return Decimal('0')
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Optional[Number]) -> Decimal:
    """Round to cents, halves away from zero."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _same_place(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a) and bool(b) and a.strip().casefold() == b.strip().casefold()


def calculate_invoice_amounts(
    base_amount: Number,
    total_gst: Number,
    tds_amount: Number,
    tcs_amount: Number = 0,
    remittance_charges: Number = 0
) -> InvoiceAmounts:
    """
    Compose the three invoice totals.

    Args:
        base_amount: Sum of line items
        total_gst: CGST + SGST + IGST
        tds_amount: Tax deducted at source by the client
        tcs_amount: Tax collected at source; collected on top, never netted
        remittance_charges: Bank charges for money coming from abroad

    Returns:
        sub_total (= base), invoice_total (base + GST) and
        receivable_amount (base + GST - TDS - remittance)
    """
    base = to_decimal(base_amount)
    gst = to_decimal(total_gst)
    tds = to_decimal(tds_amount)
    remittance = to_decimal(remittance_charges)

    return InvoiceAmounts(
        sub_total=round_money(base),
        invoice_total=round_money(base + gst),
        receivable_amount=round_money(base + gst - tds - remittance)
    )


class TaxCalculator:
    """Tax rules for a company registered in ``home_state``."""

    def __init__(
        self,
        home_state: Optional[str] = None,
        home_country: Optional[str] = None,
        home_currency: Optional[str] = None
    ):
        self.home_state = home_state or settings.COMPANY_STATE
        self.home_country = home_country or settings.HOME_COUNTRY
        self.home_currency = (home_currency or settings.HOME_CURRENCY).upper()

    def is_foreign_client(self, currency: Optional[str], country: Optional[str]) -> bool:
        """Export of services: billed in foreign currency or client abroad."""
        if currency and currency.strip().upper() != self.home_currency:
            return True
        if country and not _same_place(country, self.home_country):
            return True
        return False

    def calculate_gst(
        self,
        base_amount: Number,
        gst_percentage: Number,
        client_country: Optional[str] = None,
        place_of_supply: Optional[str] = None,
        client_state: Optional[str] = None
    ) -> GSTBreakdown:
        """
        Split GST into CGST/SGST or IGST.

        Args:
            base_amount: Taxable value
            gst_percentage: Total GST rate, e.g. 18
            client_country: Client country; anything but the home country is tax free
            place_of_supply: State deciding intra/inter-state
            client_state: Used when place_of_supply is blank

        Returns:
            GSTBreakdown with rounded components
        """
        country = client_country or self.home_country
        if not _same_place(country, self.home_country):
            return GSTBreakdown(gst_type=GSTType.IGST)

        total_gst = to_decimal(base_amount) * to_decimal(gst_percentage) / Decimal('100')
        supply_state = place_of_supply or client_state

        if _same_place(supply_state, self.home_state):
            half = total_gst / 2
            return GSTBreakdown(
                cgst=round_money(half),
                sgst=round_money(half),
                igst=ZERO,
                total_gst=round_money(total_gst),
                gst_type=GSTType.CGST_SGST
            )

        # Different state or no state information
        return GSTBreakdown(
            cgst=ZERO,
            sgst=ZERO,
            igst=round_money(total_gst),
            total_gst=round_money(total_gst),
            gst_type=GSTType.IGST
        )

    def calculate_tds(self, base_amount: Number, tds_percentage: Number) -> Decimal:
        return round_money(to_decimal(base_amount) * to_decimal(tds_percentage) / Decimal('100'))

    def calculate_tcs(self, base_amount: Number, tcs_percentage: Number) -> Decimal:
        return round_money(to_decimal(base_amount) * to_decimal(tcs_percentage) / Decimal('100'))

    def compute(
        self,
        base_amount: Number,
        gst_percentage: Number = 0,
        tds_percentage: Number = 0,
        tcs_percentage: Number = 0,
        remittance_charges: Number = 0,
        client_country: Optional[str] = None,
        currency: Optional[str] = None,
        place_of_supply: Optional[str] = None,
        client_state: Optional[str] = None
    ) -> TaxComputation:
        """Run GST, TDS, TCS and the amount composition for one invoice."""
        base = round_money(base_amount)
        remittance = round_money(remittance_charges)
        country = client_country or self.home_country
        foreign = self.is_foreign_client(currency, country)

        gst_pct = ZERO if foreign else round_money(gst_percentage)
        tds_pct = ZERO if foreign else round_money(tds_percentage)
        tcs_pct = ZERO if foreign else round_money(tcs_percentage)

        if foreign:
            gst = GSTBreakdown(gst_type=GSTType.IGST)
        else:
            gst = self.calculate_gst(base, gst_pct, country, place_of_supply, client_state)

        tds_amount = ZERO if foreign else self.calculate_tds(base, tds_pct)
        tcs_amount = ZERO if foreign else self.calculate_tcs(base, tcs_pct)

        amounts = calculate_invoice_amounts(base, gst.total_gst, tds_amount, tcs_amount, remittance)

        return TaxComputation(
            base_amount=base,
            is_foreign=foreign,
            gst_percentage=gst_pct,
            tds_percentage=tds_pct,
            tcs_percentage=tcs_pct,
            gst=gst,
            tds_amount=tds_amount,
            tcs_amount=tcs_amount,
            remittance_charges=remittance,
            amounts=amounts
        )
