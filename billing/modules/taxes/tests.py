"""
Tests for the taxes module

Covers:
- CGST/SGST vs IGST split by place of supply
- Export of services (foreign country or currency) is tax free
- Receivable composition and half-up rounding
- Stateless preview endpoint
"""

import pytest
from decimal import Decimal

from billing.modules.taxes.calculator import (
    TaxCalculator, calculate_invoice_amounts, round_money
)
from billing.modules.taxes.schemas import GSTType


# ===== FIXTURES =====

@pytest.fixture
def calculator():
    return TaxCalculator(home_state="Gujarat", home_country="India", home_currency="INR")


# ===== GST SPLIT =====

class TestGSTSplit:
    """GST component selection"""

    def test_same_state_splits_cgst_sgst(self, calculator):
        """10,000 @ 18% inside Gujarat"""
        gst = calculator.calculate_gst(Decimal("10000"), Decimal("18"), "India", "Gujarat")
        assert gst.cgst == Decimal("900.00")
        assert gst.sgst == Decimal("900.00")
        assert gst.igst == Decimal("0.00")
        assert gst.total_gst == Decimal("1800.00")
        assert gst.gst_type == GSTType.CGST_SGST

    def test_other_state_is_igst(self, calculator):
        gst = calculator.calculate_gst(Decimal("10000"), Decimal("18"), "India", "Maharashtra")
        assert gst.igst == Decimal("1800.00")
        assert gst.cgst == Decimal("0.00")
        assert gst.sgst == Decimal("0.00")
        assert gst.gst_type == GSTType.IGST

    def test_client_state_used_when_place_of_supply_missing(self, calculator):
        gst = calculator.calculate_gst(Decimal("1000"), Decimal("18"), "India", None, "gujarat")
        assert gst.gst_type == GSTType.CGST_SGST
        assert gst.cgst == Decimal("90.00")

    def test_place_of_supply_wins_over_client_state(self, calculator):
        gst = calculator.calculate_gst(Decimal("1000"), Decimal("18"), "India", "Karnataka", "Gujarat")
        assert gst.gst_type == GSTType.IGST

    def test_no_state_information_defaults_to_igst(self, calculator):
        gst = calculator.calculate_gst(Decimal("1000"), Decimal("18"), "India")
        assert gst.gst_type == GSTType.IGST
        assert gst.igst == Decimal("180.00")

    def test_foreign_country_has_no_gst(self, calculator):
        gst = calculator.calculate_gst(Decimal("1000"), Decimal("18"), "USA", "Gujarat")
        assert gst.total_gst == Decimal("0.00")
        assert gst.gst_type == GSTType.IGST

    def test_halves_are_rounded_individually(self, calculator):
        """18% of 10.05 = 1.809 -> halves 0.9045 round to 0.90"""
        gst = calculator.calculate_gst(Decimal("10.05"), Decimal("18"), "India", "Gujarat")
        assert gst.cgst == Decimal("0.90")
        assert gst.sgst == Decimal("0.90")
        assert gst.total_gst == Decimal("1.81")


# ===== FULL COMPUTATION =====

class TestCompute:
    """Single-pass computation used by every entry point"""

    def test_domestic_invoice(self, calculator):
        result = calculator.compute(
            base_amount="10000", gst_percentage="18", tds_percentage="10",
            client_country="India", currency="INR", place_of_supply="Gujarat"
        )
        assert result.is_foreign is False
        assert result.tds_amount == Decimal("1000.00")
        assert result.amounts.sub_total == Decimal("10000.00")
        assert result.amounts.invoice_total == Decimal("11800.00")
        assert result.amounts.receivable_amount == Decimal("10800.00")

    @pytest.mark.parametrize("country,currency", [
        ("USA", "INR"),
        ("India", "USD"),
        ("Canada", "CAD"),
    ])
    def test_export_zeroes_every_tax(self, calculator, country, currency):
        result = calculator.compute(
            base_amount="1000", gst_percentage="18", tds_percentage="10", tcs_percentage="1",
            client_country=country, currency=currency
        )
        assert result.is_foreign is True
        assert result.gst.total_gst == Decimal("0.00")
        assert result.tds_amount == Decimal("0.00")
        assert result.tcs_amount == Decimal("0.00")
        assert result.gst_percentage == Decimal("0.00")
        assert result.amounts.receivable_amount == Decimal("1000.00")

    def test_tcs_is_not_netted_from_receivable(self, calculator):
        result = calculator.compute(
            base_amount="1000", gst_percentage="0", tcs_percentage="1",
            client_country="India", currency="INR"
        )
        assert result.tcs_amount == Decimal("10.00")
        assert result.amounts.receivable_amount == Decimal("1000.00")

    def test_remittance_reduces_receivable(self, calculator):
        result = calculator.compute(
            base_amount="500", remittance_charges="12.345",
            client_country="USA", currency="USD"
        )
        assert result.remittance_charges == Decimal("12.35")
        assert result.amounts.receivable_amount == Decimal("487.65")


# ===== AMOUNT COMPOSITION =====

class TestAmounts:

    def test_receivable_formula(self):
        amounts = calculate_invoice_amounts(
            Decimal("2500.50"), Decimal("450.09"), Decimal("250.05"), Decimal("25"), Decimal("10")
        )
        assert amounts.sub_total == Decimal("2500.50")
        assert amounts.invoice_total == Decimal("2950.59")
        assert amounts.receivable_amount == Decimal("2690.54")

    @pytest.mark.parametrize("value,expected", [
        ("0.005", "0.01"),
        ("2.675", "2.68"),
        ("1.004", "1.00"),
        (None, "0.00"),
        ("", "0.00"),
    ])
    def test_round_money_half_up(self, value, expected):
        assert round_money(value) == Decimal(expected)


# ===== ENDPOINT =====

class TestTaxPreviewEndpoint:

    def test_calculate_endpoint(self, client):
        response = client.post("/taxes/calculate", json={
            "base_amount": "10000",
            "gst_percentage": "18",
            "place_of_supply": "Gujarat"
        })
        assert response.status_code == 200
        data = response.json()
        assert data["gst"]["gst_type"] == "CGST_SGST"
        assert Decimal(data["amounts"]["invoice_total"]) == Decimal("11800")

    def test_percentage_out_of_range(self, client):
        response = client.post("/taxes/calculate", json={
            "base_amount": "100",
            "gst_percentage": "180"
        })
        assert response.status_code == 422
