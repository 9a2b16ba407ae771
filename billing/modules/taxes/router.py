from fastapi import APIRouter

from billing.modules.taxes.calculator import TaxCalculator
from billing.modules.taxes.schemas import TaxCalculationRequest, TaxComputation

taxes_router = APIRouter(prefix="/taxes", tags=["Taxes"])


@taxes_router.post("/calculate", response_model=TaxComputation)
def calculate_taxes(request: TaxCalculationRequest):
    """
    Preview GST/TDS/TCS and the invoice totals without saving anything
    """
    calculator = TaxCalculator()
    return calculator.compute(
        base_amount=request.base_amount,
        gst_percentage=request.gst_percentage,
        tds_percentage=request.tds_percentage,
        tcs_percentage=request.tcs_percentage,
        remittance_charges=request.remittance_charges,
        client_country=request.client_country,
        currency=request.currency,
        place_of_supply=request.place_of_supply,
        client_state=request.client_state
    )
