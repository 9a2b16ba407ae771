from decimal import Decimal, ROUND_HALF_UP

from fastapi import APIRouter, Depends, Query

from billing.modules.currency.rates import SUPPORTED_CURRENCIES
from billing.modules.currency.schemas import (
    ConversionResponse, ExchangeRatesResponse, SupportedCurrenciesResponse
)
from billing.modules.currency.service import CurrencyConverter, get_currency_converter

currency_router = APIRouter(prefix="/currency", tags=["Currency"])


@currency_router.get("/supported", response_model=SupportedCurrenciesResponse)
def get_supported_currencies(converter: CurrencyConverter = Depends(get_currency_converter)):
    return SupportedCurrenciesResponse(
        home_currency=converter.home_currency,
        currencies=SUPPORTED_CURRENCIES
    )


@currency_router.get("/rates", response_model=ExchangeRatesResponse)
def get_exchange_rates(
    refresh: bool = Query(False, description="Bypass the cache"),
    converter: CurrencyConverter = Depends(get_currency_converter)
):
    """
    Current rate table relative to the home currency
    """
    snapshot = converter.get_rates(force_refresh=refresh)
    home_per_unit = {
        code: (Decimal('1') / value).quantize(Decimal('0.0001'), rounding=ROUND_HALF_UP)
        for code, value in snapshot.rates.items() if value
    }
    return ExchangeRatesResponse(
        base_currency=converter.home_currency,
        source=snapshot.source,
        last_updated_at=snapshot.last_updated_at,
        rates=snapshot.rates,
        home_per_unit=home_per_unit
    )


@currency_router.get("/convert", response_model=ConversionResponse)
def convert_amount(
    amount: Decimal = Query(..., ge=0),
    from_currency: str = Query(..., alias="from"),
    to_currency: str = Query(None, alias="to"),
    converter: CurrencyConverter = Depends(get_currency_converter)
):
    target = (to_currency or converter.home_currency).upper()
    source = from_currency.upper()
    return ConversionResponse(
        amount=amount,
        from_currency=source,
        to_currency=target,
        rate=converter.rate(source, target),
        converted_amount=converter.convert(amount, source, target)
    )
