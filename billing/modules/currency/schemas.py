from pydantic import BaseModel
from decimal import Decimal
from typing import Dict, List, Optional


class CurrencyInfo(BaseModel):
    code: str
    name: str
    symbol: str


class SupportedCurrenciesResponse(BaseModel):
    home_currency: str
    currencies: List[CurrencyInfo]


class ExchangeRatesResponse(BaseModel):
    base_currency: str
    source: str
    last_updated_at: Optional[str] = None
    rates: Dict[str, Decimal]           # units per 1 base
    home_per_unit: Dict[str, Decimal]   # base units per 1 unit of each currency


class ConversionResponse(BaseModel):
    amount: Decimal
    from_currency: str
    to_currency: str
    rate: Decimal
    converted_amount: Decimal
