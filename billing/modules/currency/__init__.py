"""
Currency module

Exchange rates from currencyapi.com with an in-process TTL cache and static
fallback rates when the provider is unavailable.
"""

from .provider import CurrencyApiProvider
from .rates import FALLBACK_RATES, SUPPORTED_CURRENCIES, RateCache
from .service import CurrencyConverter, get_currency_converter
from .router import currency_router

__all__ = [
    "CurrencyApiProvider",
    "FALLBACK_RATES", "SUPPORTED_CURRENCIES", "RateCache",
    "CurrencyConverter", "get_currency_converter",
    "currency_router"
]
