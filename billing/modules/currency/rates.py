"""
Static rate table and the time-boxed rate cache.

Rates are expressed the way currencyapi.com returns them for ``base_currency=INR``:
the value of one rupee in the quoted currency (1 INR = 0.011111 USD).
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional
import threading

SUPPORTED_CURRENCIES = [
    {"code": "INR", "name": "Indian Rupee", "symbol": "₹"},
    {"code": "USD", "name": "US Dollar", "symbol": "$"},
    {"code": "CAD", "name": "Canadian Dollar", "symbol": "C$"},
    {"code": "AUD", "name": "Australian Dollar", "symbol": "A$"},
    {"code": "AED", "name": "UAE Dirham", "symbol": "AED"},
    {"code": "EUR", "name": "Euro", "symbol": "€"},
    {"code": "GBP", "name": "British Pound", "symbol": "£"},
    {"code": "CNY", "name": "Chinese Yuan", "symbol": "¥"},
    {"code": "BND", "name": "Brunei Dollar", "symbol": "B$"},
]

SUPPORTED_CODES = [c["code"] for c in SUPPORTED_CURRENCIES]

# Used when the provider is unavailable (1 USD = 90 INR, 1 CAD = 65.35 INR, ...)
FALLBACK_RATES: Dict[str, Decimal] = {
    "USD": Decimal("0.011111"),
    "CAD": Decimal("0.015295"),
    "AUD": Decimal("0.016583"),
    "AED": Decimal("0.040816"),
    "EUR": Decimal("0.010204"),
    "GBP": Decimal("0.008772"),
    "CNY": Decimal("0.080000"),
    "BND": Decimal("0.014925"),
}


def is_stale(fetched_at: Optional[float], ttl: float, now: float) -> bool:
    """True when nothing was fetched yet or the last fetch is older than ``ttl`` seconds."""
    if fetched_at is None:
        return True
    return (now - fetched_at) >= ttl


@dataclass
class RateCache:
    """Last fetched rate table, shared by every converter in the process."""
    ttl: float
    rates: Optional[Dict[str, Decimal]] = None
    fetched_at: Optional[float] = None
    last_updated_at: Optional[str] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def is_stale(self, now: float) -> bool:
        return self.rates is None or is_stale(self.fetched_at, self.ttl, now)

    def store(self, rates: Dict[str, Decimal], now: float, last_updated_at: Optional[str] = None):
        self.rates = dict(rates)
        self.fetched_at = now
        self.last_updated_at = last_updated_at

    def clear(self):
        self.rates = None
        self.fetched_at = None
        self.last_updated_at = None
