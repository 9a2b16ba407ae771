"""
Currency conversion against the home currency.

The converter reads rates through an injected ``RateCache``; a stale cache
triggers one fetch from the provider, and a failed fetch degrades to the
static table without raising.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from functools import lru_cache
from typing import Callable, Dict, List, Optional
import logging
import time

from fastapi import HTTPException, status

from billing.common.exceptions import DependencyFailure
from billing.core.config import settings
from billing.modules.currency.provider import CurrencyApiProvider
from billing.modules.currency.rates import FALLBACK_RATES, SUPPORTED_CODES, RateCache

logger = logging.getLogger(__name__)

RATE_PLACES = Decimal('0.000001')


@dataclass
class RateSnapshot:
    rates: Dict[str, Decimal]
    source: str  # "api", "cache" or "fallback"
    last_updated_at: Optional[str] = None


class CurrencyConverter:
    def __init__(
        self,
        provider: Optional[CurrencyApiProvider] = None,
        cache: Optional[RateCache] = None,
        home_currency: Optional[str] = None,
        fallback_rates: Optional[Dict[str, Decimal]] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.provider = provider or CurrencyApiProvider()
        self.cache = cache or RateCache(ttl=settings.EXCHANGE_RATE_CACHE_TTL)
        self.home_currency = (home_currency or settings.HOME_CURRENCY).upper()
        self.fallback_rates = fallback_rates if fallback_rates is not None else FALLBACK_RATES
        self.clock = clock

    @property
    def foreign_codes(self) -> List[str]:
        return [code for code in SUPPORTED_CODES if code != self.home_currency]

    def get_rates(self, force_refresh: bool = False) -> RateSnapshot:
        """Return the current rate table, fetching only when the cache is stale."""
        with self.cache.lock:
            now = self.clock()
            if not force_refresh and not self.cache.is_stale(now):
                return RateSnapshot(dict(self.cache.rates), "cache", self.cache.last_updated_at)

            try:
                rates, last_updated_at = self.provider.fetch_rates(self.home_currency, self.foreign_codes)
            except DependencyFailure as e:
                logger.warning(f"Exchange rate fetch failed, using fallback rates: {e.message}")
                return RateSnapshot(dict(self.fallback_rates), "fallback")

            rates[self.home_currency] = Decimal('1')
            self.cache.store(rates, now, last_updated_at)
            logger.info(f"Exchange rates refreshed ({len(rates)} currencies)")
            return RateSnapshot(dict(rates), "api", last_updated_at)

    def _units_per_home(self, code: str, rates: Dict[str, Decimal]) -> Decimal:
        if code == self.home_currency:
            return Decimal('1')
        value = rates.get(code) or self.fallback_rates.get(code)
        if not value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unsupported currency: {code}"
            )
        return value

    def rate(self, from_currency: str, to_currency: str) -> Decimal:
        """
        Multiplier converting one unit of ``from_currency`` into ``to_currency``.

        Provider rates are units per one home-currency unit, so
        rate(USD, INR) = 1 / value[USD] and cross rates go through INR.
        """
        source = from_currency.strip().upper()
        target = to_currency.strip().upper()
        if source == target:
            return Decimal('1')

        rates = self.get_rates().rates
        from_units = self._units_per_home(source, rates)
        to_units = self._units_per_home(target, rates)
        return (to_units / from_units).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)

    def convert(self, amount: Decimal, from_currency: str, to_currency: str) -> Decimal:
        converted = Decimal(str(amount)) * self.rate(from_currency, to_currency)
        return converted.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

    def to_home(self, amount: Decimal, from_currency: str) -> Decimal:
        return self.convert(amount, from_currency, self.home_currency)


@lru_cache()
def get_currency_converter() -> CurrencyConverter:
    """Process-wide converter; overridden in tests."""
    return CurrencyConverter()
