"""
currencyapi.com client
"""
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple
import logging

import httpx

from billing.common.exceptions import DependencyFailure
from billing.core.config import settings

logger = logging.getLogger(__name__)


class CurrencyApiProvider:
    """
    Fetches the latest rates for a base currency.

    Any failure (network error, timeout, non-200 response, rate limiting,
    unexpected body) is raised as DependencyFailure so the converter can
    switch to the static table.
    """

    SERVICE_NAME = "currencyapi"

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self.base_url = base_url or settings.CURRENCY_API_URL
        self.api_key = api_key if api_key is not None else settings.CURRENCY_API_KEY
        self.timeout = timeout or settings.CURRENCY_API_TIMEOUT
        self.transport = transport

    def fetch_rates(self, base_currency: str, currencies: List[str]) -> Tuple[Dict[str, Decimal], Optional[str]]:
        """
        Args:
            base_currency: Currency every rate is quoted against
            currencies: Codes to request

        Returns:
            (rates by code, provider's last-updated timestamp)
        """
        params = {
            "apikey": self.api_key,
            "base_currency": base_currency,
            "currencies": ",".join(currencies),
        }

        logger.info(f"Fetching exchange rates for {base_currency} from {self.SERVICE_NAME}")
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(self.base_url, params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            code = e.response.status_code
            if code == 429:
                message = f"Currency API rate limit exceeded ({code})"
            else:
                message = f"Currency API HTTP error: {code}"
            raise DependencyFailure(message, service=self.SERVICE_NAME, details={"status_code": code})
        except httpx.RequestError as e:
            raise DependencyFailure(f"Currency API request failed: {e}", service=self.SERVICE_NAME)
        except ValueError as e:
            raise DependencyFailure(f"Currency API returned invalid JSON: {e}", service=self.SERVICE_NAME)

        return self._parse(payload)

    def _parse(self, payload) -> Tuple[Dict[str, Decimal], Optional[str]]:
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
            raise DependencyFailure("Invalid API response format", service=self.SERVICE_NAME)

        rates: Dict[str, Decimal] = {}
        for code, entry in payload["data"].items():
            value = entry.get("value") if isinstance(entry, dict) else entry
            try:
                rate = Decimal(str(value))
            except (InvalidOperation, TypeError):
                logger.warning(f"Ignoring malformed rate for {code}: {value!r}")
                continue
            if not rate.is_finite() or rate <= 0:
                logger.warning(f"Ignoring unusable rate for {code}: {value!r}")
                continue
            rates[code.upper()] = rate

        if not rates:
            raise DependencyFailure("Currency API returned no usable rates", service=self.SERVICE_NAME)

        meta = payload.get("meta") or {}
        return rates, meta.get("last_updated_at")
