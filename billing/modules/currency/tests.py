"""
Tests for the currency module

Covers:
- Provider parsing and failure mapping (timeouts, 429, malformed bodies)
- Cache staleness and single refetch on expiry
- Fallback to the static table
- Conversion direction (units per rupee)
"""

import pytest
import httpx
from decimal import Decimal

from billing.common.exceptions import DependencyFailure
from billing.modules.currency.provider import CurrencyApiProvider
from billing.modules.currency.rates import FALLBACK_RATES, RateCache, is_stale
from billing.modules.currency.service import CurrencyConverter


API_BODY = {
    "meta": {"last_updated_at": "2026-10-18T23:59:59Z"},
    "data": {
        "USD": {"code": "USD", "value": 0.0125},
        "EUR": {"code": "EUR", "value": 0.01},
    }
}


# ===== FIXTURES =====

class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def make_provider(handler):
    return CurrencyApiProvider(
        base_url="https://rates.test/v3/latest",
        api_key="test-key",
        timeout=1.0,
        transport=httpx.MockTransport(handler)
    )


@pytest.fixture
def calls():
    return []


@pytest.fixture
def ok_provider(calls):
    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=API_BODY)
    return make_provider(handler)


# ===== PROVIDER =====

class TestCurrencyApiProvider:

    def test_parses_rates_and_sends_params(self, ok_provider, calls):
        rates, updated = ok_provider.fetch_rates("INR", ["USD", "EUR"])
        assert rates == {"USD": Decimal("0.0125"), "EUR": Decimal("0.01")}
        assert updated == "2026-10-18T23:59:59Z"
        params = calls[0].url.params
        assert params["base_currency"] == "INR"
        assert params["currencies"] == "USD,EUR"
        assert params["apikey"] == "test-key"

    def test_rate_limit_is_dependency_failure(self):
        provider = make_provider(lambda request: httpx.Response(429, json={"message": "slow down"}))
        with pytest.raises(DependencyFailure) as exc:
            provider.fetch_rates("INR", ["USD"])
        assert "rate limit" in exc.value.message
        assert exc.value.details["status_code"] == 429

    def test_timeout_is_dependency_failure(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)
        with pytest.raises(DependencyFailure):
            make_provider(handler).fetch_rates("INR", ["USD"])

    def test_malformed_body_is_dependency_failure(self):
        provider = make_provider(lambda request: httpx.Response(200, json={"unexpected": True}))
        with pytest.raises(DependencyFailure):
            provider.fetch_rates("INR", ["USD"])

    def test_non_json_body_is_dependency_failure(self):
        provider = make_provider(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(DependencyFailure):
            provider.fetch_rates("INR", ["USD"])

    @pytest.mark.parametrize("content", [
        b'{"data": {"USD": {"value": "NaN"}}}',
        b'{"data": {"USD": {"value": NaN}}}',
        b'{"data": {"USD": {"value": "Infinity"}}}',
        b'{"data": {"USD": {"value": 0}}}',
    ])
    def test_non_finite_or_zero_rate_is_dependency_failure(self, content):
        provider = make_provider(lambda request: httpx.Response(200, content=content))
        with pytest.raises(DependencyFailure):
            provider.fetch_rates("INR", ["USD"])

    def test_non_finite_rate_is_dropped_from_table(self):
        body = b'{"data": {"USD": {"value": "NaN"}, "EUR": {"value": 0.01}}}'
        provider = make_provider(lambda request: httpx.Response(200, content=body))
        rates, _ = provider.fetch_rates("INR", ["USD", "EUR"])
        assert rates == {"EUR": Decimal("0.01")}


# ===== CACHE =====

class TestRateCache:

    def test_is_stale(self):
        assert is_stale(None, 60, 0) is True
        assert is_stale(100, 60, 159) is False
        assert is_stale(100, 60, 160) is True

    def test_empty_cache_is_stale(self):
        assert RateCache(ttl=60).is_stale(0) is True


# ===== CONVERTER =====

class TestCurrencyConverter:

    def test_fresh_cache_is_reused(self, ok_provider, calls):
        clock = FakeClock()
        converter = CurrencyConverter(ok_provider, RateCache(ttl=60), "INR", clock=clock)

        assert converter.get_rates().source == "api"
        clock.now += 30
        assert converter.get_rates().source == "cache"
        assert len(calls) == 1

    def test_expiry_triggers_exactly_one_refetch(self, ok_provider, calls):
        clock = FakeClock()
        converter = CurrencyConverter(ok_provider, RateCache(ttl=60), "INR", clock=clock)

        converter.get_rates()
        clock.now += 61
        assert converter.get_rates().source == "api"
        assert converter.get_rates().source == "cache"
        assert len(calls) == 2

    def test_failure_falls_back_without_caching(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(503)

        cache = RateCache(ttl=60)
        converter = CurrencyConverter(make_provider(handler), cache, "INR", clock=FakeClock())

        snapshot = converter.get_rates()
        assert snapshot.source == "fallback"
        assert snapshot.rates["USD"] == FALLBACK_RATES["USD"]
        assert cache.rates is None

        converter.get_rates()
        assert len(attempts) == 2

    def test_rate_direction(self, ok_provider):
        converter = CurrencyConverter(ok_provider, RateCache(ttl=60), "INR", clock=FakeClock())
        assert converter.rate("USD", "INR") == Decimal("80.000000")
        assert converter.rate("INR", "USD") == Decimal("0.012500")
        assert converter.rate("EUR", "USD") == Decimal("1.250000")
        assert converter.rate("INR", "INR") == Decimal("1")

    def test_to_home(self, ok_provider):
        converter = CurrencyConverter(ok_provider, RateCache(ttl=60), "INR", clock=FakeClock())
        assert converter.to_home(Decimal("1000"), "USD") == Decimal("80000.00")

    @pytest.mark.parametrize("value", ['"NaN"', "NaN", '"Infinity"'])
    def test_unusable_rate_falls_back(self, value):
        body = ('{"data": {"USD": {"value": %s}}}' % value).encode()
        provider = make_provider(lambda request: httpx.Response(200, content=body))
        cache = RateCache(ttl=60)
        converter = CurrencyConverter(provider, cache, "INR", clock=FakeClock())

        assert abs(converter.rate("USD", "INR") - Decimal("90")) < Decimal("0.01")
        assert cache.rates is None

    def test_partly_unusable_table_uses_fallback_for_that_currency(self):
        body = b'{"data": {"USD": {"value": "Infinity"}, "EUR": {"value": 0.01}}}'
        provider = make_provider(lambda request: httpx.Response(200, content=body))
        converter = CurrencyConverter(provider, RateCache(ttl=60), "INR", clock=FakeClock())

        assert converter.rate("EUR", "INR") == Decimal("100.000000")
        assert abs(converter.rate("USD", "INR") - Decimal("90")) < Decimal("0.01")

    def test_fallback_conversion_is_about_ninety_rupees(self):
        provider = make_provider(lambda request: httpx.Response(500))
        converter = CurrencyConverter(provider, RateCache(ttl=60), "INR", clock=FakeClock())
        assert abs(converter.rate("USD", "INR") - Decimal("90")) < Decimal("0.01")


# ===== ENDPOINTS =====

class TestCurrencyEndpoints:

    def test_supported(self, client):
        response = client.get("/currency/supported")
        assert response.status_code == 200
        codes = [c["code"] for c in response.json()["currencies"]]
        assert "INR" in codes and "BND" in codes

    def test_rates(self, client):
        response = client.get("/currency/rates")
        assert response.status_code == 200
        data = response.json()
        assert data["base_currency"] == "INR"
        assert Decimal(data["home_per_unit"]["USD"]) == Decimal("80.0000")

    def test_convert(self, client):
        response = client.get("/currency/convert", params={"amount": "10", "from": "USD"})
        assert response.status_code == 200
        assert Decimal(response.json()["converted_amount"]) == Decimal("800.00")

    def test_unsupported_currency(self, client):
        response = client.get("/currency/convert", params={"amount": "10", "from": "XYZ"})
        assert response.status_code == 400
