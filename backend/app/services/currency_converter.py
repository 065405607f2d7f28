"""Currency converter — live rates with static fallback, cached in Redis.

``convert`` never raises and reports failure in its result. ``convert_amount``
and ``convert_many`` are the strict entry points the pricing engine uses: any
failure raises ``ConversionError`` so mixed-currency totals can never slip
through.
"""

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Iterable

import httpx

from app.config import settings
from app.data.currency import EXCHANGE_RATES_TO_USD, same_currency
from app.services.cache_service import CacheService, cache_service
from app.services.errors import ConversionError

logger = logging.getLogger(__name__)


@dataclass
class ConversionData:
    source_currency: str
    target_currency: str
    source_amount: float
    target_amount: float
    exchange_rate: float
    provider: str


@dataclass
class ConversionResult:
    success: bool
    data: ConversionData | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.success:
            return {"success": True, "data": asdict(self.data)}
        return {"success": False, "error": self.error}


class RateProvider(ABC):
    """A source of exchange-rate tables keyed by base currency."""

    name: str = "base"
    cacheable: bool = True

    @abstractmethod
    async def get_rates(self, base_currency: str) -> dict[str, float]:
        """Return {currency_code: units of that currency per 1 base unit}."""


class ExchangeRateApiProvider(RateProvider):
    """open.er-api.com style ``/latest/{BASE}`` endpoint."""

    name = "exchangerate-api"

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self._base_url = base_url or settings.exchange_rate_api_url
        self._timeout = timeout or settings.exchange_rate_timeout_seconds
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def get_rates(self, base_currency: str) -> dict[str, float]:
        client = await self._get_client()
        resp = await client.get(f"/latest/{base_currency.upper()}")
        resp.raise_for_status()
        data = resp.json()
        if data.get("result") != "success" or not isinstance(data.get("rates"), dict):
            raise ValueError(f"Rate API error: {data.get('error-type', 'unexpected payload')}")
        return {code.upper(): float(rate) for code, rate in data["rates"].items()}

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


class StaticRateProvider(RateProvider):
    """Cross rates from the static USD table."""

    name = "static"
    cacheable = False

    async def get_rates(self, base_currency: str) -> dict[str, float]:
        base_to_usd = EXCHANGE_RATES_TO_USD.get(base_currency.upper())
        if not base_to_usd:
            raise ValueError(f"No static rate for {base_currency}")
        return {code: base_to_usd / usd for code, usd in EXCHANGE_RATES_TO_USD.items() if usd}


class CurrencyConverter:
    """Converts amounts through the first rate provider that knows both currencies."""

    def __init__(
        self,
        providers: list[RateProvider] | None = None,
        cache: CacheService | None = None,
    ):
        self._providers = providers if providers is not None else [
            ExchangeRateApiProvider(),
            StaticRateProvider(),
        ]
        self._cache = cache

    async def _rates(self, provider: RateProvider, base: str) -> dict[str, float]:
        if self._cache is not None and provider.cacheable:
            cached = await self._cache.get_rates(provider.name, base)
            if cached:
                return cached
        rates = await provider.get_rates(base)
        if self._cache is not None and provider.cacheable:
            await self._cache.set_rates(provider.name, base, rates)
        return rates

    async def convert(self, amount: float, source: str, target: str) -> ConversionResult:
        """Convert ``amount``; same-currency requests return immediately, untouched."""
        if not isinstance(amount, (int, float)) or isinstance(amount, bool) or not math.isfinite(amount):
            return ConversionResult(success=False, error=f"Invalid amount: {amount!r}")
        if not source or not target:
            return ConversionResult(success=False, error="Source and target currency are required")

        source_code = source.strip().upper()
        target_code = target.strip().upper()
        if same_currency(source_code, target_code):
            return ConversionResult(
                success=True,
                data=ConversionData(source_code, target_code, amount, amount, 1.0, "identity"),
            )

        errors = []
        for provider in self._providers:
            try:
                rates = await self._rates(provider, source_code)
                rate = rates.get(target_code)
                if rate is None or not math.isfinite(rate) or rate <= 0:
                    errors.append(f"{provider.name}: no rate for {target_code}")
                    continue
                return ConversionResult(
                    success=True,
                    data=ConversionData(
                        source_currency=source_code,
                        target_currency=target_code,
                        source_amount=amount,
                        target_amount=amount * rate,
                        exchange_rate=rate,
                        provider=provider.name,
                    ),
                )
            except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
                errors.append(f"{provider.name}: {e}")
                logger.warning(f"Rate provider {provider.name} failed for {source_code}->{target_code}: {e}")

        return ConversionResult(
            success=False,
            error=f"Currency conversion {source_code}->{target_code} failed: {'; '.join(errors)}",
        )

    async def convert_amount(self, amount: float, source: str, target: str) -> float:
        """Strict conversion: returns the target amount or raises ConversionError."""
        result = await self.convert(amount, source, target)
        if not result.success or result.data is None:
            raise ConversionError(result.error or "Currency conversion failed", source, target)
        target_amount = result.data.target_amount
        if not math.isfinite(target_amount):
            raise ConversionError(f"Non-finite conversion result for {source}->{target}", source, target)
        return target_amount

    async def convert_many(self, requests: Iterable[tuple[float, str, str]]) -> list[float]:
        """Run independent conversions concurrently; the first failure fails the batch."""
        return list(await asyncio.gather(
            *(self.convert_amount(amount, source, target) for amount, source, target in requests)
        ))

    async def close(self):
        for provider in self._providers:
            if isinstance(provider, ExchangeRateApiProvider):
                await provider.close()


# Singleton
currency_converter = CurrencyConverter(cache=cache_service)
