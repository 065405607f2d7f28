"""Shared fakes for converter and LLM collaborators. No test touches the network."""

import pytest

from app.services.currency_converter import CurrencyConverter, RateProvider
from app.services.errors import LLMError
from app.services.llm_client import LLMCompletion

# Units of each currency per 1 USD
USD_RATES = {"USD": 1.0, "EUR": 0.5, "COP": 4000.0, "BRL": 5.0, "ARS": 1000.0}


class FakeRateProvider(RateProvider):
    """Cross rates from a fixed USD table; counts calls and can be told to fail."""

    def __init__(self, name: str = "fake", rates: dict | None = None, fail: bool = False):
        self.name = name
        self.rates = dict(USD_RATES if rates is None else rates)
        self.fail = fail
        self.calls = []

    async def get_rates(self, base_currency: str) -> dict[str, float]:
        self.calls.append(base_currency)
        if self.fail:
            raise ValueError(f"{self.name} is down")
        if base_currency not in self.rates:
            raise ValueError(f"unknown base {base_currency}")
        base = self.rates[base_currency]
        return {code: rate / base for code, rate in self.rates.items()}


class FakeLLMClient:
    """Returns a canned reply, or raises ``error`` when set."""

    def __init__(self, text: str = "{}", engine: str = "llm:fake", error: Exception | None = None):
        self.text = text
        self.engine = engine
        self.error = error
        self.calls = []

    async def generate(self, system: str, user: str, **kwargs) -> LLMCompletion:
        self.calls.append({"system": system, "user": user, **kwargs})
        if self.error is not None:
            raise self.error
        return LLMCompletion(text=self.text, engine=self.engine)


@pytest.fixture
def rate_provider():
    return FakeRateProvider()


@pytest.fixture
def converter(rate_provider):
    return CurrencyConverter(providers=[rate_provider])


@pytest.fixture
def failing_converter():
    return CurrencyConverter(providers=[FakeRateProvider(fail=True)])


@pytest.fixture
def failing_llm():
    return FakeLLMClient(error=LLMError("upstream timeout"))
