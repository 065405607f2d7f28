from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

# Vendor payloads mix numbers and formatted strings; numeric helpers parse them later.
Amount = float | str | None


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase keys, keeps unknown vendor fields."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "extra": "allow"}


class QuoteCost(CamelModel):
    name: str
    amount: Amount = 0
    frequency: str = "monthly"  # "monthly" | "one_time"
    country: str | None = None
    country_code: str | None = None


class Quote(CamelModel):
    provider: str = ""
    salary: Amount = None
    currency: str = ""
    country: str = ""
    country_code: str = ""
    total_costs: Amount = 0
    employer_costs: Amount = 0
    costs: list[QuoteCost] = Field(default_factory=list)


class LocalOfficeEnrichRequest(CamelModel):
    quote: Quote
    currency: str = Field(min_length=3, max_length=3)
    country_name: str | None = None
    local_office_info: dict[str, Any] | None = None


class ProviderPriceRequest(CamelModel):
    quotes: dict[str, Any]
    enhancements: dict[str, Any] | None = None
    contract_months: int = 12
