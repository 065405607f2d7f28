from typing import Any

from pydantic import BaseModel, Field

from app.schemas.enhancement import EnhancedQuote
from app.schemas.quote import CamelModel


class ReconciliationRequest(CamelModel):
    enhancements: list[EnhancedQuote] | dict[str, EnhancedQuote]
    target_currency: str = Field(min_length=3, max_length=3)
    threshold: float | None = Field(default=None, ge=0)
    risk_mode: bool | None = None
    use_llm: bool | None = Field(default=None, alias="useLLM")
    contract_months: int | None = None

    model_config = {"extra": "ignore"}


class CostItem(CamelModel):
    key: str = ""
    name: str
    monthly_amount: float


class CategorizeCostsRequest(CamelModel):
    provider: str = Field(min_length=1)
    country: str = Field(min_length=1)
    currency: str = Field(min_length=1)
    cost_items: list[CostItem]


class CategorizedCosts(CamelModel):
    base_salary: dict[str, float] = Field(default_factory=dict)
    statutory_mandatory: dict[str, float] = Field(default_factory=dict)
    allowances_benefits: dict[str, float] = Field(default_factory=dict)
    termination_costs: dict[str, float] = Field(default_factory=dict)
    one_time_fees: dict[str, float] = Field(default_factory=dict)


class CurrencyConvertRequest(BaseModel):
    amount: float
    source_currency: str = Field(min_length=3, max_length=3)
    target_currency: str = Field(min_length=3, max_length=3)


class ErrorResponse(BaseModel):
    error: str
    stage: str | None = None
    details: Any = None
