from typing import Any

from pydantic import Field

from app.schemas.quote import Amount, CamelModel


class TerminationComponent(CamelModel):
    monthly_amount: Amount = None
    total_amount: Amount = None
    explanation: str = ""
    confidence: float | None = None
    is_already_included: bool = False


class SalaryEnhancement(CamelModel):
    monthly_amount: Amount = None
    yearly_amount: Amount = None
    explanation: str = ""
    confidence: float | None = None
    is_already_included: bool = False


class BonusEnhancement(CamelModel):
    amount: Amount = None
    frequency: str = "yearly"  # "monthly" | "yearly" | "upon-termination"
    explanation: str = ""
    confidence: float | None = None
    is_already_included: bool = False


class AllowanceEnhancement(CamelModel):
    monthly_amount: Amount = None
    currency: str | None = None
    explanation: str = ""
    confidence: float | None = None
    is_already_included: bool = False
    is_mandatory: bool = False


class MedicalExamCosts(CamelModel):
    required: bool = False
    estimated_cost: Amount = None
    providers: list[str] = Field(default_factory=list)
    confidence: float | None = None


class Enhancements(CamelModel):
    severance_provision: TerminationComponent | None = None
    notice_period_cost: TerminationComponent | None = None
    probation_provision: TerminationComponent | None = None
    thirteenth_salary: SalaryEnhancement | None = None
    fourteenth_salary: SalaryEnhancement | None = None
    vacation_bonus: BonusEnhancement | None = None
    transportation_allowance: AllowanceEnhancement | None = None
    remote_work_allowance: AllowanceEnhancement | None = None
    meal_vouchers: AllowanceEnhancement | None = None
    medical_exam: MedicalExamCosts | None = None
    additional_contributions: dict[str, Amount] | None = None
    one_time_fees: dict[str, Amount] | None = None
    recurring_fees: dict[str, Amount] | None = None


class BaseQuote(CamelModel):
    """The provider's own quote, normalized, before any enhancement."""

    provider: str | None = None
    base_cost: Amount = None
    currency: str | None = None
    country: str | None = None
    monthly_total: Amount = None
    breakdown: dict[str, Amount] | None = None
    original_response: Any = None


class MonthlyCostBreakdown(CamelModel):
    base_cost: Amount = None
    enhancements: Amount = None
    total: Amount = None


class OverlapAnalysis(CamelModel):
    provider_includes: list[str] = Field(default_factory=list)
    provider_missing: list[str] = Field(default_factory=list)
    double_counting_risk: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class EnhancedQuote(CamelModel):
    provider: str | None = None
    base_quote: BaseQuote = Field(default_factory=BaseQuote)
    quote_type: str = "all-inclusive"  # "all-inclusive" | "statutory-only"
    enhancements: Enhancements = Field(default_factory=Enhancements)
    total_enhancement: Amount = None
    final_total: Amount = None
    monthly_cost_breakdown: MonthlyCostBreakdown | None = None
    overall_confidence: float | None = None
    overlap_analysis: OverlapAnalysis | None = None
    base_currency: str | None = None
    display_currency: str | None = None

    @property
    def source_currency(self) -> str | None:
        """Currency the monetary fields are expressed in."""
        return self.display_currency or self.base_currency or self.base_quote.currency
