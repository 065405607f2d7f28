"""Single source for all pricing engine thresholds."""

from dataclasses import dataclass, field

from app.config import settings


@dataclass(frozen=True)
class ReconciliationThresholds:
    """When a declared vs recomputed total counts as a discrepancy."""
    threshold: float = settings.reconciliation_threshold      # 4% relative mismatch
    risk_absolute_floor: float = settings.reconciliation_risk_floor  # minor currency unit
    ratio_epsilon: float = 1e-9      # float noise allowance at the threshold boundary
    default_confidence: float = 0.5
    risk_penalty_factor: float = 0.10  # max +10% on risk-adjusted totals


@dataclass(frozen=True)
class EnhancementDefaults:
    """Contract and amortization defaults."""
    default_contract_months: int = 12
    local_office_amortization_months: int = 12  # one-time local-office items in totals


@dataclass(frozen=True)
class CoverageRules:
    """Keywords marking a missing coverage item as critical."""
    critical_keywords: tuple[str, ...] = (
        "social security", "mandatory", "statutory", "health insurance",
        "pension", "tax", "termination", "notice", "severance",
    )
    max_missing_in_notes: int = 3
    max_risks_in_notes: int = 2


@dataclass(frozen=True)
class LLMParams:
    """Parameters for the reconciliation and categorization LLM calls."""
    max_tokens: int = 1200
    temperature: float = 0.1
    json_mode: bool = True
    max_recommendations: int = 8
    max_recommendation_chars: int = 300


@dataclass(frozen=True)
class PricingConfig:
    """Top-level config aggregating all sub-configs."""
    reconciliation: ReconciliationThresholds = field(default_factory=ReconciliationThresholds)
    enhancements: EnhancementDefaults = field(default_factory=EnhancementDefaults)
    coverage: CoverageRules = field(default_factory=CoverageRules)
    llm: LLMParams = field(default_factory=LLMParams)


# Singleton, import this everywhere
pricing_config = PricingConfig()
