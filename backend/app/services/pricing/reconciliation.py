"""Reconciliation service — compares declared vs recomputed totals across providers.

Lifecycle of one request (nothing persists between requests):

    build_input_from_enhancements → compute_local → (done | reconcile via LLM → done)

- build_input_from_enhancements: derives each provider's declared and
  recomputed monthly totals and converts both into the target currency,
  concurrently and fail-fast, through the injected converter.
- compute_local: flags declared/recomputed mismatches beyond the threshold
  (plus an absolute floor in risk mode), ranks providers against the
  cheapest, and builds summary statistics. Engine = "local-only".
- reconcile: compute_local plus ONE batched advisor call for
  recommendations. Local numbers always win; an LLM failure degrades to the
  local-only result.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, Sequence

from app.config import settings as app_settings
from app.schemas.enhancement import EnhancedQuote
from app.schemas.reconciliation import ReconciliationRequest
from app.services.currency_converter import CurrencyConverter, currency_converter
from app.services.errors import LLMError
from app.services.numeric import (
    arg_max,
    arg_min,
    clamp01,
    mean,
    median,
    parse_numeric_value,
    round2,
    round4,
    std_dev,
)
from app.services.pricing.advisor import (
    AdvisorOutput,
    ReconciliationAdvisor,
    reconciliation_advisor,
)
from app.services.pricing.config import pricing_config
from app.services.pricing.enhancements import contract_months_or_default
from app.services.pricing.extractors import price_from_enhancement

logger = logging.getLogger(__name__)

cfg = pricing_config

LOCAL_ENGINE = "local-only"


# ---------- Data structures ----------


@dataclass
class ReconciliationSettings:
    currency: str
    threshold: float = cfg.reconciliation.threshold
    risk_mode: bool = False


@dataclass
class Coverage:
    includes: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    double_counting_risk: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "includes": self.includes,
            "missing": self.missing,
            "doubleCountingRisk": self.double_counting_risk,
        }


@dataclass
class ProviderInput:
    """One provider's totals, already normalized to the reconciliation currency."""

    provider: str
    declared_total: float | None
    recomputed_total: float | None
    original_monthly_total: float | None
    original_currency: str
    confidence: float = cfg.reconciliation.default_confidence
    coverage: Coverage = field(default_factory=Coverage)
    quote_type: str = "all-inclusive"


@dataclass
class ReconciliationInput:
    settings: ReconciliationSettings
    providers: list[ProviderInput] = field(default_factory=list)


@dataclass
class Discrepancy:
    provider: str
    declared_total: float
    recomputed_total: float
    difference: float
    ratio: float
    reason: str  # "relative" | "absolute"

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "declaredTotal": self.declared_total,
            "recomputedTotal": self.recomputed_total,
            "difference": self.difference,
            "ratio": self.ratio,
            "reason": self.reason,
        }


@dataclass
class ReconciliationItem:
    provider: str
    total: float
    delta: float
    pct: float
    within_threshold: bool
    confidence: float
    notes: list[str] = field(default_factory=list)
    risk_adjusted_total: float | None = None

    def to_dict(self) -> dict:
        d = {
            "provider": self.provider,
            "total": self.total,
            "delta": self.delta,
            "pct": self.pct,
            "withinThreshold": self.within_threshold,
            "confidence": self.confidence,
            "notes": self.notes,
        }
        if self.risk_adjusted_total is not None:
            d["riskAdjustedTotal"] = self.risk_adjusted_total
        return d


@dataclass
class ReconciliationSummary:
    currency: str
    cheapest: str = "none"
    most_expensive: str = "none"
    average: float = 0.0
    median: float = 0.0
    std_dev: float = 0.0
    within_threshold_count: int = 0

    def to_dict(self) -> dict:
        return {
            "currency": self.currency,
            "cheapest": self.cheapest,
            "mostExpensive": self.most_expensive,
            "average": self.average,
            "median": self.median,
            "stdDev": self.std_dev,
            "withinThresholdCount": self.within_threshold_count,
        }


@dataclass
class ExcludedProvider:
    provider: str
    reason: str

    def to_dict(self) -> dict:
        return {"provider": self.provider, "reason": self.reason}


@dataclass
class ReconciliationMetadata:
    threshold: float
    risk_mode: bool
    currency: str
    generated_at: str
    engine: str = LOCAL_ENGINE

    def to_dict(self) -> dict:
        return {
            "threshold": self.threshold,
            "riskMode": self.risk_mode,
            "currency": self.currency,
            "generatedAt": self.generated_at,
            "engine": self.engine,
        }


@dataclass
class ReconciliationResult:
    items: list[ReconciliationItem]
    summary: ReconciliationSummary
    discrepancies: list[Discrepancy]
    excluded: list[ExcludedProvider]
    metadata: ReconciliationMetadata
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "items": [i.to_dict() for i in self.items],
            "summary": self.summary.to_dict(),
            "discrepancies": [d.to_dict() for d in self.discrepancies],
            "recommendations": list(self.recommendations),
            "excluded": [e.to_dict() for e in self.excluded],
            "metadata": self.metadata.to_dict(),
        }


# ---------- Pure helpers ----------


def declared_total(enhancement: EnhancedQuote) -> float | None:
    """Provider-reported monthly total, in the enhancement's own currency.

    ``monthlyCostBreakdown.total`` → ``finalTotal`` → breakdown base + enhancements
    → ``baseQuote.monthlyTotal`` + ``totalEnhancement``.
    """
    breakdown = enhancement.monthly_cost_breakdown
    if breakdown is not None:
        total = parse_numeric_value(breakdown.total)
        if total is not None:
            return total
    final_total = parse_numeric_value(enhancement.final_total)
    if final_total is not None:
        return final_total
    if breakdown is not None:
        base = parse_numeric_value(breakdown.base_cost)
        if base is not None:
            return base + (parse_numeric_value(breakdown.enhancements) or 0.0)
    base = parse_numeric_value(enhancement.base_quote.monthly_total)
    if base is not None:
        return base + (parse_numeric_value(enhancement.total_enhancement) or 0.0)
    return None


def has_critical_missing(missing: Sequence[str]) -> bool:
    lowered = [str(m or "").lower() for m in missing]
    return any(keyword in m for m in lowered for keyword in cfg.coverage.critical_keywords)


def build_notes(coverage: Coverage) -> list[str]:
    notes = []
    rules = cfg.coverage
    if coverage.missing:
        shown = ", ".join(coverage.missing[:rules.max_missing_in_notes])
        more = "…" if len(coverage.missing) > rules.max_missing_in_notes else ""
        notes.append(f"Missing: {shown}{more}")
    if coverage.double_counting_risk:
        shown = ", ".join(coverage.double_counting_risk[:rules.max_risks_in_notes])
        more = "…" if len(coverage.double_counting_risk) > rules.max_risks_in_notes else ""
        notes.append(f"Double-counting risk: {shown}{more}")
    return notes


def unique_notes(notes: Sequence[str]) -> list[str]:
    seen = set()
    out = []
    for note in notes:
        key = (note or "").strip()
        if key and key not in seen:
            seen.add(key)
            out.append(key)
    return out


def find_discrepancy(p: ProviderInput, settings: ReconciliationSettings) -> Discrepancy | None:
    """Flag a declared/recomputed mismatch.

    Relative check: |declared - recomputed| / max(min(declared, recomputed), 1)
    must not exceed the threshold; a ratio exactly at the threshold passes.
    In risk mode any absolute difference above the floor is also flagged.
    """
    if p.declared_total is None or p.recomputed_total is None:
        return None
    difference = p.recomputed_total - p.declared_total
    denominator = max(min(p.declared_total, p.recomputed_total), 1.0)
    ratio = abs(difference) / denominator

    reason = None
    if ratio - settings.threshold > cfg.reconciliation.ratio_epsilon:
        reason = "relative"
    elif settings.risk_mode and round2(abs(difference)) > cfg.reconciliation.risk_absolute_floor:
        reason = "absolute"
    if reason is None:
        return None

    return Discrepancy(
        provider=p.provider,
        declared_total=round2(p.declared_total),
        recomputed_total=round2(p.recomputed_total),
        difference=round2(difference),
        ratio=round4(ratio),
        reason=reason,
    )


def summarize(items: Sequence[ReconciliationItem], currency: str) -> ReconciliationSummary:
    if not items:
        return ReconciliationSummary(currency=currency)
    totals = [i.total for i in items]
    return ReconciliationSummary(
        currency=currency,
        cheapest=items[arg_min(totals)].provider,
        most_expensive=items[arg_max(totals)].provider,
        average=round2(mean(totals)),
        median=round2(median(totals)),
        std_dev=round2(std_dev(totals)),
        within_threshold_count=sum(1 for i in items if i.within_threshold),
    )


def _provider_key(index: int, enhancement: EnhancedQuote) -> str:
    return (enhancement.provider or enhancement.base_quote.provider or f"provider-{index + 1}").lower()


# ---------- Service ----------


class ReconciliationService:
    """Orchestrates input building, local computation and the optional LLM pass."""

    def __init__(
        self,
        converter: CurrencyConverter | None = None,
        advisor: ReconciliationAdvisor | None = None,
    ):
        self._converter = converter or currency_converter
        self._advisor = advisor or reconciliation_advisor

    async def build_input_from_enhancements(
        self,
        enhancements: Sequence[EnhancedQuote] | Mapping[str, EnhancedQuote],
        target_currency: str,
        threshold: float | None = None,
        risk_mode: bool | None = None,
        contract_months: int | None = None,
    ) -> ReconciliationInput:
        """Normalize every enhancement into the target currency.

        Amounts without a source currency are taken as already in the target
        currency. Raises ConversionError if any conversion fails.
        """
        if isinstance(enhancements, Mapping):
            pairs = [(str(k).lower(), v) for k, v in enhancements.items()]
        else:
            pairs = [(_provider_key(i, e), e) for i, e in enumerate(enhancements)]

        target = target_currency.strip().upper()
        settings = ReconciliationSettings(
            currency=target,
            threshold=cfg.reconciliation.threshold if threshold is None else threshold,
            risk_mode=bool(risk_mode),
        )
        months = contract_months_or_default(contract_months)

        # (provider, enhancement, declared, recomputed, source currency), amounts unconverted
        raw = []
        requests = []
        for provider, enh in pairs:
            source = (enh.source_currency or target).strip().upper()
            declared = declared_total(enh)
            recomputed = price_from_enhancement(provider, enh, months)
            raw.append((provider, enh, declared, recomputed, source))
            requests.extend(
                (amount, source, target) for amount in (declared, recomputed) if amount is not None
            )

        converted = iter(await self._converter.convert_many(requests))

        providers = []
        for provider, enh, declared, recomputed, source in raw:
            declared_norm = next(converted) if declared is not None else None
            recomputed_norm = next(converted) if recomputed is not None else None
            overlap = enh.overlap_analysis
            confidence = parse_numeric_value(enh.overall_confidence)
            providers.append(ProviderInput(
                provider=provider,
                declared_total=declared_norm,
                recomputed_total=recomputed_norm,
                original_monthly_total=declared,
                original_currency=source,
                confidence=cfg.reconciliation.default_confidence if confidence is None else confidence,
                coverage=Coverage(
                    includes=list(overlap.provider_includes) if overlap else [],
                    missing=list(overlap.provider_missing) if overlap else [],
                    double_counting_risk=list(overlap.double_counting_risk) if overlap else [],
                ),
                quote_type=enh.quote_type,
            ))

        return ReconciliationInput(settings=settings, providers=providers)

    def compute_local(self, recon_input: ReconciliationInput) -> ReconciliationResult:
        """Deterministic reconciliation with no external calls."""
        settings = recon_input.settings
        discrepancies = []
        excluded = []
        ranked = []

        for p in recon_input.providers:
            discrepancy = find_discrepancy(p, settings)
            if discrepancy is not None:
                discrepancies.append(discrepancy)
            if p.recomputed_total is None:
                excluded.append(ExcludedProvider(
                    provider=p.provider,
                    reason="Price not extractable: no base quote total",
                ))
                continue
            ranked.append(p)

        items = []
        if ranked:
            cheapest = min(round2(p.recomputed_total) for p in ranked)
            for p in ranked:
                total = round2(p.recomputed_total)
                delta = round2(total - cheapest)
                pct = round4(delta / cheapest) if cheapest > 0 else 0.0
                item = ReconciliationItem(
                    provider=p.provider,
                    total=total,
                    delta=delta,
                    pct=pct,
                    within_threshold=(
                        pct - settings.threshold <= cfg.reconciliation.ratio_epsilon
                        and not has_critical_missing(p.coverage.missing)
                    ),
                    confidence=clamp01(p.confidence),
                    notes=build_notes(p.coverage),
                )
                # Risk-adjusted view never changes the raw ranking
                if settings.risk_mode:
                    penalty = clamp01((1 - item.confidence) * cfg.reconciliation.risk_penalty_factor)
                    item.risk_adjusted_total = round2(item.total * (1 + penalty))
                items.append(item)

        result = ReconciliationResult(
            items=items,
            summary=summarize(items, settings.currency),
            discrepancies=discrepancies,
            excluded=excluded,
            metadata=ReconciliationMetadata(
                threshold=settings.threshold,
                risk_mode=settings.risk_mode,
                currency=settings.currency,
                generated_at=datetime.now(timezone.utc).isoformat(),
            ),
        )
        logger.info(
            f"Local reconciliation: {len(items)} ranked, {len(discrepancies)} discrepancies, "
            f"{len(excluded)} excluded ({settings.currency})"
        )
        return result

    async def reconcile(self, recon_input: ReconciliationInput) -> ReconciliationResult:
        """compute_local + one advisor call; falls back to local-only on LLMError."""
        local = self.compute_local(recon_input)
        try:
            advice = await self._advisor.advise(self._advisor_payload(recon_input, local))
        except LLMError as e:
            logger.warning(f"LLM reconciliation failed, returning local-only result: {e}")
            return local
        return self._merge(local, advice)

    async def run(self, request: ReconciliationRequest) -> ReconciliationResult:
        """Entry point for the HTTP boundary."""
        recon_input = await self.build_input_from_enhancements(
            request.enhancements,
            request.target_currency,
            threshold=request.threshold,
            risk_mode=request.risk_mode,
            contract_months=request.contract_months,
        )
        use_llm = request.use_llm
        if use_llm is None:
            use_llm = app_settings.reconciliation_use_llm
        if use_llm:
            return await self.reconcile(recon_input)
        return self.compute_local(recon_input)

    @staticmethod
    def _advisor_payload(recon_input: ReconciliationInput, local: ReconciliationResult) -> dict:
        settings = recon_input.settings
        return {
            "settings": {
                "currency": settings.currency,
                "threshold": settings.threshold,
                "riskMode": settings.risk_mode,
            },
            "providers": [
                {
                    "provider": p.provider,
                    "total": round2(p.recomputed_total) if p.recomputed_total is not None else None,
                    "confidence": clamp01(p.confidence),
                    "coverage": p.coverage.to_dict(),
                    "quoteType": p.quote_type,
                }
                for p in recon_input.providers
            ],
            "discrepancies": [d.to_dict() for d in local.discrepancies],
        }

    @staticmethod
    def _merge(local: ReconciliationResult, advice: AdvisorOutput) -> ReconciliationResult:
        """Local numbers win; LLM notes, recommendations and exclusions are added."""
        items = [
            ReconciliationItem(
                provider=i.provider,
                total=i.total,
                delta=i.delta,
                pct=i.pct,
                within_threshold=i.within_threshold,
                confidence=i.confidence,
                notes=unique_notes([*i.notes, *advice.notes.get(i.provider, [])]),
                risk_adjusted_total=i.risk_adjusted_total,
            )
            for i in local.items
        ]

        excluded = list(local.excluded)
        known = {e.provider for e in excluded} | {i.provider for i in items}
        for ex in advice.excluded:
            if ex["provider"] not in known:
                excluded.append(ExcludedProvider(provider=ex["provider"], reason=ex["reason"]))
                known.add(ex["provider"])

        return ReconciliationResult(
            items=items,
            summary=local.summary,
            discrepancies=local.discrepancies,
            excluded=excluded,
            metadata=ReconciliationMetadata(
                threshold=local.metadata.threshold,
                risk_mode=local.metadata.risk_mode,
                currency=local.metadata.currency,
                generated_at=local.metadata.generated_at,
                engine=advice.engine,
            ),
            recommendations=list(advice.recommendations),
        )


# Singleton
reconciliation_service = ReconciliationService()
