"""Provider price extractors — one comparable monthly cost per provider quote.

Each extractor has the signature::

    extract(raw_quote, enhancement, contract_months) -> float | None

With an enhancement record the raw quote is ignored and the price is the
enhancement's own base + add-on split, so every provider is priced with the
same enhancement math. Without one, the raw payload is searched through a
priority-ordered chain of candidates (known total fields, a manual
reconstruction, a full transform) until one yields a positive number.

``None`` means "not comparable" and must exclude the provider from ranking.
"""

import logging
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping

from app.schemas.enhancement import EnhancedQuote
from app.services.numeric import parse_numeric_value, pick_positive
from app.services.pricing.enhancements import compute_enhancement_addons
from app.services.pricing.transforms import (
    dig,
    transform_generic_response,
    transform_oyster_response,
    transform_remote_response,
    transform_rivermate_response,
)

logger = logging.getLogger(__name__)

Candidate = Callable[[], Any]
Extractor = Callable[[Any, EnhancedQuote | None, int], float | None]

# Known total fields per provider, highest priority first
PROVIDER_TOTAL_FIELDS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "deel": ("total_costs", "totalCosts", "total", "monthly_total"),
    "remote": ("monthly_total", "total", "total_costs", "totalCosts"),
    "rippling": ("total_monthly_cost", "monthly_total", "total_costs", "totalCosts", "total"),
    "rivermate": ("total", "total_costs", "totalCosts"),
    "skuad": ("total_monthly_cost", "total_costs", "totalCosts", "total"),
    "velocity": ("total_monthly_cost", "monthly_total", "total_costs", "totalCosts", "total"),
    "oyster": ("total", "total_costs", "totalCosts"),
    "playroll": ("total_costs", "totalCosts", "monthly_total", "total"),
    "omnipresent": ("total_costs", "totalCosts", "total"),
})


def first_positive(candidates: Iterable[Candidate]) -> float | None:
    """Evaluate candidates in order; return the first strictly positive result."""
    for candidate in candidates:
        try:
            value = pick_positive(candidate())
        except (AttributeError, TypeError, ValueError, KeyError, IndexError) as e:
            logger.debug(f"Price candidate skipped: {e}")
            continue
        if value is not None:
            return value
    return None


def _first_finite(*candidates: Candidate) -> float | None:
    for candidate in candidates:
        value = parse_numeric_value(candidate())
        if value is not None:
            return value
    return None


def price_from_enhancement(
    provider_id: str,
    enhancement: EnhancedQuote,
    contract_months: int,
) -> float | None:
    """Monthly price of an enhanced quote: base component + enhancement component.

    Base: ``monthlyCostBreakdown.baseCost`` → ``baseQuote.monthlyTotal``; with
    neither present the quote is not comparable.
    Enhancement: ``monthlyCostBreakdown.enhancements`` → ``totalEnhancement`` →
    computed add-ons.
    """
    breakdown = enhancement.monthly_cost_breakdown
    base = _first_finite(
        lambda: breakdown.base_cost if breakdown else None,
        lambda: enhancement.base_quote.monthly_total,
    )
    if base is None:
        return None
    extra = _first_finite(
        lambda: breakdown.enhancements if breakdown else None,
        lambda: enhancement.total_enhancement,
        lambda: compute_enhancement_addons(provider_id, enhancement, contract_months),
    ) or 0.0

    return base + extra


def _field_candidates(provider_id: str, raw: Any) -> list[Candidate]:
    return [lambda f=field: dig(raw, f) for field in PROVIDER_TOTAL_FIELDS[provider_id]]


# ---------- Per-provider candidate chains ----------


def _deel_chain(raw: Any) -> list[Candidate]:
    return [
        *_field_candidates("deel", raw),
        lambda: transform_generic_response(raw, "deel").total_costs,
    ]


def _remote_chain(raw: Any) -> list[Candidate]:
    return [
        lambda: dig(raw, "employment", "employer_currency_costs", "monthly_total"),
        *_field_candidates("remote", raw),
        lambda: dig(raw, "costs", "monthly_total"),
        lambda: transform_remote_response(raw).total_costs,
    ]


def _rivermate_manual(raw: Any) -> float:
    salary = parse_numeric_value(dig(raw, "salary")) or 0.0
    taxes = sum(
        parse_numeric_value(dig(item, "amount")) or 0.0
        for item in (dig(raw, "taxItems") or [])
    )
    accruals = parse_numeric_value(dig(raw, "accrualsProvision")) or 0.0
    return salary + taxes + accruals


def _rivermate_chain(raw: Any) -> list[Candidate]:
    return [
        *_field_candidates("rivermate", raw),
        lambda: _rivermate_manual(raw),
        lambda: transform_rivermate_response(raw).total_costs,
    ]


def _oyster_chain(raw: Any) -> list[Candidate]:
    return [
        *_field_candidates("oyster", raw),
        lambda: transform_oyster_response(raw).total_costs,
    ]


def _generic_chain(provider_id: str) -> Callable[[Any], list[Candidate]]:
    def chain(raw: Any) -> list[Candidate]:
        return [
            *_field_candidates(provider_id, raw),
            lambda: dig(raw, "employer_costs", "total"),
            lambda: transform_generic_response(raw, provider_id).total_costs,
        ]
    return chain


def _make_extractor(provider_id: str, chain: Callable[[Any], list[Candidate]]) -> Extractor:
    def extract(
        raw_quote: Any,
        enhancement: EnhancedQuote | None = None,
        contract_months: int = 12,
    ) -> float | None:
        if enhancement is not None:
            return price_from_enhancement(provider_id, enhancement, contract_months)
        if not isinstance(raw_quote, dict):
            return None
        return first_positive(chain(raw_quote))

    extract.__name__ = f"get_{provider_id}_provider_price"
    extract.__qualname__ = extract.__name__
    return extract


get_deel_provider_price = _make_extractor("deel", _deel_chain)
get_remote_provider_price = _make_extractor("remote", _remote_chain)
get_rippling_provider_price = _make_extractor("rippling", _generic_chain("rippling"))
get_rivermate_provider_price = _make_extractor("rivermate", _rivermate_chain)
get_skuad_provider_price = _make_extractor("skuad", _generic_chain("skuad"))
get_velocity_provider_price = _make_extractor("velocity", _generic_chain("velocity"))
get_oyster_provider_price = _make_extractor("oyster", _oyster_chain)
get_playroll_provider_price = _make_extractor("playroll", _generic_chain("playroll"))
get_omnipresent_provider_price = _make_extractor("omnipresent", _generic_chain("omnipresent"))

PROVIDER_PRICE_EXTRACTORS: Mapping[str, Extractor] = MappingProxyType({
    "deel": get_deel_provider_price,
    "remote": get_remote_provider_price,
    "rippling": get_rippling_provider_price,
    "rivermate": get_rivermate_provider_price,
    "skuad": get_skuad_provider_price,
    "velocity": get_velocity_provider_price,
    "oyster": get_oyster_provider_price,
    "playroll": get_playroll_provider_price,
    "omnipresent": get_omnipresent_provider_price,
})


def get_provider_price(
    provider_id: str,
    raw_quote: Any,
    enhancement: EnhancedQuote | None = None,
    contract_months: int = 12,
) -> float | None:
    """Dispatch to the provider's extractor. Unknown providers are not comparable."""
    extractor = PROVIDER_PRICE_EXTRACTORS.get((provider_id or "").lower())
    if extractor is None:
        logger.debug(f"No price extractor registered for {provider_id!r}")
        return None
    return extractor(raw_quote, enhancement, contract_months)


def extract_all_prices(
    raw_quotes: Mapping[str, Any],
    enhancements: Mapping[str, EnhancedQuote] | None = None,
    contract_months: int = 12,
) -> dict[str, float | None]:
    """Comparable monthly price for every provider in ``raw_quotes``."""
    enhancements = enhancements or {}
    return {
        provider: get_provider_price(provider, raw, enhancements.get(provider), contract_months)
        for provider, raw in raw_quotes.items()
    }
