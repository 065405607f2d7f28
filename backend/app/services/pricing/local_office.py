"""Appends fixed per-country office costs to a quote.

Default-table values are converted into the quote currency (USD fields from
USD, the rest from the country's own currency). Caller-supplied office info
is assumed to be in the quote currency already and is never converted.
Line items are de-duplicated by name, so enriching twice is a no-op.
"""

import logging
from types import MappingProxyType
from typing import Any, Mapping

from app.data.currency import get_currency_for_country, resolve_country_code, same_currency
from app.data.local_office import (
    get_field_currency,
    get_local_office_data,
    has_local_office_data,
    is_not_applicable,
)
from app.schemas.quote import Quote, QuoteCost
from app.services.currency_converter import CurrencyConverter, currency_converter
from app.services.numeric import parse_money, round2
from app.services.pricing.config import pricing_config

logger = logging.getLogger(__name__)

cfg = pricing_config.enhancements

# field → (line item label, frequency)
FIELD_LABELS: Mapping[str, tuple[str, str]] = MappingProxyType({
    "mealVoucher": ("Meal Voucher (Local Office)", "monthly"),
    "transportation": ("Transportation (Local Office)", "monthly"),
    "wfh": ("Remote Work Allowance (Local Office)", "monthly"),
    "healthInsurance": ("Health Insurance (Local Office)", "monthly"),
    "monthlyPaymentsToLocalOffice": ("Local Office Monthly Payments", "monthly"),
    "vat": ("VAT (Local Office)", "monthly"),
    "preEmploymentMedicalTest": ("Pre-employment Medical Test (Local Office)", "one_time"),
    "drugTest": ("Drug Test (Local Office)", "one_time"),
    "backgroundCheckViaDeel": ("Background Check (Local Office)", "one_time"),
})

# Disclosure-only, never a charge
_INFORMATIONAL_FIELDS = frozenset({"vat"})


def monthly_equivalent(amount: float, frequency: str) -> float:
    if frequency == "one_time":
        return amount / cfg.local_office_amortization_months
    return amount


async def enrich_quote_with_local_office(
    quote: Quote,
    *,
    currency: str,
    country_name: str | None = None,
    local_office_info: Mapping[str, Any] | None = None,
    converter: CurrencyConverter | None = None,
) -> Quote:
    """Return a copy of ``quote`` with local-office line items and updated totals.

    Unknown countries and countries without an office dataset return the
    quote unchanged. Raises ConversionError if any required conversion fails.
    """
    converter = converter or currency_converter
    country_code = resolve_country_code(country_name) or resolve_country_code(quote.country)
    if not country_code or not has_local_office_data(country_code):
        logger.debug(f"No local office data for {country_name or quote.country!r}; quote unchanged")
        return quote

    user_provided = bool(local_office_info)
    source_info = dict(local_office_info) if user_provided else get_local_office_data(country_code)
    local_currency = get_currency_for_country(country_code)

    # (field, raw amount, source currency or None when no conversion is needed)
    pending = []
    for field, (_label, _frequency) in FIELD_LABELS.items():
        if field in _INFORMATIONAL_FIELDS:
            continue
        value = source_info.get(field)
        if is_not_applicable(value):
            continue
        amount = parse_money(value)
        if amount <= 0:
            continue

        source = None
        if not user_provided:
            source = "USD" if get_field_currency(field, country_code) == "usd" else local_currency
            if not source or same_currency(source, currency):
                source = None
        pending.append((field, amount, source))

    to_convert = [(amount, source, currency) for _, amount, source in pending if source]
    converted = iter(await converter.convert_many(to_convert))

    existing = list(quote.costs)
    seen = {cost.name for cost in existing}
    added = []
    for field, amount, source in pending:
        resolved = next(converted) if source else amount
        if resolved <= 0:
            continue
        label, frequency = FIELD_LABELS[field]
        if label in seen:
            continue
        seen.add(label)
        added.append(QuoteCost(
            name=label,
            amount=round2(resolved),
            frequency=frequency,
            country=quote.country or None,
            country_code=quote.country_code or None,
        ))

    if not added:
        return quote.model_copy(update={"costs": existing})

    increment = sum(monthly_equivalent(c.amount, c.frequency) for c in added)
    logger.info(f"Local office enrichment added {len(added)} items ({country_code}, {currency})")
    return quote.model_copy(update={
        "costs": existing + added,
        "total_costs": round2(parse_money(quote.total_costs) + increment),
        "employer_costs": round2(parse_money(quote.employer_costs) + increment),
    })
