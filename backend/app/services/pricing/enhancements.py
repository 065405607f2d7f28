"""Monthly-equivalent cost of enhancement add-ons layered on a base quote."""

import logging
import re
from typing import Any, Iterator

from app.schemas.enhancement import EnhancedQuote
from app.services.numeric import parse_numeric_value, sum_positive
from app.services.pricing.config import pricing_config

logger = logging.getLogger(__name__)

cfg = pricing_config.enhancements

SUPPORTED_PROVIDERS: frozenset[str] = frozenset({
    "deel", "remote", "rippling", "rivermate", "skuad",
    "velocity", "oyster", "playroll", "omnipresent",
})

# Deel quotes carry their own severance accrual line
_SEVERANCE_INCLUDED_PROVIDERS: frozenset[str] = frozenset({"deel"})

THIRTEENTH_PATTERN = re.compile(r"13(?:th)?|thirteenth|aguinaldo", re.IGNORECASE)
FOURTEENTH_PATTERN = re.compile(r"14(?:th)?|fourteenth", re.IGNORECASE)


def contract_months_or_default(contract_months: Any) -> int | float:
    """Clamp to at least 1; non-numeric or non-finite values use the default contract."""
    months = parse_numeric_value(contract_months)
    if months is None:
        months = cfg.default_contract_months
    return max(1, months)


def amortize(amount: Any, contract_months: Any) -> float:
    """Spread a one-time amount evenly across the contract."""
    parsed = parse_numeric_value(amount)
    if parsed is None or parsed <= 0:
        return 0.0
    return parsed / contract_months_or_default(contract_months)


def resolve_enhancement_monthly(total_value: Any, monthly_value: Any, months: int | float) -> float:
    """Prefer a positive monthly figure, else spread the total across ``months``."""
    monthly = parse_numeric_value(monthly_value)
    if monthly is not None and monthly > 0:
        return monthly
    total = parse_numeric_value(total_value)
    if total is not None and total > 0 and months > 0:
        return total / months
    return 0.0


def _iter_names(value: Any) -> Iterator[str]:
    """Yield every key and string value in a nested payload, plus a de-snaked variant."""
    stack = [value]
    while stack:
        current = stack.pop()
        if isinstance(current, str):
            name = current.strip()
            if name:
                yield name
                normalized = " ".join(re.sub(r"[_-]+", " ", name).split())
                if normalized != name:
                    yield normalized
        elif isinstance(current, dict):
            for key, val in current.items():
                stack.append(str(key))
                stack.append(val)
        elif isinstance(current, (list, tuple)):
            stack.extend(current)


def base_quote_contains_pattern(enhancement: EnhancedQuote | None, pattern: re.Pattern) -> bool:
    """True if the provider's original response already names a matching item."""
    if enhancement is None:
        return False
    original = enhancement.base_quote.original_response
    if not isinstance(original, dict):
        return False
    return any(pattern.search(name) for name in _iter_names(original))


def compute_enhancement_addons(
    provider_id: str,
    enhancement: EnhancedQuote | None,
    contract_months: Any,
) -> float:
    """Monthly-equivalent cost of all enhancement items not already in the base quote.

    Recurring items count in full; one-time items are amortized over
    ``max(contract_months, 1)``. Unsupported providers contribute 0.
    """
    if enhancement is None:
        return 0.0
    provider = (provider_id or "").lower()
    if provider not in SUPPORTED_PROVIDERS:
        logger.debug(f"No enhancement mapping for provider {provider_id!r}; add-ons = 0")
        return 0.0

    months = contract_months_or_default(contract_months)
    enh = enhancement.enhancements
    total = 0.0

    # 1. Termination provisions
    termination = [enh.notice_period_cost]
    if provider not in _SEVERANCE_INCLUDED_PROVIDERS:
        termination.insert(0, enh.severance_provision)
    for item in termination:
        if item is None or item.is_already_included:
            continue
        total += resolve_enhancement_monthly(item.total_amount, item.monthly_amount, months)

    # 2. 13th / 14th salaries
    salaries = (
        (enh.thirteenth_salary, THIRTEENTH_PATTERN),
        (enh.fourteenth_salary, FOURTEENTH_PATTERN),
    )
    for item, pattern in salaries:
        if item is None or item.is_already_included:
            continue
        if base_quote_contains_pattern(enhancement, pattern):
            continue
        total += resolve_enhancement_monthly(item.yearly_amount, item.monthly_amount, months)

    # 3. Vacation bonus: monthly counts in full, anything else is one-time
    bonus = enh.vacation_bonus
    if bonus is not None and not bonus.is_already_included:
        if bonus.frequency == "monthly":
            total += sum_positive([bonus.amount])
        else:
            total += amortize(bonus.amount, months)

    # 4. Recurring allowances
    for allowance in (enh.transportation_allowance, enh.remote_work_allowance, enh.meal_vouchers):
        if allowance is None or allowance.is_already_included:
            continue
        total += sum_positive([allowance.monthly_amount])

    if enh.additional_contributions:
        total += sum_positive(enh.additional_contributions.values())
    if enh.recurring_fees:
        total += sum_positive(enh.recurring_fees.values())

    # 5. One-time items
    if enh.medical_exam is not None and enh.medical_exam.required:
        total += amortize(enh.medical_exam.estimated_cost, months)
    if enh.one_time_fees:
        total += sum(amortize(amount, months) for amount in enh.one_time_fees.values())

    return total
