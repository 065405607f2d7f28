"""Reshape raw vendor payloads into a canonical Quote.

These are the last resort of price extraction: when none of the known total
fields is usable, the payload is rebuilt line by line and its total taken.
Every transform accepts any shape and never raises.
"""

from typing import Any, Iterable

from app.schemas.quote import Quote, QuoteCost
from app.services.numeric import parse_numeric_value, round2


def dig(obj: Any, *path: str | int) -> Any:
    """Walk nested dicts/lists, returning None at the first missing step."""
    current = obj
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, (list, tuple)) or not -len(current) <= step < len(current):
                return None
            current = current[step]
        elif isinstance(current, dict):
            current = current.get(step)
        else:
            return None
    return current


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _line_items(
    items: Iterable[Any],
    country: str,
    country_code: str,
    frequency: str = "monthly",
) -> list[QuoteCost]:
    costs = []
    for item in items:
        if not isinstance(item, dict):
            continue
        amount = parse_numeric_value(item.get("amount"))
        if amount is None:
            continue
        name = _text(item.get("name")) or _text(item.get("label")) or "Unnamed cost"
        costs.append(QuoteCost(
            name=name,
            amount=round2(amount),
            frequency=_text(item.get("frequency")) or frequency,
            country=country or None,
            country_code=country_code or None,
        ))
    return costs


def _monthly_sum(costs: list[QuoteCost]) -> float:
    return sum(
        parse_numeric_value(c.amount) or 0.0
        for c in costs
        if c.frequency != "one_time"
    )


def transform_remote_response(raw: Any) -> Quote:
    """Remote.com ``employment.employer_currency_costs`` payload."""
    employment = dig(raw, "employment")
    costs = dig(employment, "employer_currency_costs")
    country = _text(dig(employment, "country", "name"))
    country_code = _text(dig(employment, "country", "code"))

    items = _line_items(
        _as_list(dig(costs, "monthly_contributions_breakdown"))
        + _as_list(dig(costs, "extra_statutory_payments_breakdown")),
        country,
        country_code,
    )
    total = parse_numeric_value(dig(costs, "monthly_total")) or 0.0

    return Quote(
        provider="remote",
        salary=parse_numeric_value(dig(costs, "monthly_gross_salary")) or 0.0,
        currency=_text(dig(costs, "currency", "code")),
        country=country,
        country_code=country_code,
        total_costs=round2(total),
        employer_costs=round2(total),
        costs=items,
    )


def transform_rivermate_response(raw: Any) -> Quote:
    """Rivermate payload: salary + ``taxItems`` + ``accrualsProvision``."""
    country = _text(dig(raw, "country"))
    country_code = _text(dig(raw, "country_code")) or _text(dig(raw, "countryCode"))
    salary = parse_numeric_value(dig(raw, "salary")) or 0.0

    items = _line_items(_as_list(dig(raw, "taxItems")), country, country_code)
    accruals = parse_numeric_value(dig(raw, "accrualsProvision"))
    if accruals:
        items.append(QuoteCost(
            name="Accruals Provision",
            amount=round2(accruals),
            country=country or None,
            country_code=country_code or None,
        ))
    management_fee = parse_numeric_value(dig(raw, "managementFee"))
    if management_fee:
        items.append(QuoteCost(
            name="Management Fee",
            amount=round2(management_fee),
            country=country or None,
            country_code=country_code or None,
        ))

    employer = _monthly_sum(items)
    return Quote(
        provider="rivermate",
        salary=salary,
        currency=_text(dig(raw, "currency")),
        country=country,
        country_code=country_code,
        total_costs=round2(salary + employer),
        employer_costs=round2(employer),
        costs=items,
    )


def transform_oyster_response(raw: Any) -> Quote:
    """Oyster payload: salary + ``contributions`` list."""
    country = _text(dig(raw, "country"))
    country_code = _text(dig(raw, "country_code")) or _text(dig(raw, "countryCode"))
    salary = parse_numeric_value(dig(raw, "salary")) or 0.0

    items = _line_items(_as_list(dig(raw, "contributions")), country, country_code)
    employer = _monthly_sum(items)
    return Quote(
        provider="oyster",
        salary=salary,
        currency=_text(dig(raw, "currency")),
        country=country,
        country_code=country_code,
        total_costs=round2(salary + employer),
        employer_costs=round2(employer),
        costs=items,
    )


def transform_generic_response(raw: Any, provider: str = "") -> Quote:
    """Any payload with a ``salary`` and a ``costs`` list (Deel-style)."""
    country = _text(dig(raw, "country"))
    country_code = _text(dig(raw, "country_code")) or _text(dig(raw, "countryCode"))
    salary = parse_numeric_value(dig(raw, "salary")) or 0.0

    items = _line_items(_as_list(dig(raw, "costs")), country, country_code)
    employer = _monthly_sum(items)
    return Quote(
        provider=provider or _text(dig(raw, "provider")),
        salary=salary,
        currency=_text(dig(raw, "currency")),
        country=country,
        country_code=country_code,
        total_costs=round2(salary + employer),
        employer_costs=round2(employer),
        costs=items,
    )
