"""Sorts a provider's cost line items into reporting buckets with one LLM call."""

import json
import logging
from typing import Sequence

from app.schemas.reconciliation import CategorizedCosts, CostItem
from app.services.errors import LLMError
from app.services.llm_client import LLMClient, llm_client, parse_json_response
from app.services.numeric import parse_numeric_value
from app.services.pricing.config import pricing_config
from app.services.pricing.prompts import load_prompt

logger = logging.getLogger(__name__)

cfg = pricing_config.llm

_CATEGORIZATION_GUIDE = load_prompt("categorization_guide.md")

CATEGORY_KEYS = (
    "baseSalary",
    "statutoryMandatory",
    "allowancesBenefits",
    "terminationCosts",
    "oneTimeFees",
)


def _clean_category(value) -> dict[str, float]:
    if not isinstance(value, dict):
        return {}
    cleaned = {}
    for name, amount in value.items():
        parsed = parse_numeric_value(amount)
        if parsed is not None:
            cleaned[str(name)] = parsed
    return cleaned


async def categorize_cost_items(
    provider: str,
    country: str,
    currency: str,
    cost_items: Sequence[CostItem],
    *,
    client: LLMClient | None = None,
) -> CategorizedCosts:
    """Categorize cost items with one LLM call.

    Empty input returns empty categories without calling the LLM.
    Raises LLMError when the call fails or the response lacks the category structure.
    """
    if not cost_items:
        return CategorizedCosts()

    client = client or llm_client
    items = [
        {"key": item.key or item.name, "name": item.name, "monthlyAmount": item.monthly_amount}
        for item in cost_items
    ]
    user_prompt = "\n".join([
        f"PROVIDER: {provider}",
        f"COUNTRY: {country}",
        f"CURRENCY: {currency}",
        "",
        "COST ITEMS:",
        json.dumps(items, indent=2),
    ])

    try:
        completion = await client.generate(
            system=_CATEGORIZATION_GUIDE,
            user=user_prompt,
            max_tokens=cfg.max_tokens,
            temperature=cfg.temperature,
            json_mode=cfg.json_mode,
        )
    except LLMError:
        raise
    except Exception as e:
        raise LLMError(f"Cost categorization LLM call failed: {e}") from e

    parsed = parse_json_response(completion.text)
    if not any(isinstance(parsed.get(key), dict) for key in CATEGORY_KEYS):
        raise LLMError("LLM response is missing cost categories")

    result = CategorizedCosts(**{key: _clean_category(parsed.get(key)) for key in CATEGORY_KEYS})
    logger.info(f"Categorized {len(cost_items)} cost items for {provider} ({country}) via {completion.engine}")
    return result
