"""Reconciliation advisor — single LLM call for notes and recommendations.

Takes the locally computed reconciliation (normalized totals, coverage,
flagged discrepancies) and asks the LLM, in ONE batched request, for:
- extra notes per provider
- recommendations (short actionable sentences)
- providers it thinks should be excluded, with a reason

The LLM never supplies numbers the engine keeps: totals, deltas and
threshold flags are always the local ones. Any failure is raised as
``LLMError`` so the caller can fall back to the local-only result.
"""

import json
import logging
from dataclasses import dataclass, field

from app.services.errors import LLMError
from app.services.llm_client import LLMClient, llm_client, parse_json_response
from app.services.pricing.config import pricing_config
from app.services.pricing.prompts import load_prompt

logger = logging.getLogger(__name__)

cfg = pricing_config.llm

# Load reasoning guide once at module level
_RECONCILIATION_GUIDE = load_prompt("reconciliation_guide.md")


@dataclass
class AdvisorOutput:
    """Validated LLM contribution to a reconciliation result."""

    engine: str
    recommendations: list[str] = field(default_factory=list)
    notes: dict[str, list[str]] = field(default_factory=dict)
    excluded: list[dict] = field(default_factory=list)


class ReconciliationAdvisor:
    """One LLM request per reconciliation, never one per discrepancy."""

    def __init__(self, client: LLMClient | None = None):
        self._client = client or llm_client

    async def advise(self, payload: dict) -> AdvisorOutput:
        """Ask the LLM for recommendations on a reconciliation payload.

        ``payload`` carries ``settings``, ``providers`` and ``discrepancies``.
        Raises LLMError on transport failure or an unusable response.
        """
        try:
            completion = await self._client.generate(
                system=_RECONCILIATION_GUIDE,
                user=self._build_user_prompt(payload),
                max_tokens=cfg.max_tokens,
                temperature=cfg.temperature,
                json_mode=cfg.json_mode,
            )
        except LLMError:
            raise
        except Exception as e:
            raise LLMError(f"Reconciliation LLM call failed: {e}") from e

        parsed = parse_json_response(completion.text)
        output = self._validate(parsed, completion.engine)
        logger.info(
            f"Advisor returned {len(output.recommendations)} recommendations "
            f"via {output.engine}"
        )
        return output

    @staticmethod
    def _build_user_prompt(payload: dict) -> str:
        settings = payload.get("settings", {})
        sections = [
            "RECONCILIATION REQUEST",
            f"CURRENCY: {settings.get('currency')}",
            f"THRESHOLD: {settings.get('threshold')}",
            f"RISK_MODE: {str(settings.get('riskMode', False)).lower()}",
            "",
            "PROVIDERS (normalized monthly totals in selected currency):",
            json.dumps(payload.get("providers", []), indent=2),
            "",
            "DISCREPANCIES (declared vs recomputed totals):",
            json.dumps(payload.get("discrepancies", []), indent=2),
        ]
        return "\n".join(sections)

    @staticmethod
    def _validate(parsed: dict, engine: str) -> AdvisorOutput:
        recommendations = parsed.get("recommendations")
        if not isinstance(recommendations, list):
            raise LLMError("LLM response is missing a recommendations list")

        output = AdvisorOutput(engine=engine)
        for rec in recommendations:
            if isinstance(rec, str) and rec.strip():
                output.recommendations.append(_truncate(rec.strip(), cfg.max_recommendation_chars))
        output.recommendations = output.recommendations[:cfg.max_recommendations]

        for item in _list_field(parsed, "items"):
            if not isinstance(item, dict) or not isinstance(item.get("provider"), str):
                continue
            provider = item["provider"].strip().lower()
            notes = [n.strip() for n in _list_field(item, "notes") if isinstance(n, str) and n.strip()]
            if provider and notes:
                output.notes.setdefault(provider, []).extend(notes)

        for ex in _list_field(parsed, "excluded"):
            if isinstance(ex, dict) and isinstance(ex.get("provider"), str) and ex["provider"].strip():
                output.excluded.append({
                    "provider": ex["provider"].strip().lower(),
                    "reason": str(ex.get("reason") or "Excluded by reviewer"),
                })

        return output


def _list_field(obj: dict, key: str) -> list:
    """Optional list field of an LLM reply; any other non-null shape is an LLMError."""
    value = obj.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise LLMError(f"LLM response field '{key}' must be a list, got {type(value).__name__}")
    return value


def _truncate(text: str, max_len: int) -> str:
    """Truncate text to max_len, appending '...' if truncated."""
    if len(text) <= max_len:
        return text
    return text[:max_len - 3] + "..."


# Singleton
reconciliation_advisor = ReconciliationAdvisor()
