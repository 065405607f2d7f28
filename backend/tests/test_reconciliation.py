import json

import pytest

from app.schemas.enhancement import EnhancedQuote
from app.schemas.reconciliation import ReconciliationRequest
from app.services.errors import ConversionError
from app.services.pricing.advisor import ReconciliationAdvisor
from app.services.pricing.reconciliation import (
    ReconciliationService,
    declared_total,
)

from conftest import FakeLLMClient


def _enh(base, extra, total=None, **overrides) -> EnhancedQuote:
    breakdown = {"baseCost": base, "enhancements": extra}
    if total is not None:
        breakdown["total"] = total
    payload = {"baseQuote": {"monthlyTotal": base}, "monthlyCostBreakdown": breakdown}
    payload.update(overrides)
    return EnhancedQuote.model_validate(payload)


def _service(converter, llm=None) -> ReconciliationService:
    return ReconciliationService(converter=converter, advisor=ReconciliationAdvisor(client=llm or FakeLLMClient()))


def _without_timestamp(result: dict) -> dict:
    result = json.loads(json.dumps(result))
    result["metadata"].pop("generatedAt")
    return result


SCENARIO = {
    "enhancements": [
        {"baseQuote": {"monthlyTotal": 2000}, "monthlyCostBreakdown": {"baseCost": 2000, "enhancements": 150}},
    ],
    "targetCurrency": "USD",
    "threshold": 0.04,
    "riskMode": False,
    "useLLM": False,
}


@pytest.mark.asyncio
async def test_end_to_end_local_only(converter, rate_provider):
    service = _service(converter)

    result = await service.run(ReconciliationRequest.model_validate(SCENARIO))
    out = result.to_dict()

    assert out["recommendations"] == []
    assert out["discrepancies"] == []
    assert out["metadata"]["engine"] == "local-only"
    assert out["metadata"]["threshold"] == 0.04
    assert out["metadata"]["riskMode"] is False
    assert out["metadata"]["currency"] == "USD"
    assert out["items"][0]["total"] == 2150
    # No source currency: amounts are already in the target currency
    assert rate_provider.calls == []


@pytest.mark.asyncio
async def test_llm_failure_falls_back_to_local_result(converter, failing_llm):
    local = await _service(converter).run(ReconciliationRequest.model_validate(SCENARIO))
    service = _service(converter, failing_llm)

    escalated = await service.run(ReconciliationRequest.model_validate({**SCENARIO, "useLLM": True}))

    assert len(failing_llm.calls) == 1
    assert _without_timestamp(escalated.to_dict()) == _without_timestamp(local.to_dict())


@pytest.mark.asyncio
async def test_unexpected_llm_exception_also_falls_back(converter):
    llm = FakeLLMClient(error=RuntimeError("socket closed"))
    result = await _service(converter, llm).run(ReconciliationRequest.model_validate({**SCENARIO, "useLLM": True}))
    assert result.metadata.engine == "local-only"


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [
    {"recommendations": ["ok"], "items": [{"provider": "deel", "notes": 5}]},
    {"recommendations": ["ok"], "items": [{"provider": "deel", "notes": "check pension"}]},
    {"recommendations": ["ok"], "excluded": 7},
    {"recommendations": "ok"},
])
async def test_malformed_llm_reply_falls_back_to_local_result(converter, reply):
    local = await _service(converter).run(ReconciliationRequest.model_validate(SCENARIO))
    llm = FakeLLMClient(text=json.dumps(reply))

    result = await _service(converter, llm).run(ReconciliationRequest.model_validate({**SCENARIO, "useLLM": True}))

    assert len(llm.calls) == 1
    assert result.metadata.engine == "local-only"
    assert _without_timestamp(result.to_dict()) == _without_timestamp(local.to_dict())


@pytest.mark.asyncio
async def test_llm_notes_match_providers_case_insensitively(converter):
    reply = {"recommendations": [], "items": [{"provider": "Deel", "notes": ["Confirm pension"]}]}
    llm = FakeLLMClient(text=json.dumps(reply))

    result = await _service(converter, llm).run(ReconciliationRequest.model_validate({
        **SCENARIO,
        "enhancements": {"deel": SCENARIO["enhancements"][0]},
        "useLLM": True,
    }))

    assert result.items[0].provider == "deel"
    assert "Confirm pension" in result.items[0].notes


@pytest.mark.asyncio
@pytest.mark.parametrize("extra, flagged", [(4, False), (4.01, True), (3.99, False)])
async def test_threshold_boundary(converter, extra, flagged):
    service = _service(converter)
    recon_input = await service.build_input_from_enhancements(
        {"deel": _enh(100, extra, total=100)}, "USD", threshold=0.04
    )

    result = service.compute_local(recon_input)

    assert bool(result.discrepancies) is flagged
    if flagged:
        d = result.discrepancies[0]
        assert (d.provider, d.declared_total, d.recomputed_total, d.reason) == ("deel", 100, 104.01, "relative")


@pytest.mark.asyncio
async def test_risk_mode_flags_small_absolute_differences(converter):
    service = _service(converter)
    enhancements = {"remote": _enh(1000, 0.5, total=1000)}

    relaxed = service.compute_local(await service.build_input_from_enhancements(enhancements, "USD"))
    strict = service.compute_local(
        await service.build_input_from_enhancements(enhancements, "USD", risk_mode=True)
    )

    assert relaxed.discrepancies == []
    assert [d.reason for d in strict.discrepancies] == ["absolute"]
    assert strict.discrepancies[0].difference == 0.5


@pytest.mark.asyncio
async def test_ranking_summary_and_exclusions(converter):
    service = _service(converter)
    enhancements = {
        "deel": _enh(2000, 150, overallConfidence=0.9),
        "oyster": _enh(2100, 100, overlapAnalysis={"providerMissing": ["Pension fund"]}, overallConfidence=0.6),
        "remote": _enh(1000, 200, displayCurrency="EUR"),
        "rippling": EnhancedQuote.model_validate({"totalEnhancement": 50}),
    }

    result = service.compute_local(
        await service.build_input_from_enhancements(enhancements, "usd", risk_mode=True)
    )
    items = {i.provider: i for i in result.items}

    assert items["deel"].total == 2150 and items["deel"].pct == 0 and items["deel"].within_threshold
    assert items["oyster"].delta == 50 and items["oyster"].pct == 0.0233
    assert not items["oyster"].within_threshold  # critical coverage gap
    assert items["oyster"].notes == ["Missing: Pension fund"]
    assert items["remote"].total == 2400 and items["remote"].pct == 0.1163
    assert items["deel"].risk_adjusted_total == 2171.5
    assert items["remote"].risk_adjusted_total == 2520

    summary = result.summary.to_dict()
    assert summary == {
        "currency": "USD",
        "cheapest": "deel",
        "mostExpensive": "remote",
        "average": 2250,
        "median": 2200,
        "stdDev": summary["stdDev"],
        "withinThresholdCount": 1,
    }
    assert [e.to_dict()["provider"] for e in result.excluded] == ["rippling"]


@pytest.mark.asyncio
async def test_list_input_uses_provider_names(converter):
    service = _service(converter)
    recon_input = await service.build_input_from_enhancements(
        [_enh(100, 0, provider="Deel"), _enh(120, 0)], "USD"
    )
    assert [p.provider for p in recon_input.providers] == ["deel", "provider-2"]


@pytest.mark.asyncio
async def test_conversion_failure_fails_the_build(failing_converter):
    service = _service(failing_converter)
    with pytest.raises(ConversionError):
        await service.build_input_from_enhancements(
            {"deel": _enh(100, 0, displayCurrency="EUR")}, "USD"
        )


@pytest.mark.asyncio
async def test_llm_merge_keeps_local_numbers(converter):
    reply = {
        "items": [{"provider": "oyster", "total": 1, "notes": ["Missing: Pension fund", "Confirm pension coverage"]}],
        "recommendations": ["Prefer deel: cheapest with full coverage.", 5, ""],
        "excluded": [{"provider": "rippling", "reason": "duplicate"}, {"provider": "velocity", "reason": "No quote"}],
    }
    llm = FakeLLMClient(text=json.dumps(reply), engine="llm:gpt-4o-mini")
    service = _service(converter, llm)
    recon_input = await service.build_input_from_enhancements(
        {
            "deel": _enh(2000, 150),
            "oyster": _enh(2100, 100, total=2000, overlapAnalysis={"providerMissing": ["Pension fund"]}),
            "rippling": EnhancedQuote.model_validate({}),
        },
        "USD",
    )

    result = await service.reconcile(recon_input)

    assert len(llm.calls) == 1
    assert '"provider": "oyster"' in llm.calls[0]["user"]
    assert "DISCREPANCIES" in llm.calls[0]["user"]
    assert result.metadata.engine == "llm:gpt-4o-mini"
    assert result.recommendations == ["Prefer deel: cheapest with full coverage."]
    oyster = next(i for i in result.items if i.provider == "oyster")
    assert oyster.total == 2200
    assert oyster.notes == ["Missing: Pension fund", "Confirm pension coverage"]
    assert [e.provider for e in result.excluded] == ["rippling", "velocity"]
    assert result.excluded[0].reason.startswith("Price not extractable")
    assert [d.provider for d in result.discrepancies] == ["oyster"]


def test_declared_total_priority():
    assert declared_total(_enh(100, 5, total=99)) == 99
    assert declared_total(_enh(100, 5, finalTotal=98)) == 98
    assert declared_total(_enh(100, 5)) == 105
    bare = EnhancedQuote.model_validate({"baseQuote": {"monthlyTotal": 80}, "totalEnhancement": "20"})
    assert declared_total(bare) == 100
    assert declared_total(EnhancedQuote.model_validate({})) is None
