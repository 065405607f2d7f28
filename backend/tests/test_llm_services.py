import json

import pytest

from app.schemas.reconciliation import CostItem
from app.services.cost_categorizer import categorize_cost_items
from app.services.errors import LLMError
from app.services.llm_client import LLMClient, parse_json_response
from app.services.pricing.advisor import ReconciliationAdvisor

from conftest import FakeLLMClient

PAYLOAD = {
    "settings": {"currency": "USD", "threshold": 0.04, "riskMode": True},
    "providers": [{"provider": "deel", "total": 2150.0}],
    "discrepancies": [],
}


def test_parse_json_response_strips_fences_and_think_blocks():
    assert parse_json_response('```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_json_response('<think>pondering {}</think>\n{"b": [2]}') == {"b": [2]}


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", "", None])
def test_parse_json_response_rejects_non_objects(raw):
    with pytest.raises(LLMError):
        parse_json_response(raw)


@pytest.mark.asyncio
async def test_llm_client_without_keys_raises_llm_error():
    client = LLMClient()
    client._openai = None
    client._anthropic = None
    assert not client.available
    with pytest.raises(LLMError):
        await client.complete("system", "user")


@pytest.mark.asyncio
async def test_advisor_validates_response():
    reply = {
        "recommendations": ["  Choose deel.  ", "x" * 400, None],
        "items": [{"provider": "deel", "notes": ["Solid coverage", 3]}, "junk"],
        "excluded": [{"provider": "oyster"}, {"reason": "no provider"}],
    }
    llm = FakeLLMClient(text=json.dumps(reply), engine="llm:test")

    output = await ReconciliationAdvisor(client=llm).advise(PAYLOAD)

    assert output.engine == "llm:test"
    assert output.recommendations[0] == "Choose deel."
    assert len(output.recommendations[1]) == 300 and output.recommendations[1].endswith("...")
    assert len(output.recommendations) == 2
    assert output.notes == {"deel": ["Solid coverage"]}
    assert output.excluded == [{"provider": "oyster", "reason": "Excluded by reviewer"}]
    assert "RISK_MODE: true" in llm.calls[0]["user"]
    assert llm.calls[0]["json_mode"] is True


@pytest.mark.asyncio
async def test_advisor_requires_recommendations():
    llm = FakeLLMClient(text='{"items": []}')
    with pytest.raises(LLMError):
        await ReconciliationAdvisor(client=llm).advise(PAYLOAD)


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [
    {"recommendations": ["ok"], "items": [{"provider": "deel", "notes": 5}]},
    {"recommendations": ["ok"], "items": [{"provider": "deel", "notes": "check pension"}]},
    {"recommendations": ["ok"], "items": {"provider": "deel"}},
    {"recommendations": ["ok"], "excluded": 7},
])
async def test_advisor_rejects_non_list_fields(reply):
    llm = FakeLLMClient(text=json.dumps(reply))
    with pytest.raises(LLMError, match="must be a list"):
        await ReconciliationAdvisor(client=llm).advise(PAYLOAD)


@pytest.mark.asyncio
async def test_advisor_normalizes_provider_keys():
    reply = {
        "recommendations": [],
        "items": [{"provider": " Deel ", "notes": ["Confirm pension"]}, {"provider": "Oyster", "notes": None}],
        "excluded": [{"provider": "Velocity", "reason": "No quote"}],
    }
    llm = FakeLLMClient(text=json.dumps(reply))

    output = await ReconciliationAdvisor(client=llm).advise(PAYLOAD)

    assert output.notes == {"deel": ["Confirm pension"]}
    assert output.excluded == [{"provider": "velocity", "reason": "No quote"}]


@pytest.mark.asyncio
async def test_advisor_wraps_transport_errors():
    llm = FakeLLMClient(error=TimeoutError("took too long"))
    with pytest.raises(LLMError, match="took too long"):
        await ReconciliationAdvisor(client=llm).advise(PAYLOAD)


@pytest.mark.asyncio
async def test_categorize_empty_items_skips_llm(failing_llm):
    result = await categorize_cost_items("deel", "Colombia", "COP", [], client=failing_llm)

    assert result.model_dump(by_alias=True) == {
        "baseSalary": {},
        "statutoryMandatory": {},
        "allowancesBenefits": {},
        "terminationCosts": {},
        "oneTimeFees": {},
    }
    assert failing_llm.calls == []


@pytest.mark.asyncio
async def test_categorize_cost_items():
    reply = {
        "baseSalary": {"Gross salary": 3000},
        "statutoryMandatory": {"Pension": "240.5"},
        "allowancesBenefits": {"Meal voucher": 80, "Bogus": "n/a"},
        "terminationCosts": {},
        "oneTimeFees": {"Onboarding": 100},
    }
    llm = FakeLLMClient(text=f"```json\n{json.dumps(reply)}\n```")
    items = [
        CostItem(key="salary", name="Gross salary", monthly_amount=3000),
        CostItem.model_validate({"name": "Pension", "monthlyAmount": 240.5}),
    ]

    result = await categorize_cost_items("remote", "Brazil", "BRL", items, client=llm)

    assert result.base_salary == {"Gross salary": 3000}
    assert result.statutory_mandatory == {"Pension": 240.5}
    assert result.allowances_benefits == {"Meal voucher": 80}
    assert result.one_time_fees == {"Onboarding": 100}
    sent = llm.calls[0]["user"]
    assert "PROVIDER: remote" in sent and '"key": "Pension"' in sent


@pytest.mark.asyncio
async def test_categorize_rejects_unstructured_reply():
    llm = FakeLLMClient(text='{"answer": "these look fine"}')
    with pytest.raises(LLMError):
        await categorize_cost_items("deel", "Chile", "CLP", [CostItem(name="Salary", monthly_amount=1)], client=llm)


@pytest.mark.asyncio
async def test_categorize_propagates_llm_failure(failing_llm):
    with pytest.raises(LLMError):
        await categorize_cost_items("deel", "Chile", "CLP", [CostItem(name="Salary", monthly_amount=1)], client=failing_llm)
