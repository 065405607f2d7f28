import pytest

from app.schemas.enhancement import EnhancedQuote
from app.services.pricing.enhancements import (
    THIRTEENTH_PATTERN,
    amortize,
    base_quote_contains_pattern,
    compute_enhancement_addons,
    contract_months_or_default,
)


def _enhancement(enhancements: dict, original_response=None) -> EnhancedQuote:
    return EnhancedQuote.model_validate({
        "baseQuote": {"monthlyTotal": 3000, "originalResponse": original_response},
        "enhancements": enhancements,
    })


@pytest.mark.parametrize("months, expected", [(12, 100.0), (6, 200.0), (1, 1200.0), (0, 1200.0), (-4, 1200.0)])
def test_one_time_fee_amortized_over_contract(months, expected):
    enhancement = _enhancement({"oneTimeFees": {"setup": 1200}})
    assert compute_enhancement_addons("deel", enhancement, months) == pytest.approx(expected)


def test_non_numeric_contract_months_default_to_twelve():
    assert contract_months_or_default(None) == 12
    assert contract_months_or_default("n/a") == 12
    assert contract_months_or_default(float("nan")) == 12
    assert amortize(1200, None) == 100


def test_recurring_items_count_in_full():
    enhancement = _enhancement({
        "transportationAllowance": {"monthlyAmount": 80},
        "mealVouchers": {"monthlyAmount": "120"},
        "additionalContributions": {"pension top-up": 50},
        "recurringFees": {"platform": 25, "bogus": "N/A"},
    })
    assert compute_enhancement_addons("remote", enhancement, 24) == pytest.approx(275)


def test_already_included_items_are_skipped():
    enhancement = _enhancement({
        "severanceProvision": {"monthlyAmount": 300, "isAlreadyIncluded": True},
        "remoteWorkAllowance": {"monthlyAmount": 60, "isAlreadyIncluded": True},
        "noticePeriodCost": {"totalAmount": 1200},
    })
    assert compute_enhancement_addons("oyster", enhancement, 12) == pytest.approx(100)


def test_deel_skips_severance_provision():
    enhancement = _enhancement({"severanceProvision": {"monthlyAmount": 300}})
    assert compute_enhancement_addons("deel", enhancement, 12) == 0
    assert compute_enhancement_addons("remote", enhancement, 12) == 300


def test_thirteenth_salary_skipped_when_base_quote_names_it():
    extras = {"thirteenthSalary": {"yearlyAmount": 3600}}
    plain = _enhancement(extras, original_response={"costs": [{"name": "Social Security"}]})
    named = _enhancement(extras, original_response={"costs": [{"name": "Aguinaldo provision"}]})

    assert compute_enhancement_addons("skuad", plain, 12) == pytest.approx(300)
    assert compute_enhancement_addons("skuad", named, 12) == 0
    assert base_quote_contains_pattern(named, THIRTEENTH_PATTERN)


def test_thirteenth_salary_matches_snake_case_keys():
    named = _enhancement({}, original_response={"thirteenth_salary_accrual": 250})
    assert base_quote_contains_pattern(named, THIRTEENTH_PATTERN)


def test_vacation_bonus_frequency():
    monthly = _enhancement({"vacationBonus": {"amount": 90, "frequency": "monthly"}})
    yearly = _enhancement({"vacationBonus": {"amount": 1200, "frequency": "yearly"}})
    assert compute_enhancement_addons("playroll", monthly, 12) == 90
    assert compute_enhancement_addons("playroll", yearly, 12) == pytest.approx(100)


def test_medical_exam_only_when_required():
    required = _enhancement({"medicalExam": {"required": True, "estimatedCost": 240}})
    optional = _enhancement({"medicalExam": {"required": False, "estimatedCost": 240}})
    assert compute_enhancement_addons("velocity", required, 12) == pytest.approx(20)
    assert compute_enhancement_addons("velocity", optional, 12) == 0


def test_unknown_provider_contributes_nothing():
    enhancement = _enhancement({"recurringFees": {"platform": 25}})
    assert compute_enhancement_addons("acme", enhancement, 12) == 0
    assert compute_enhancement_addons("deel", None, 12) == 0
