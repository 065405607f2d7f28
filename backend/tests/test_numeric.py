import math

import pytest

from app.services.numeric import (
    arg_max,
    arg_min,
    clamp01,
    format_currency,
    median,
    parse_money,
    parse_numeric_value,
    pick_positive,
    round2,
    safe_difference,
    safe_format,
    safe_number,
    std_dev,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (1250, 1250.0),
        ("1250.5", 1250.5),
        ("$1,234.56", 1234.56),
        ("1.234,56", 1234.56),
        ("12,5", 12.5),
        ("  € 980 ", 980.0),
    ],
)
def test_parse_numeric_value_formats(raw, expected):
    assert parse_numeric_value(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", [None, "", "N/A", "abc", True, float("nan"), float("inf"), [], {}, "1e400"])
def test_parse_numeric_value_rejects_garbage(raw):
    assert parse_numeric_value(raw) is None


def test_pick_positive_skips_zero_and_garbage():
    assert pick_positive(None, "0", -5, "abc", "42") == 42.0
    assert pick_positive(0, None) is None


def test_safe_number_uses_default():
    assert safe_number("garbage", 7) == 7
    assert safe_number(float("nan"), 1.5) == 1.5
    assert safe_number("3.5") == 3.5


def test_parse_money_strips_symbols_and_thousands():
    assert parse_money("USD 1,250.00") == 1250.0
    assert parse_money(" $980 ") == 980.0
    assert parse_money("N/A", 3) == 3
    assert parse_money(None, 5) == 5
    assert parse_money(True, 2) == 2


def test_safe_difference_applies_both_defaults():
    assert safe_difference("10", None, 0, 4) == 6
    assert safe_difference(None, "2.5", 1, 0) == -1.5


def test_formatting():
    assert safe_format(1234.5) == "1,234.50"
    assert safe_format("bad", 0, decimals=0) == "0"
    assert format_currency(1234.5, "EUR") == "EUR 1,234.50"


def test_round2_half_up_on_binary_edges():
    assert round2(2.675) == 2.68
    assert round2(1.005) == 1.01
    assert round2(-1.005) == -1.01


def test_statistics():
    assert median([3, 1, 2]) == 2
    assert median([4, 1, 3, 2]) == 2.5
    assert median([]) == 0.0
    assert std_dev([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(math.sqrt(32 / 7))
    assert std_dev([5]) == 0.0
    assert arg_min([]) == -1
    assert arg_min([3, 1, 1]) == 1
    assert arg_max([1, 5, 5]) == 1


def test_clamp01():
    assert clamp01(1.7) == 1.0
    assert clamp01(-0.2) == 0.0
    assert clamp01(float("nan")) == 0.0
    assert clamp01("0.25") == 0.25
