"""Tolerant parsing and formatting of vendor-supplied numbers.

Every helper here accepts values of unknown shape (numbers, numeric strings,
``None``, garbage) and never raises. This module is the only place the pricing
engine touches untrusted numbers.
"""

import math
import re
from decimal import Decimal
from typing import Any, Iterable, Sequence

_CURRENCY_CHARS = re.compile(r"[\s$€£¥₱₹₩₦₭₮₰₲₳₴₵₺₽₡₢₣₤₥₧₨₫฿₠]+")
_NON_NUMERIC = re.compile(r"[^0-9eE+\-.]")
_MONEY_NOISE = re.compile(r"[^0-9.\-]")


def _finite(value: float) -> float | None:
    return value if math.isfinite(value) else None


def parse_numeric_value(value: Any) -> float | None:
    """Parse a number out of a loosely formatted value.

    Strings may carry currency symbols and either decimal convention: when both
    ``,`` and ``.`` appear, whichever comes last is the decimal separator; a
    lone ``,`` is treated as a decimal separator.

    Returns None for anything unparsable or non-finite.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            return _finite(float(value))
        except (OverflowError, ValueError):
            return None
    if not isinstance(value, str):
        return None

    cleaned = _CURRENCY_CHARS.sub("", value.strip())
    if not cleaned:
        return None

    has_comma = "," in cleaned
    has_dot = "." in cleaned
    if has_comma and has_dot:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif has_comma:
        cleaned = cleaned.replace(",", ".")

    cleaned = _NON_NUMERIC.sub("", cleaned)
    try:
        return _finite(float(cleaned))
    except ValueError:
        return None


def pick_positive(*values: Any) -> float | None:
    """Return the first value that parses to a strictly positive number."""
    for value in values:
        parsed = parse_numeric_value(value)
        if parsed is not None and parsed > 0:
            return parsed
    return None


def safe_number(value: Any, default: float = 0.0) -> float:
    """Coerce to a finite float, or return ``default``."""
    parsed = parse_numeric_value(value)
    return default if parsed is None else parsed


def parse_money(value: Any, default: float = 0.0) -> float:
    """Parse a monetary amount such as ``"USD 1,250.00"`` or ``" $980 "``.

    Commas are thousands separators here, unlike ``parse_numeric_value``.
    """
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float, Decimal)):
        return safe_number(value, default)
    if not isinstance(value, str):
        return default
    cleaned = _MONEY_NOISE.sub("", value.replace(",", ""))
    if not cleaned:
        return default
    try:
        parsed = float(cleaned)
    except ValueError:
        return default
    return parsed if math.isfinite(parsed) else default


def safe_difference(a: Any, b: Any, default_a: float = 0.0, default_b: float = 0.0) -> float:
    return safe_number(a, default_a) - safe_number(b, default_b)


def safe_format(value: Any, default: float = 0.0, decimals: int = 2) -> str:
    """Thousands-separated string, falling back to ``default`` for bad input."""
    number = safe_number(value, default)
    return f"{number:,.{decimals}f}"


def format_currency(amount: Any, currency: str = "USD", default: float = 0.0) -> str:
    return f"{currency} {safe_format(amount, default)}"


# ---------- Statistics ----------


def round2(n: float) -> float:
    return round(n + 1e-12, 2) if n >= 0 else round(n - 1e-12, 2)


def round4(n: float) -> float:
    return round(n + 1e-12, 4) if n >= 0 else round(n - 1e-12, 4)


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def median(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def std_dev(values: Sequence[float]) -> float:
    """Sample standard deviation (n - 1)."""
    if len(values) <= 1:
        return 0.0
    m = mean(values)
    return math.sqrt(sum((v - m) ** 2 for v in values) / (len(values) - 1))


def arg_min(values: Sequence[float]) -> int:
    if not values:
        return -1
    return min(range(len(values)), key=lambda i: values[i])


def arg_max(values: Sequence[float]) -> int:
    if not values:
        return -1
    return max(range(len(values)), key=lambda i: values[i])


def clamp01(n: Any) -> float:
    value = parse_numeric_value(n)
    if value is None:
        return 0.0
    return max(0.0, min(1.0, value))


def sum_positive(values: Iterable[Any]) -> float:
    """Sum of all values that parse to a strictly positive number."""
    total = 0.0
    for value in values:
        parsed = parse_numeric_value(value)
        if parsed is not None and parsed > 0:
            total += parsed
    return total
