"""Local-office cost defaults for LATAM countries.

Values are strings as published by the local partners. Fields listed in
``_USD_FIELDS`` are quoted in USD; everything else is in the country's own
currency. ``"N/A"`` and ``"No"`` mean the field does not apply.
"""

from types import MappingProxyType

LOCAL_OFFICE_FIELDS: tuple[str, ...] = (
    "mealVoucher",
    "transportation",
    "wfh",
    "healthInsurance",
    "monthlyPaymentsToLocalOffice",
    "vat",
    "preEmploymentMedicalTest",
    "drugTest",
    "backgroundCheckViaDeel",
)

NOT_APPLICABLE: frozenset[str] = frozenset({"n/a", "no", ""})

FALLBACK_LOCAL_OFFICE_MONTHLY_USD = 250

_USD_FIELDS: frozenset[str] = frozenset({
    "monthlyPaymentsToLocalOffice",
    "preEmploymentMedicalTest",
    "drugTest",
    "backgroundCheckViaDeel",
})

# wfh is quoted in USD for Argentina only
_USD_WFH_COUNTRIES: frozenset[str] = frozenset({"AR"})

LOCAL_OFFICE_DATA = MappingProxyType({
    "CO": MappingProxyType({
        "mealVoucher": "N/A",
        "transportation": "200000",
        "wfh": "200000",
        "healthInsurance": "No",
        "monthlyPaymentsToLocalOffice": "150.00",
        "vat": "19",
        "preEmploymentMedicalTest": "20.00",
        "drugTest": "30.00",
        "backgroundCheckViaDeel": "200.00",
    }),
    "BR": MappingProxyType({
        "mealVoucher": "880",
        "transportation": "880",
        "wfh": "N/A",
        "healthInsurance": "970",
        "monthlyPaymentsToLocalOffice": "120.00",
        "vat": "19",
        "preEmploymentMedicalTest": "N/A",
        "drugTest": "N/A",
        "backgroundCheckViaDeel": "200.00",
    }),
    "AR": MappingProxyType({
        "mealVoucher": "0",
        "transportation": "0",
        "wfh": "100",
        "healthInsurance": "No",
        "monthlyPaymentsToLocalOffice": "180.00",
        "vat": "21",
        "preEmploymentMedicalTest": "40.00",
        "drugTest": "50.00",
        "backgroundCheckViaDeel": "200.00",
    }),
    "MX": MappingProxyType({
        "mealVoucher": "0",
        "transportation": "0",
        "wfh": "N/A",
        "healthInsurance": "No",
        "monthlyPaymentsToLocalOffice": "290.00",
        "vat": "18",
        "preEmploymentMedicalTest": "N/A",
        "drugTest": "N/A",
        "backgroundCheckViaDeel": "200.00",
    }),
    "CL": MappingProxyType({
        "mealVoucher": "0",
        "transportation": "0",
        "wfh": "N/A",
        "healthInsurance": "No",
        "monthlyPaymentsToLocalOffice": "N/A",
        "vat": "19",
        "preEmploymentMedicalTest": "N/A",
        "drugTest": "N/A",
        "backgroundCheckViaDeel": "N/A",
    }),
    "PE": MappingProxyType({
        "mealVoucher": "0",
        "transportation": "0",
        "wfh": "100",
        "healthInsurance": "No",
        "monthlyPaymentsToLocalOffice": "N/A",
        "vat": "N/A",
        "preEmploymentMedicalTest": "N/A",
        "drugTest": "N/A",
        "backgroundCheckViaDeel": "N/A",
    }),
})


def has_local_office_data(country_code: str) -> bool:
    return country_code.upper() in LOCAL_OFFICE_DATA


def get_default_local_office_info() -> dict[str, str]:
    """Fallback record: only the flat monthly office payment applies."""
    info = {field: "N/A" for field in LOCAL_OFFICE_FIELDS}
    info["monthlyPaymentsToLocalOffice"] = f"{FALLBACK_LOCAL_OFFICE_MONTHLY_USD:.2f}"
    return info


def get_local_office_data(country_code: str) -> dict[str, str]:
    """Mutable copy of the registered record, or the fallback record."""
    data = LOCAL_OFFICE_DATA.get(country_code.upper())
    if data is not None:
        return dict(data)
    return get_default_local_office_info()


def get_field_currency(field: str, country_code: str) -> str:
    """Return "usd" or "local" for the currency a default-table field is quoted in."""
    if field == "wfh":
        return "usd" if country_code.upper() in _USD_WFH_COUNTRIES else "local"
    return "usd" if field in _USD_FIELDS else "local"


def is_not_applicable(value: object) -> bool:
    """Sentinel check for "N/A" / "No" / empty values."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() in NOT_APPLICABLE
    return False
