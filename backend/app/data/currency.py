"""Country and currency reference data: ISO codes, local currencies, static USD rates."""

from types import MappingProxyType

# ISO2 → (country name, ISO3, ISO 4217 currency)
_COUNTRIES: dict[str, tuple[str, str, str]] = {
    # Americas
    "US": ("United States", "USA", "USD"),
    "CA": ("Canada", "CAN", "CAD"),
    "MX": ("Mexico", "MEX", "MXN"),
    "BR": ("Brazil", "BRA", "BRL"),
    "AR": ("Argentina", "ARG", "ARS"),
    "CO": ("Colombia", "COL", "COP"),
    "CL": ("Chile", "CHL", "CLP"),
    "PE": ("Peru", "PER", "PEN"),
    "UY": ("Uruguay", "URY", "UYU"),
    "CR": ("Costa Rica", "CRI", "CRC"),
    "EC": ("Ecuador", "ECU", "USD"),
    # Europe
    "GB": ("United Kingdom", "GBR", "GBP"),
    "IE": ("Ireland", "IRL", "EUR"),
    "DE": ("Germany", "DEU", "EUR"),
    "FR": ("France", "FRA", "EUR"),
    "ES": ("Spain", "ESP", "EUR"),
    "PT": ("Portugal", "PRT", "EUR"),
    "IT": ("Italy", "ITA", "EUR"),
    "NL": ("Netherlands", "NLD", "EUR"),
    "BE": ("Belgium", "BEL", "EUR"),
    "AT": ("Austria", "AUT", "EUR"),
    "FI": ("Finland", "FIN", "EUR"),
    "PL": ("Poland", "POL", "PLN"),
    "RO": ("Romania", "ROU", "RON"),
    "SE": ("Sweden", "SWE", "SEK"),
    "DK": ("Denmark", "DNK", "DKK"),
    "NO": ("Norway", "NOR", "NOK"),
    "CH": ("Switzerland", "CHE", "CHF"),
    # Asia-Pacific
    "IN": ("India", "IND", "INR"),
    "PH": ("Philippines", "PHL", "PHP"),
    "SG": ("Singapore", "SGP", "SGD"),
    "JP": ("Japan", "JPN", "JPY"),
    "KR": ("South Korea", "KOR", "KRW"),
    "AU": ("Australia", "AUS", "AUD"),
    "NZ": ("New Zealand", "NZL", "NZD"),
    "HK": ("Hong Kong", "HKG", "HKD"),
    # Middle East / Africa
    "AE": ("United Arab Emirates", "ARE", "AED"),
    "TR": ("Turkey", "TUR", "TRY"),
    "ZA": ("South Africa", "ZAF", "ZAR"),
    "NG": ("Nigeria", "NGA", "NGN"),
    "KE": ("Kenya", "KEN", "KES"),
    "EG": ("Egypt", "EGY", "EGP"),
}

# Common alternate spellings → ISO2
_COUNTRY_ALIASES: dict[str, str] = {
    "united states of america": "US",
    "usa": "US",
    "uk": "GB",
    "great britain": "GB",
    "england": "GB",
    "uae": "AE",
    "korea": "KR",
    "brasil": "BR",
    "méxico": "MX",
    "türkiye": "TR",
}

COUNTRY_NAMES = MappingProxyType({code: row[0] for code, row in _COUNTRIES.items()})
ISO2_TO_ISO3 = MappingProxyType({code: row[1] for code, row in _COUNTRIES.items()})
ISO3_TO_ISO2 = MappingProxyType({row[1]: code for code, row in _COUNTRIES.items()})
COUNTRY_CURRENCIES = MappingProxyType({code: row[2] for code, row in _COUNTRIES.items()})

_NAME_INDEX = MappingProxyType({
    **{row[0].lower(): code for code, row in _COUNTRIES.items()},
    **_COUNTRY_ALIASES,
})

# Static exchange rates to USD (fallback when live rates are unavailable)
EXCHANGE_RATES_TO_USD = MappingProxyType({
    "USD": 1.0,
    "CAD": 0.74,
    "MXN": 0.058,
    "BRL": 0.18,
    "ARS": 0.0011,
    "COP": 0.00025,
    "CLP": 0.0011,
    "PEN": 0.27,
    "UYU": 0.025,
    "CRC": 0.0019,
    "GBP": 1.27,
    "EUR": 1.08,
    "PLN": 0.25,
    "RON": 0.22,
    "SEK": 0.095,
    "DKK": 0.145,
    "NOK": 0.094,
    "CHF": 1.13,
    "INR": 0.012,
    "PHP": 0.018,
    "SGD": 0.75,
    "JPY": 0.0067,
    "KRW": 0.00074,
    "AUD": 0.65,
    "NZD": 0.60,
    "HKD": 0.13,
    "AED": 0.27,
    "TRY": 0.031,
    "ZAR": 0.055,
    "NGN": 0.00065,
    "KES": 0.0077,
    "EGP": 0.021,
})


def get_country_by_name(name: str | None) -> str | None:
    """Resolve a country name (or alias) to its ISO2 code."""
    if not name:
        return None
    return _NAME_INDEX.get(name.strip().lower())


def resolve_country_code(value: str | None) -> str | None:
    """Resolve a country name, ISO2 or ISO3 code to ISO2. Returns None if unknown."""
    if not value or not isinstance(value, str):
        return None
    by_name = get_country_by_name(value)
    if by_name:
        return by_name
    direct = value.strip().upper()
    if len(direct) == 2 and direct.isalpha():
        return direct
    if len(direct) == 3:
        return ISO3_TO_ISO2.get(direct)
    return None


def get_currency_for_country(country_code: str) -> str | None:
    """Local currency for an ISO2 code, or None for unregistered countries."""
    return COUNTRY_CURRENCIES.get(country_code.upper())


def same_currency(a: str | None, b: str | None) -> bool:
    """Case-insensitive currency code comparison."""
    if not a or not b:
        return False
    return a.strip().upper() == b.strip().upper()
