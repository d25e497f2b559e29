"""Known tag vocabularies for applicant and grant metadata.

Values are compared case-insensitively; ``normalize_tag`` is the single
normalization used by eligibility, scoring and validation.
"""

from grant_matcher.errors import InvalidRequestError

US_STATES = frozenset(
    {
        "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
        "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
        "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
        "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
        "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
        "DC", "PR", "GU", "VI", "AS", "MP",
    }
)

APPLICANT_TYPES = frozenset(
    {
        "nonprofit",
        "501(c)(3)",
        "state government",
        "county government",
        "city or township government",
        "special district government",
        "independent school district",
        "public institution of higher education",
        "private institution of higher education",
        "native american tribal government",
        "public housing authority",
        "small business",
        "for-profit organization",
        "individual",
        "unrestricted",
    }
)

FUNDING_CATEGORIES = frozenset(
    {
        "agriculture",
        "arts",
        "business and commerce",
        "community development",
        "consumer protection",
        "disaster prevention and relief",
        "education",
        "employment, labor and training",
        "energy",
        "environment",
        "food and nutrition",
        "health",
        "housing",
        "humanities",
        "income security and social services",
        "information and statistics",
        "law, justice and legal services",
        "natural resources",
        "regional development",
        "science and technology",
        "transportation",
        "other",
    }
)


def normalize_tag(value: str) -> str:
    return " ".join(value.split()).casefold()


def normalize_tags(values: list[str]) -> set[str]:
    return {normalize_tag(v) for v in values if v and v.strip()}


_NORMALIZED_APPLICANT_TYPES = frozenset(normalize_tag(v) for v in APPLICANT_TYPES)
_NORMALIZED_FUNDING_CATEGORIES = frozenset(normalize_tag(v) for v in FUNDING_CATEGORIES)


def validate_state(field: str, value: str) -> None:
    if value and value.strip().upper() not in US_STATES:
        raise InvalidRequestError(field, f"unknown state code {value!r}")


def validate_tags(field: str, values: list[str], vocabulary: frozenset[str]) -> None:
    unknown = sorted(normalize_tags(values) - vocabulary)
    if unknown:
        raise InvalidRequestError(field, f"unknown values: {', '.join(unknown)}")


def validate_applicant_types(field: str, values: list[str]) -> None:
    validate_tags(field, values, _NORMALIZED_APPLICANT_TYPES)


def validate_funding_categories(field: str, values: list[str]) -> None:
    validate_tags(field, values, _NORMALIZED_FUNDING_CATEGORIES)
