"""Conversion boundary between untyped attribute bags and GrantOpportunity.

Vector search results come back as loosely typed key/value maps. This module
is the only place that reads them: every field has an explicit default and a
malformed value falls back to that default instead of raising.
"""

from collections.abc import Mapping
from typing import Any

import structlog

from grant_matcher.entities import GrantOpportunity, SearchCandidate
from grant_matcher.utils import parse_datetime_utc

logger = structlog.get_logger(__name__)

ATTR_GRANT_ID = "grantId"
ATTR_OPPORTUNITY_NUMBER = "opportunityNumber"
ATTR_AGENCY = "agency"
ATTR_AGENCY_CODE = "agencyCode"
ATTR_AWARD_CEILING = "awardCeiling"
ATTR_AWARD_FLOOR = "awardFloor"
ATTR_POST_DATE = "postDate"
ATTR_CLOSE_DATE = "closeDate"
ATTR_APPLICANT_TYPES = "applicantTypes"
ATTR_FUNDING_CATEGORIES = "fundingCategories"
ATTR_ELIGIBLE_STATES = "eligibleStates"
ATTR_REQUIRES_ESSAY = "requiresEssay"
ATTR_FUNDING_INSTRUMENT = "fundingInstrument"
ATTR_CFDA_NUMBER = "cfdaNumber"
ATTR_APPLICATION_URL = "applicationUrl"
ATTR_KEYWORDS = "keywords"

LIST_ATTRIBUTES = (ATTR_APPLICANT_TYPES, ATTR_FUNDING_CATEGORIES, ATTR_ELIGIBLE_STATES)


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_float(key: str, value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(str(value).replace(",", "").replace("$", ""))
    except ValueError:
        logger.debug("malformed_attribute", attribute=key, value=repr(value))
        return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return _as_str(value).lower() in ("true", "1", "yes", "on")


def _as_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        items: list[Any] = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
    else:
        items = [value]
    return [str(item).strip() for item in items if item is not None and str(item).strip()]


def grant_from_attributes(
    attributes: Mapping[str, Any],
    entity_id: str = "",
    name: str = "",
    description: str = "",
) -> GrantOpportunity:
    """Build a GrantOpportunity from an attribute bag.

    Args:
        attributes: Attribute map as returned by the vector search service
        entity_id: Identifier of the entity in the vector search service
        name: Entity name
        description: Entity narrative text

    Returns:
        A GrantOpportunity; absent or malformed fields take their defaults
    """
    close_raw = attributes.get(ATTR_CLOSE_DATE)
    close_date = parse_datetime_utc(close_raw)
    if close_raw not in (None, "") and close_date is None:
        logger.debug("malformed_attribute", attribute=ATTR_CLOSE_DATE, value=repr(close_raw))

    return GrantOpportunity(
        id=_as_str(attributes.get(ATTR_GRANT_ID)) or entity_id,
        name=name,
        opportunity_number=_as_str(attributes.get(ATTR_OPPORTUNITY_NUMBER)),
        agency=_as_str(attributes.get(ATTR_AGENCY)),
        agency_code=_as_str(attributes.get(ATTR_AGENCY_CODE)),
        description=description,
        natural_language_summary=description,
        applicant_types=_as_str_list(attributes.get(ATTR_APPLICANT_TYPES)),
        funding_categories=_as_str_list(attributes.get(ATTR_FUNDING_CATEGORIES)),
        eligible_states=_as_str_list(attributes.get(ATTR_ELIGIBLE_STATES)),
        award_ceiling=_as_float(ATTR_AWARD_CEILING, attributes.get(ATTR_AWARD_CEILING)),
        award_floor=_as_float(ATTR_AWARD_FLOOR, attributes.get(ATTR_AWARD_FLOOR)),
        post_date=parse_datetime_utc(attributes.get(ATTR_POST_DATE)),
        close_date=close_date,
        requires_essay=_as_bool(attributes.get(ATTR_REQUIRES_ESSAY)),
        funding_instrument=_as_str(attributes.get(ATTR_FUNDING_INSTRUMENT)),
        cfda_number=_as_str(attributes.get(ATTR_CFDA_NUMBER)),
        application_url=_as_str(attributes.get(ATTR_APPLICATION_URL)),
        keywords=_as_str_list(attributes.get(ATTR_KEYWORDS)),
        entity_id=entity_id or None,
    )


def grant_from_candidate(candidate: SearchCandidate) -> GrantOpportunity:
    return grant_from_attributes(
        candidate.attributes,
        entity_id=candidate.entity_id,
        name=candidate.name,
        description=candidate.description,
    )


def grant_to_attributes(grant: GrantOpportunity) -> dict[str, Any]:
    """Inverse of ``grant_from_attributes`` for storing entities."""
    attributes: dict[str, Any] = {
        ATTR_GRANT_ID: grant.id,
        ATTR_OPPORTUNITY_NUMBER: grant.opportunity_number,
        ATTR_AGENCY: grant.agency,
        ATTR_AGENCY_CODE: grant.agency_code,
        ATTR_APPLICANT_TYPES: list(grant.applicant_types),
        ATTR_FUNDING_CATEGORIES: list(grant.funding_categories),
        ATTR_ELIGIBLE_STATES: list(grant.eligible_states),
        ATTR_REQUIRES_ESSAY: grant.requires_essay,
        ATTR_FUNDING_INSTRUMENT: grant.funding_instrument,
        ATTR_CFDA_NUMBER: grant.cfda_number,
        ATTR_APPLICATION_URL: grant.application_url,
        ATTR_KEYWORDS: list(grant.keywords),
    }

    if grant.award_ceiling is not None:
        attributes[ATTR_AWARD_CEILING] = grant.award_ceiling
    if grant.award_floor is not None:
        attributes[ATTR_AWARD_FLOOR] = grant.award_floor
    if grant.post_date is not None:
        attributes[ATTR_POST_DATE] = grant.post_date.isoformat()
    if grant.close_date is not None:
        attributes[ATTR_CLOSE_DATE] = grant.close_date.isoformat()

    return attributes
