"""Attribute predicate construction for the vector search collaborator."""

from grant_matcher.entities import (
    ApplicantProfile,
    AttributePredicate,
    PredicateOperator,
    SearchFilters,
)

from .conversion import (
    ATTR_APPLICANT_TYPES,
    ATTR_AWARD_CEILING,
    ATTR_CLOSE_DATE,
    ATTR_ELIGIBLE_STATES,
    ATTR_FUNDING_CATEGORIES,
    ATTR_REQUIRES_ESSAY,
)


def field_path(attribute: str) -> str:
    return f"attributes.{attribute}"


def _dedupe(values: list[str]) -> list[str]:
    result: list[str] = []
    seen: set[str] = set()
    for value in values:
        stripped = value.strip()
        if stripped and stripped.casefold() not in seen:
            seen.add(stripped.casefold())
            result.append(stripped)
    return result


def build_predicate(
    applicant: ApplicantProfile,
    filters: SearchFilters | None = None,
) -> list[AttributePredicate]:
    """Translate eligibility rules and request filters into a conjunctive predicate.

    Each allow-list rule becomes ``ContainsOrEmpty`` so that grants with an
    empty allow-list are still returned. Multi-valued applicant tags are sent
    as a list meaning "contains any of".
    """
    predicate: list[AttributePredicate] = []

    if applicant.state.strip():
        predicate.append(
            AttributePredicate(
                field_path(ATTR_ELIGIBLE_STATES),
                PredicateOperator.CONTAINS_OR_EMPTY,
                applicant.state.strip(),
            )
        )

    applicant_types = _dedupe(applicant.applicant_types)
    if applicant_types:
        predicate.append(
            AttributePredicate(
                field_path(ATTR_APPLICANT_TYPES),
                PredicateOperator.CONTAINS_OR_EMPTY,
                applicant_types,
            )
        )

    funding_categories = _dedupe(applicant.funding_categories)
    if funding_categories:
        predicate.append(
            AttributePredicate(
                field_path(ATTR_FUNDING_CATEGORIES),
                PredicateOperator.CONTAINS_OR_EMPTY,
                funding_categories,
            )
        )

    if filters is None:
        return predicate

    if filters.min_award_amount is not None:
        predicate.append(
            AttributePredicate(
                field_path(ATTR_AWARD_CEILING),
                PredicateOperator.GREATER_THAN_OR_EQUAL,
                filters.min_award_amount,
            )
        )

    if filters.max_award_amount is not None:
        predicate.append(
            AttributePredicate(
                field_path(ATTR_AWARD_CEILING),
                PredicateOperator.LESS_THAN_OR_EQUAL,
                filters.max_award_amount,
            )
        )

    if filters.deadline_after is not None:
        predicate.append(
            AttributePredicate(
                field_path(ATTR_CLOSE_DATE),
                PredicateOperator.GREATER_THAN_OR_EQUAL,
                filters.deadline_after,
            )
        )

    if filters.deadline_before is not None:
        predicate.append(
            AttributePredicate(
                field_path(ATTR_CLOSE_DATE),
                PredicateOperator.LESS_THAN_OR_EQUAL,
                filters.deadline_before,
            )
        )

    if filters.requires_essay is not None:
        predicate.append(
            AttributePredicate(
                field_path(ATTR_REQUIRES_ESSAY),
                PredicateOperator.EQUAL,
                filters.requires_essay,
            )
        )

    return predicate
