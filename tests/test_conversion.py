"""
Tests for the attribute bag conversion boundary and predicate construction.
"""

from datetime import datetime, timezone

from grant_matcher.entities import ApplicantProfile, PredicateOperator, SearchFilters
from grant_matcher.matching import build_predicate, grant_from_attributes, grant_to_attributes


def test_grant_survives_attribute_round_trip(grant_factory):
    grant = grant_factory("grant-1", award_floor=1_000.0, requires_essay=True, keywords=["reading"])
    restored = grant_from_attributes(
        grant_to_attributes(grant),
        entity_id="entity-9",
        name=grant.name,
        description=grant.description,
    )

    assert restored.id == "grant-1"
    assert restored.entity_id == "entity-9"
    assert restored.eligible_states == ["CA", "NY"]
    assert restored.award_floor == 1_000.0
    assert restored.close_date == grant.close_date
    assert restored.requires_essay is True


def test_malformed_values_fall_back_to_defaults():
    grant = grant_from_attributes(
        {
            "grantId": "g-1",
            "awardCeiling": "lots",
            "closeDate": "next tuesday",
            "requiresEssay": "nope",
            "eligibleStates": None,
        }
    )
    assert grant.award_ceiling is None
    assert grant.close_date is None
    assert grant.requires_essay is False
    assert grant.eligible_states == []


def test_loose_encodings_are_accepted():
    grant = grant_from_attributes(
        {
            "awardCeiling": "$25,000",
            "closeDate": "2025-09-30T17:00:00Z",
            "eligibleStates": "CA, OR",
            "requiresEssay": "true",
        },
        entity_id="entity-1",
    )
    assert grant.id == "entity-1"
    assert grant.award_ceiling == 25_000.0
    assert grant.close_date == datetime(2025, 9, 30, 17, 0, tzinfo=timezone.utc)
    assert grant.eligible_states == ["CA", "OR"]
    assert grant.requires_essay is True


def test_predicate_from_profile(applicant):
    predicate = build_predicate(applicant)
    assert [(p.field_path, p.operator, p.value) for p in predicate] == [
        ("attributes.eligibleStates", PredicateOperator.CONTAINS_OR_EMPTY, "CA"),
        ("attributes.applicantTypes", PredicateOperator.CONTAINS_OR_EMPTY, ["nonprofit"]),
        ("attributes.fundingCategories", PredicateOperator.CONTAINS_OR_EMPTY, ["education"]),
    ]


def test_predicate_skips_unstated_profile_fields():
    assert build_predicate(ApplicantProfile(id="org-2")) == []


def test_predicate_dedupes_tags():
    applicant = ApplicantProfile(id="org-2", funding_categories=["Health", "health ", "arts"])
    [term] = build_predicate(applicant)
    assert term.value == ["Health", "arts"]


def test_predicate_includes_filters():
    after = datetime(2025, 7, 1, tzinfo=timezone.utc)
    filters = SearchFilters(max_award_amount=50_000.0, deadline_after=after, requires_essay=True)
    predicate = build_predicate(ApplicantProfile(id="org-2"), filters)
    assert [(p.field_path, p.operator, p.value) for p in predicate] == [
        ("attributes.awardCeiling", PredicateOperator.LESS_THAN_OR_EQUAL, 50_000.0),
        ("attributes.closeDate", PredicateOperator.GREATER_THAN_OR_EQUAL, after),
        ("attributes.requiresEssay", PredicateOperator.EQUAL, True),
    ]
