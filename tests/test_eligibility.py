"""
Tests for the hard eligibility rules.
"""

import dataclasses
from datetime import timedelta

from grant_matcher.entities import ApplicantProfile
from grant_matcher.matching import EligibilityConfig, check_eligibility


def test_matching_grant_is_eligible(applicant, grant_factory, now):
    """A grant whose allow-lists include the applicant has no unmet requirements."""
    verdict = check_eligibility(applicant, grant_factory(), now=now)
    assert verdict.is_eligible
    assert verdict.unmet == []


def test_empty_allow_lists_always_pass(applicant, grant_factory, now):
    grant = grant_factory(applicant_types=[], funding_categories=[], eligible_states=[])
    verdict = check_eligibility(applicant, grant, now=now)
    assert verdict.is_eligible


def test_state_mismatch_is_reported(applicant, grant_factory, now):
    verdict = check_eligibility(applicant, grant_factory(eligible_states=["NY", "NJ"]), now=now)
    assert not verdict.is_eligible
    assert verdict.unmet == ["Organization must be located in: NY, NJ"]


def test_applicant_without_state_fails_restricted_grant(applicant, grant_factory, now):
    stateless = dataclasses.replace(applicant, state="")
    verdict = check_eligibility(stateless, grant_factory(eligible_states=["CA"]), now=now)
    assert not verdict.is_eligible


def test_applicant_type_mismatch(applicant, grant_factory, now):
    grant = grant_factory(applicant_types=["small business", "individual"])
    verdict = check_eligibility(applicant, grant, now=now)
    assert not verdict.is_eligible
    assert verdict.unmet == ["Organization type must be one of: small business, individual"]


def test_tag_comparison_ignores_case(applicant, grant_factory, now):
    grant = grant_factory(applicant_types=["Nonprofit"], funding_categories=["EDUCATION"])
    assert check_eligibility(applicant, grant, now=now).is_eligible


def test_untagged_applicant_passes_type_and_category_checks(grant_factory, now):
    applicant = ApplicantProfile(id="org-2", state="CA")
    grant = grant_factory(applicant_types=["small business"], funding_categories=["energy"])
    verdict = check_eligibility(applicant, grant, now=now)
    assert verdict.is_eligible


def test_category_mismatch(applicant, grant_factory, now):
    verdict = check_eligibility(applicant, grant_factory(funding_categories=["energy"]), now=now)
    assert not verdict.is_eligible
    assert verdict.unmet == ["Funding focus must align with: energy"]


def test_passed_deadline_is_hard(applicant, grant_factory, now):
    grant = grant_factory(close_date=now - timedelta(days=1))
    verdict = check_eligibility(applicant, grant, now=now)
    assert not verdict.is_eligible
    assert verdict.unmet == ["Deadline has passed (May 31, 2025)"]


def test_budget_checks_are_advisory(applicant, grant_factory, now):
    """Budget mismatches are listed but never make the applicant ineligible."""
    grant = grant_factory(award_floor=100_000.0, award_ceiling=1_000_000.0)
    verdict = check_eligibility(applicant, grant, now=now)
    assert verdict.is_eligible
    assert verdict.unmet == [
        "Typical project budget may be too small for this grant (minimum award: $100,000)",
        "Grant size may exceed organizational capacity (award up to $1,000,000)",
    ]


def test_budget_thresholds_are_configurable(applicant, grant_factory, now):
    grant = grant_factory(award_ceiling=1_000_000.0)
    lenient = EligibilityConfig(max_award_budget_multiple=10.0)
    assert check_eligibility(applicant, grant, lenient, now=now).unmet == []


def test_hard_reasons_come_before_advisory(applicant, grant_factory, now):
    grant = grant_factory(eligible_states=["NY"], award_ceiling=1_000_000.0)
    verdict = check_eligibility(applicant, grant, now=now)
    assert verdict.unmet[0].startswith("Organization must be located in")
    assert verdict.unmet[1].startswith("Grant size may exceed")


def test_every_unmet_constraint_is_listed(applicant, grant_factory, now):
    grant = grant_factory(
        applicant_types=["individual"],
        eligible_states=["TX"],
        funding_categories=["energy"],
        close_date=now - timedelta(days=3),
    )
    verdict = check_eligibility(applicant, grant, now=now)
    assert not verdict.is_eligible
    assert len(verdict.unmet) == 4


def test_adding_a_constraint_never_makes_an_ineligible_grant_eligible(applicant, grant_factory, now):
    base = grant_factory(eligible_states=["NY"])
    assert not check_eligibility(applicant, base, now=now).is_eligible

    stricter = dataclasses.replace(base, applicant_types=["individual"])
    assert not check_eligibility(applicant, stricter, now=now).is_eligible
