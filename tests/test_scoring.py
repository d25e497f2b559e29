"""
Tests for composite scoring and deterministic ranking.
"""

import dataclasses
from datetime import timedelta

import pytest

from grant_matcher.matching import ScoringConfig, rank, score


def test_larger_later_grant_outranks_closer_match(applicant, grant_factory, now):
    """A lower-similarity grant with a big award and a far deadline ranks first."""
    grant_a = grant_factory("grant-a", award_ceiling=10_000.0, close_date=now + timedelta(days=10))
    grant_b = grant_factory("grant-b", award_ceiling=500_000.0, close_date=now + timedelta(days=120))

    match_a = score(applicant, grant_a, 0.9, now=now)
    match_b = score(applicant, grant_b, 0.8, now=now)

    assert match_a.composite_score == pytest.approx(0.694)
    assert match_b.composite_score == pytest.approx(0.88)
    assert [m.grant_id for m in rank([match_a, match_b])] == ["grant-b", "grant-a"]


def test_breakdown_sums_to_composite(applicant, grant_factory, now):
    match = score(applicant, grant_factory(award_ceiling=125_000.0), 0.7, now=now)
    breakdown = match.breakdown
    total = (
        breakdown.semantic
        + breakdown.mission_alignment
        + breakdown.award_amount
        + breakdown.deadline_proximity
    )
    assert total == pytest.approx(match.composite_score)
    assert breakdown.award_amount == pytest.approx(0.2 * 0.25)


@pytest.mark.parametrize("similarity", [-0.5, 0.0, 0.42, 1.0, 1.7])
def test_composite_stays_in_unit_interval(applicant, grant_factory, now, similarity):
    match = score(applicant, grant_factory(award_ceiling=9_000_000.0), similarity, now=now)
    assert 0.0 <= match.semantic_similarity <= 1.0
    assert 0.0 <= match.composite_score <= 1.0


def test_eligibility_does_not_change_the_score(applicant, grant_factory, now):
    eligible = grant_factory(eligible_states=["CA"])
    ineligible = dataclasses.replace(eligible, eligible_states=["NY"])

    a = score(applicant, eligible, 0.75, now=now)
    b = score(applicant, ineligible, 0.75, now=now)

    assert a.is_eligible and not b.is_eligible
    assert a.composite_score == pytest.approx(b.composite_score)
    assert b.unmet_requirements


def test_missing_close_date_gets_full_deadline_factor(applicant, grant_factory, now):
    match = score(applicant, grant_factory(close_date=None), 0.5, now=now)
    assert match.breakdown.deadline_proximity == pytest.approx(0.1)


def test_mission_alignment_neutral_without_categories(applicant, grant_factory, now):
    match = score(applicant, grant_factory(funding_categories=[]), 0.5, now=now)
    assert match.breakdown.mission_alignment == pytest.approx(0.05)


def test_ties_break_on_soonest_deadline(applicant, grant_factory, now):
    later = grant_factory("grant-x", close_date=now + timedelta(days=200))
    sooner = grant_factory("grant-y", close_date=now + timedelta(days=90))

    ranked = rank([score(applicant, later, 0.8, now=now), score(applicant, sooner, 0.8, now=now)])

    assert ranked[0].composite_score == pytest.approx(ranked[1].composite_score)
    assert [m.grant_id for m in ranked] == ["grant-y", "grant-x"]


def test_ties_break_on_grant_id_last(applicant, grant_factory, now):
    close = now + timedelta(days=90)
    matches = [score(applicant, grant_factory(gid, close_date=close), 0.8, now=now) for gid in ("c", "a", "b")]
    assert [m.grant_id for m in rank(matches)] == ["a", "b", "c"]


def test_ranking_is_independent_of_input_order(applicant, grant_factory, now):
    matches = [
        score(applicant, grant_factory(f"g{i}", award_ceiling=1_000.0 * i), 0.5 + i / 100, now=now)
        for i in range(10)
    ]
    assert [m.grant_id for m in rank(matches)] == [m.grant_id for m in rank(list(reversed(matches)))]


def test_weights_must_sum_to_one():
    with pytest.raises(ValueError):
        ScoringConfig(semantic_weight=0.9)


def test_custom_weights(applicant, grant_factory, now):
    semantic_only = ScoringConfig(semantic_weight=1.0, mission_weight=0.0, award_weight=0.0, deadline_weight=0.0)
    match = score(applicant, grant_factory(), 0.37, semantic_only, now=now)
    assert match.composite_score == pytest.approx(0.37)
