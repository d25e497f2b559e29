"""Pure matching functions.

Nothing in this package performs I/O, holds state or needs locking; every
function is safe to call concurrently from many tasks or threads.
"""

from .conversion import grant_from_attributes, grant_from_candidate, grant_to_attributes
from .eligibility import EligibilityConfig, EligibilityVerdict, check_eligibility
from .predicates import build_predicate
from .scoring import ScoringConfig, rank, ranking_key, score

__all__ = [
    "EligibilityConfig",
    "EligibilityVerdict",
    "ScoringConfig",
    "build_predicate",
    "check_eligibility",
    "grant_from_attributes",
    "grant_from_candidate",
    "grant_to_attributes",
    "rank",
    "ranking_key",
    "score",
]
