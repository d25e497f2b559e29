"""Domain error hierarchy.

Eligibility mismatches are never errors; they are reported as data on
``MatchResult.unmet_requirements``. Everything here is raised for conditions
the caller has to act on.
"""


class GrantMatcherError(Exception):
    """Base class for all grant matcher errors."""

    retryable: bool = False


class InvalidRequestError(GrantMatcherError, ValueError):
    """A request field is missing or malformed. Never retried."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class NotFoundError(GrantMatcherError, LookupError):
    """A referenced applicant profile or grant does not exist."""

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class CollaboratorUnavailableError(GrantMatcherError):
    """An external collaborator timed out or failed. Retryable by the caller."""

    retryable = True

    def __init__(self, collaborator: str, message: str, retry_after: float | None = None) -> None:
        super().__init__(f"{collaborator} unavailable: {message}")
        self.collaborator = collaborator
        self.message = message
        self.retry_after = retry_after


class RateLimitedError(CollaboratorUnavailableError):
    """An external collaborator rejected the call with a rate limit."""

    def __init__(self, collaborator: str, retry_after: float | None = None) -> None:
        super().__init__(collaborator, "rate limited", retry_after=retry_after)


class CollaboratorRequestError(GrantMatcherError):
    """An external collaborator rejected the call as invalid. Not retryable."""

    def __init__(self, collaborator: str, status_code: int, message: str) -> None:
        super().__init__(f"{collaborator} rejected request ({status_code}): {message}")
        self.collaborator = collaborator
        self.status_code = status_code
        self.message = message


class FeatureUnavailableError(GrantMatcherError):
    """An optional collaborator needed for this feature is not configured."""

    def __init__(self, feature: str) -> None:
        super().__init__(f"Feature not configured: {feature}")
        self.feature = feature


class QueueFullError(GrantMatcherError):
    """The background task queue is at capacity."""
