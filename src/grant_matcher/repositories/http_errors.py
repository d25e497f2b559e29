"""Translation of HTTP collaborator failures into domain errors."""

import httpx

from grant_matcher.errors import (
    CollaboratorRequestError,
    CollaboratorUnavailableError,
    RateLimitedError,
)


def retry_after_seconds(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


def raise_for_collaborator_status(collaborator: str, response: httpx.Response) -> None:
    """Raise the domain error matching a non-2xx response.

    429 is rate limiting, 5xx is unavailability (both retryable), any other
    4xx means the request itself was rejected.
    """
    if response.is_success:
        return

    status = response.status_code
    if status == 429:
        raise RateLimitedError(collaborator, retry_after=retry_after_seconds(response))
    if status >= 500:
        raise CollaboratorUnavailableError(
            collaborator,
            f"HTTP {status}",
            retry_after=retry_after_seconds(response),
        )
    raise CollaboratorRequestError(collaborator, status, response.text[:500])


def transport_error(collaborator: str, error: httpx.HTTPError) -> CollaboratorUnavailableError:
    if isinstance(error, httpx.TimeoutException):
        return CollaboratorUnavailableError(collaborator, "request timed out")
    return CollaboratorUnavailableError(collaborator, str(error) or type(error).__name__)
