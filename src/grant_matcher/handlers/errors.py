"""Mapping of domain errors to HTTP responses."""

import math
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from fastapi import HTTPException, status

from grant_matcher.errors import (
    CollaboratorRequestError,
    CollaboratorUnavailableError,
    FeatureUnavailableError,
    GrantMatcherError,
    InvalidRequestError,
    NotFoundError,
    QueueFullError,
    RateLimitedError,
)

logger = structlog.get_logger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 5


def _retry_headers(retry_after: float | None) -> dict[str, str]:
    seconds = math.ceil(retry_after) if retry_after is not None else DEFAULT_RETRY_AFTER_SECONDS
    return {"Retry-After": str(seconds)}


def to_http_exception(error: GrantMatcherError) -> HTTPException:
    """Translate a domain error into an HTTPException.

    Rate limiting (429) and unavailability (503) stay distinguishable from
    each other and from an empty result, and both carry ``Retry-After``.
    """
    if isinstance(error, InvalidRequestError):
        return HTTPException(
            status_code=422,
            detail={"field": error.field, "message": error.message},
        )
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, RateLimitedError):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"{error.collaborator} is rate limiting requests; retry later",
            headers=_retry_headers(error.retry_after),
        )
    if isinstance(error, CollaboratorUnavailableError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{error.collaborator} is temporarily unavailable; retry later",
            headers=_retry_headers(error.retry_after),
        )
    if isinstance(error, QueueFullError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(error),
            headers=_retry_headers(None),
        )
    if isinstance(error, CollaboratorRequestError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(error))
    if isinstance(error, FeatureUnavailableError):
        return HTTPException(status_code=status.HTTP_501_NOT_IMPLEMENTED, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Re-raise domain errors raised inside the block as HTTPException."""
    try:
        yield
    except GrantMatcherError as e:
        http_error = to_http_exception(e)
        log = logger.warning if http_error.status_code >= 500 else logger.info
        log("request_failed", operation=operation, status_code=http_error.status_code, error=str(e))
        raise http_error from e
