"""Handler layer for HTTP endpoints.

Handlers depend on services, not directly on repositories, and are the only
place domain errors become HTTP status codes.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Orchestration) -> (Collaborators)
"""

from .diagnostics_handler import DiagnosticsHandler
from .errors import to_http_exception, translate_errors
from .matching_handler import MatchingHandler

__all__ = [
    "DiagnosticsHandler",
    "MatchingHandler",
    "to_http_exception",
    "translate_errors",
]
