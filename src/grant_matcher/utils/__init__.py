"""Utility modules for the grant matcher."""

from .datetime_utils import ensure_utc, parse_datetime_utc, utc_now

__all__ = ["ensure_utc", "parse_datetime_utc", "utc_now"]
