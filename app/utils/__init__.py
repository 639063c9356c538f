"""Utility functions."""

from app.utils.time import ensure_utc, format_display_date, truncate_to_hour, utc_now

__all__ = ["utc_now", "ensure_utc", "truncate_to_hour", "format_display_date"]
