"""Shared utility functions for services and blueprints.

utcnow / as_utc:            timezone-aware timestamps (SQLite drops tzinfo)
start_of_month / _week:     dashboard growth windows
parse_datetime:             ISO-8601 input → aware datetime, ValidationError otherwise
get_json_body:              request body as dict or ValidationError
"""
import logging
from datetime import datetime, timedelta, timezone

from flask import request

from scopematter.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def start_of_week(now: datetime) -> datetime:
    """Midnight of the most recent Sunday (weeks start on Sunday)."""
    # weekday(): Monday=0 … Sunday=6
    days_since_sunday = (now.weekday() + 1) % 7
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight - timedelta(days=days_since_sunday)


def parse_datetime(value, field: str = "expires_at") -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC.

    Returns None for empty input, raises ValidationError for anything else
    that does not parse.
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field} must be an ISO-8601 datetime", details={field: "invalid"},
        ) from None
    return as_utc(parsed)


def get_json_body() -> dict:
    """Return the request JSON object, or raise ValidationError."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
