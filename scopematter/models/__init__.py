"""
Scopematter — SQLAlchemy models package.

The ``db`` extension object is created here and bound to the app in
``scopematter.create_app`` (``db.init_app``). Services receive ``db.session``
explicitly from the blueprint layer; they never import it themselves.
"""

from datetime import datetime, timezone
import uuid

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    """Serialise a datetime for JSON / cache payloads (SQLite drops tzinfo)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
