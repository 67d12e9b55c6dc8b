"""
User service — local mirror of identity-provider users.

The provider pushes lifecycle events to the identity webhook:
    user.created / user.updated → idempotent upsert by external id
    user.deleted                → is_active = False (row kept for FKs)

Payload shape (``data``):
    {"id": "...", "email_addresses": [{"email_address": "..."}],
     "username": ..., "first_name": ..., "last_name": ..., "image_url": ...}
"""

import logging

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import select

from scopematter.core.exceptions import ValidationError
from scopematter.models.auth import AppUser
from scopematter.services.helpers.transactions import atomic

logger = logging.getLogger(__name__)

USER_EVENTS = frozenset({"user.created", "user.updated", "user.deleted"})


def _primary_email(data: dict) -> str | None:
    addresses = data.get("email_addresses") or []
    if not addresses or not isinstance(addresses[0], dict):
        return None
    email = addresses[0].get("email_address")
    if not email:
        return None
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError:
        logger.warning("Identity payload carried an invalid email — stored as-is")
        return email


def get_user_by_external_id(session, external_id) -> AppUser | None:
    if not external_id:
        return None
    return session.execute(
        select(AppUser).where(AppUser.external_id == external_id)
    ).scalar_one_or_none()


def get_active_user_by_external_id(session, external_id) -> AppUser | None:
    user = get_user_by_external_id(session, external_id)
    if user is None or not user.is_active:
        return None
    return user


def upsert_app_user(session, data: dict, event_type: str) -> AppUser | None:
    """Apply one identity event. Returns the affected user, or None when a
    deletion names an unknown user.

    Raises:
        ValidationError: unknown event type or missing ``data.id``.
    """
    if event_type not in USER_EVENTS:
        raise ValidationError(f"Unsupported event type: {event_type}", details={"type": "invalid"})
    if not isinstance(data, dict) or not data.get("id"):
        raise ValidationError("data.id is required", details={"data.id": "required"})

    external_id = str(data["id"])

    with atomic(session):
        user = get_user_by_external_id(session, external_id)

        if event_type == "user.deleted":
            if user is None:
                logger.info("user.deleted for unknown user — ignored", extra={"event_type": event_type})
                return None
            user.is_active = False
            session.flush()
            logger.info("User deactivated", extra={"user_id": user.id, "event_type": event_type})
            return user

        if user is None:
            user = AppUser(external_id=external_id)
            session.add(user)

        user.email = _primary_email(data)
        user.username = data.get("username")
        user.first_name = data.get("first_name")
        user.last_name = data.get("last_name")
        user.image_url = data.get("image_url")
        user.is_active = True
        session.flush()

    logger.info("User upserted", extra={"user_id": user.id, "event_type": event_type})
    return user
