"""
Change order service — the Request → ChangeOrder state machine.

Creation eligibility (one compound, row-locking query in the same
transaction as the insert):
    request.id == request_id
    AND request.project_id == project_id
    AND project.user_id == user_id
    AND request.status == OUT_OF_SCOPE
    AND NOT EXISTS (change order for the request)
Any miss is REQUEST_NOT_ELIGIBLE; which condition failed is not disclosed.
The UNIQUE constraint on change_orders.request_id backs this up: a
concurrent duplicate that slips past the check fails on insert and is
reported the same way.

Update / delete gate, in order:
    project ownership      → PROJECT_NOT_FOUND
    change order in scope  → CHANGE_ORDER_NOT_FOUND
    current status PENDING → INVALID_STATUS_UPDATE
    transition table       → INVALID_STATUS_UPDATE
APPROVED and REJECTED are absorbing: nothing about a decided change order
can change, not even a same-status write or a price-only edit.

Price and extra_days are checked here, before any database access.
"""

import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError

from scopematter.core.exceptions import (
    ConflictError,
    NotFoundError,
    ServiceErrorCode,
    ValidationError,
)
from scopematter.models.change_order import (
    CHANGE_ORDER_STATUSES,
    MAX_EXTRA_DAYS,
    MAX_PRICE_USD,
    ChangeOrder,
    Request,
    is_change_order_editable,
    validate_change_order_transition,
)
from scopematter.models.project import Project
from scopematter.services.helpers.scoped_queries import assert_project_ownership
from scopematter.services.helpers.transactions import atomic

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_MAX_PRICE = Decimal(MAX_PRICE_USD)


# ── Boundary validation ──────────────────────────────────────────────────


def validate_price_usd(value) -> Decimal:
    """Return *value* as a 2-place Decimal or raise ValidationError.

    Accepts int, float, str or Decimal. Must be > 0, ≤ 999999.99 and carry at
    most two fractional digits (300.005 is rejected, not rounded).
    """
    if value is None or isinstance(value, bool):
        raise ValidationError("price_usd must be a number", details={"price_usd": "invalid"})
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError("price_usd must be a number", details={"price_usd": "invalid"}) from None
    if not price.is_finite():
        raise ValidationError("price_usd must be a number", details={"price_usd": "invalid"})
    if price <= 0:
        raise ValidationError("price_usd must be positive", details={"price_usd": "not_positive"})
    if price > _MAX_PRICE:
        raise ValidationError(
            f"price_usd must be at most {MAX_PRICE_USD}", details={"price_usd": "too_large"},
        )
    if price != price.quantize(_CENT):
        raise ValidationError(
            "price_usd must have at most 2 decimal places", details={"price_usd": "precision"},
        )
    return price.quantize(_CENT)


def validate_extra_days(value) -> int | None:
    """None passes through; otherwise an integer in 1..365."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("extra_days must be an integer", details={"extra_days": "invalid"})
    if value < 1 or value > MAX_EXTRA_DAYS:
        raise ValidationError(
            f"extra_days must be between 1 and {MAX_EXTRA_DAYS}",
            details={"extra_days": "out_of_range"},
        )
    return value


def _validate_status(value):
    if value is not None and value not in CHANGE_ORDER_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(sorted(CHANGE_ORDER_STATUSES))}",
            details={"status": "invalid"},
        )
    return value


# ── Lookups ──────────────────────────────────────────────────────────────


def _find_eligible_request(session, project_id, request_id, user_id):
    has_change_order = exists().where(ChangeOrder.request_id == Request.id)
    stmt = (
        select(Request)
        .join(Project, Project.id == Request.project_id)
        .where(
            Request.id == request_id,
            Request.project_id == project_id,
            Project.user_id == user_id,
            Request.status == "OUT_OF_SCOPE",
            ~has_change_order,
        )
        .with_for_update(of=Request)
    )
    return session.execute(stmt).scalar_one_or_none()


def _get_scoped_change_order(session, project_id, change_order_id, user_id) -> ChangeOrder:
    stmt = select(ChangeOrder).where(
        ChangeOrder.id == change_order_id,
        ChangeOrder.project_id == project_id,
        ChangeOrder.user_id == user_id,
    )
    change_order = session.execute(stmt).scalar_one_or_none()
    if change_order is None:
        raise NotFoundError(ServiceErrorCode.CHANGE_ORDER_NOT_FOUND)
    return change_order


# ── Operations ───────────────────────────────────────────────────────────


def create_change_order(*, session, cache, project_id, request_id, user_id,
                        price_usd, extra_days=None) -> ChangeOrder:
    """Create a PENDING change order from an eligible OUT_OF_SCOPE request.

    Raises:
        ValidationError: price_usd / extra_days out of bounds (checked first).
        ConflictError: REQUEST_NOT_ELIGIBLE.
    """
    price = validate_price_usd(price_usd)
    days = validate_extra_days(extra_days)

    with atomic(session):
        request = _find_eligible_request(session, project_id, request_id, user_id)
        if request is None:
            logger.info(
                "Change order rejected: request not eligible",
                extra={"project_id": project_id, "user_id": user_id},
            )
            raise ConflictError(ServiceErrorCode.REQUEST_NOT_ELIGIBLE)

        change_order = ChangeOrder(
            request_id=request.id,
            project_id=project_id,
            user_id=user_id,
            price_usd=price,
            extra_days=days,
            status="PENDING",
        )
        session.add(change_order)
        try:
            session.flush()
        except IntegrityError:
            logger.warning(
                "Concurrent change order insert for request %s", request_id,
                extra={"project_id": project_id, "user_id": user_id},
            )
            raise ConflictError(ServiceErrorCode.REQUEST_NOT_ELIGIBLE) from None

    logger.info(
        "Change order %s created", change_order.id,
        extra={"project_id": project_id, "user_id": user_id},
    )
    cache.invalidate_project(project_id, user_id)
    return change_order


def list_change_orders(*, session, project_id, user_id) -> list[ChangeOrder]:
    """Change orders of an owned project, newest first."""
    assert_project_ownership(session, project_id, user_id)
    stmt = (
        select(ChangeOrder)
        .where(ChangeOrder.project_id == project_id, ChangeOrder.user_id == user_id)
        .order_by(ChangeOrder.created_at.desc())
    )
    return list(session.execute(stmt).scalars())


def get_change_order(*, session, project_id, change_order_id, user_id) -> ChangeOrder:
    assert_project_ownership(session, project_id, user_id)
    return _get_scoped_change_order(session, project_id, change_order_id, user_id)


def update_change_order(*, session, cache, project_id, change_order_id, user_id,
                        price_usd=None, extra_days=None, status=None) -> ChangeOrder:
    """Update a PENDING change order. Arguments left as None are not written."""
    changes = {}
    if price_usd is not None:
        changes["price_usd"] = validate_price_usd(price_usd)
    if extra_days is not None:
        changes["extra_days"] = validate_extra_days(extra_days)
    if status is not None:
        changes["status"] = _validate_status(status)

    with atomic(session):
        assert_project_ownership(session, project_id, user_id)
        change_order = _get_scoped_change_order(session, project_id, change_order_id, user_id)

        if not is_change_order_editable(change_order.status):
            logger.warning(
                "Change order %s is %s — update refused", change_order.id, change_order.status,
                extra={"project_id": project_id, "user_id": user_id},
            )
            raise ConflictError(ServiceErrorCode.INVALID_STATUS_UPDATE)

        if status is not None and not validate_change_order_transition(change_order.status, status):
            raise ConflictError(ServiceErrorCode.INVALID_STATUS_UPDATE)

        old_status = change_order.status
        for key, value in changes.items():
            setattr(change_order, key, value)
        session.flush()

    logger.info(
        "Change order %s updated (%s → %s)", change_order.id, old_status, change_order.status,
        extra={"project_id": project_id, "user_id": user_id},
    )
    cache.invalidate_project(project_id, user_id)
    return change_order


def delete_change_order(*, session, cache, project_id, change_order_id, user_id) -> dict:
    """Delete a PENDING change order; decided ones are permanent."""
    with atomic(session):
        assert_project_ownership(session, project_id, user_id)
        change_order = _get_scoped_change_order(session, project_id, change_order_id, user_id)
        if not is_change_order_editable(change_order.status):
            raise ConflictError(ServiceErrorCode.INVALID_STATUS_UPDATE)
        session.delete(change_order)

    logger.info(
        "Change order %s deleted", change_order_id,
        extra={"project_id": project_id, "user_id": user_id},
    )
    cache.invalidate_project(project_id, user_id)
    return {"id": change_order_id}
