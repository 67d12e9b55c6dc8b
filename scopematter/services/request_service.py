"""
Request service — client requests logged against a project.

Lifecycle: created PENDING; updates may set IN_SCOPE or OUT_OF_SCOPE in any
order (the update path does not forbid OUT_OF_SCOPE → IN_SCOPE even when a
change order already references the request).

Update and delete locate the request by id joined to the owning project's
user, so ownership is checked transitively and a foreign request reads as
REQUEST_NOT_FOUND.
"""

import logging

from sqlalchemy import select

from scopematter.core.exceptions import ConflictError, NotFoundError, ServiceErrorCode, ValidationError
from scopematter.models.change_order import REQUEST_UPDATE_STATUSES, Request, is_change_order_editable
from scopematter.models.project import Project
from scopematter.services.helpers.scoped_queries import assert_project_ownership
from scopematter.services.helpers.transactions import atomic

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 2000
REQUEST_FIELDS = ("description", "status")


def _validate_description(description):
    if not isinstance(description, str) or not description.strip():
        raise ValidationError("description is required", details={"description": "required"})
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"description must be at most {MAX_DESCRIPTION_LENGTH} characters",
            details={"description": "too_long"},
        )


def _get_owned_request(session, request_id, user_id) -> Request:
    stmt = (
        select(Request)
        .join(Project, Project.id == Request.project_id)
        .where(Request.id == request_id, Project.user_id == user_id)
    )
    request = session.execute(stmt).scalar_one_or_none()
    if request is None:
        raise NotFoundError(ServiceErrorCode.REQUEST_NOT_FOUND)
    return request


def create_request(*, session, cache, project_id, user_id, description) -> Request:
    """Log a new request (status PENDING) under an owned project."""
    _validate_description(description)
    with atomic(session):
        assert_project_ownership(session, project_id, user_id)
        request = Request(project_id=project_id, description=description, status="PENDING")
        session.add(request)
        session.flush()

    logger.info("Request created", extra={"project_id": project_id, "user_id": user_id})
    cache.invalidate_project(project_id, user_id)
    return request


def list_requests(*, session, project_id, user_id) -> list[Request]:
    """All requests of an owned project, newest first."""
    assert_project_ownership(session, project_id, user_id)
    stmt = (
        select(Request)
        .where(Request.project_id == project_id)
        .order_by(Request.created_at.desc())
    )
    return list(session.execute(stmt).scalars())


def update_request(*, session, cache, request_id, user_id, fields: dict) -> Request:
    """Apply only the supplied fields (keys absent or mapped to None are skipped).

    Raises:
        ValidationError: status outside {IN_SCOPE, OUT_OF_SCOPE}, or a bad
                         description.
        NotFoundError: REQUEST_NOT_FOUND when missing or not owned.
    """
    changes = {k: fields[k] for k in REQUEST_FIELDS if fields.get(k) is not None}
    if "status" in changes and changes["status"] not in REQUEST_UPDATE_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(sorted(REQUEST_UPDATE_STATUSES))}",
            details={"status": "invalid"},
        )
    if "description" in changes:
        _validate_description(changes["description"])

    with atomic(session):
        request = _get_owned_request(session, request_id, user_id)
        for key, value in changes.items():
            setattr(request, key, value)
        session.flush()
        project_id = request.project_id

    logger.info(
        "Request updated (%s)", ", ".join(sorted(changes)) or "no changes",
        extra={"project_id": project_id, "user_id": user_id},
    )
    cache.invalidate_project(project_id, user_id)
    return request


def delete_request(*, session, cache, request_id, user_id) -> dict:
    """Delete a request. A PENDING change order goes with it (store cascade).

    Raises:
        NotFoundError: REQUEST_NOT_FOUND when missing or not owned.
        ConflictError: INVALID_STATUS_UPDATE when its change order has
                       already been approved or rejected.
    """
    with atomic(session):
        request = _get_owned_request(session, request_id, user_id)
        change_order = request.change_order
        if change_order is not None and not is_change_order_editable(change_order.status):
            logger.warning(
                "Refusing to delete request with decided change order (%s)", change_order.status,
                extra={"project_id": request.project_id, "user_id": user_id},
            )
            raise ConflictError(ServiceErrorCode.INVALID_STATUS_UPDATE)
        project_id = request.project_id
        session.delete(request)

    logger.info("Request deleted", extra={"project_id": project_id, "user_id": user_id})
    cache.invalidate_project(project_id, user_id)
    return {"id": request_id}
