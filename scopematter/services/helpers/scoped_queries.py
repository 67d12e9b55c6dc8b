"""
Owner-scoped query helpers — the ownership guard.

Every project-scoped lookup in the service layer MUST go through these
helpers instead of session.get(Model, pk). A bare primary-key lookup bypasses
owner isolation.

Lookups use a compound predicate (id AND owner) in one statement, so a
resource owned by someone else is indistinguishable from one that does not
exist: both raise the resource's *_NOT_FOUND code.

Usage:
    project = assert_project_ownership(session, project_id, user_id)
    item = get_owned(session, ScopeItem, item_id,
                     project_id=project_id, user_id=user_id,
                     not_found=ServiceErrorCode.SCOPE_ITEM_NOT_FOUND)
"""

import logging

from sqlalchemy import select

from scopematter.core.exceptions import NotFoundError, ServiceErrorCode
from scopematter.models.project import Project

logger = logging.getLogger(__name__)


def assert_project_ownership(session, project_id, user_id) -> Project:
    """Return the project if *user_id* owns it, else raise PROJECT_NOT_FOUND.

    Args:
        session: SQLAlchemy session of the calling operation.
        project_id: Caller-supplied project id (never trusted on its own).
        user_id: Authenticated AppUser id.
    """
    stmt = select(Project).where(Project.id == project_id, Project.user_id == user_id)
    project = session.execute(stmt).scalar_one_or_none()
    if project is None:
        logger.debug("Ownership check failed: project=%s user=%s", project_id, user_id)
        raise NotFoundError(ServiceErrorCode.PROJECT_NOT_FOUND)
    return project


def get_owned(session, model, pk, *, project_id=None, user_id, not_found):
    """Fetch a project child by PK, joined to its project's owner.

    Args:
        model: A model with ``id`` and ``project_id`` columns.
        pk: Primary key of the child.
        project_id: When given, the child must also belong to this project.
        user_id: The owner the parent project must belong to.
        not_found: ServiceErrorCode raised when the compound lookup misses.

    Raises:
        NotFoundError: Missing, in another project, or owned by another user.
    """
    stmt = (
        select(model)
        .join(Project, Project.id == model.project_id)
        .where(model.id == pk, Project.user_id == user_id)
    )
    if project_id is not None:
        stmt = stmt.where(model.project_id == project_id)
    result = session.execute(stmt).scalar_one_or_none()
    if result is None:
        logger.debug("get_owned: %s id=%s not found for user %s", model.__name__, pk, user_id)
        raise NotFoundError(not_found)
    return result
