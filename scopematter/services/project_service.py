"""
Project service — projects and their clients.

A project and its client are created in one transaction. Project detail is
served read-through from the cache under ``project:{id}``; the cached payload
records the owner and is only returned to that owner.

Every mutation commits first and invalidates afterwards: project:{id} and
dashboard:{user_id}; deletion also drops the share-link list and payloads.
"""

import logging

from sqlalchemy import select

from scopematter.core.exceptions import NotFoundError, ServiceErrorCode
from scopematter.models.project import Client, Project
from scopematter.services.cache_service import PROJECT_TTL, project_key
from scopematter.services.helpers.scoped_queries import assert_project_ownership
from scopematter.services.helpers.transactions import atomic

logger = logging.getLogger(__name__)

PROJECT_FIELDS = ("name", "description", "status")
CLIENT_FIELDS = ("name", "email", "company")


def create_project(*, session, cache, user_id, name, description=None, client) -> Project:
    """Create a project with its client.

    Args:
        client: dict with ``name`` (required), optional ``email`` / ``company``.
    """
    with atomic(session):
        project = Project(user_id=user_id, name=name, description=description, status="PENDING")
        project.client = Client(
            name=client["name"],
            email=client.get("email"),
            company=client.get("company"),
        )
        session.add(project)
        session.flush()

    logger.info("Project created", extra={"project_id": project.id, "user_id": user_id})
    cache.invalidate_dashboard(user_id)
    return project


def list_projects(*, session, user_id) -> list[Project]:
    """All projects of *user_id*, newest first."""
    stmt = (
        select(Project)
        .where(Project.user_id == user_id)
        .order_by(Project.created_at.desc())
    )
    return list(session.execute(stmt).scalars())


def build_project_detail(project: Project) -> dict:
    """Project detail read model (also the cached payload)."""
    data = project.to_dict()
    data["scope_items"] = [s.to_dict() for s in project.scope_items]
    data["requests"] = [r.to_dict() for r in project.requests]
    data["change_orders"] = [c.to_dict() for c in project.change_orders]
    return data


def get_project(*, session, cache, project_id, user_id) -> dict:
    """Project detail with client, scope items, requests and change orders."""
    cached = cache.get(project_key(project_id))
    if cached is not None:
        if cached.get("user_id") == user_id:
            return cached
        # Same code as a miss: never reveal that the project exists.
        raise NotFoundError(ServiceErrorCode.PROJECT_NOT_FOUND)

    project = assert_project_ownership(session, project_id, user_id)
    detail = build_project_detail(project)
    cache.set(project_key(project_id), detail, PROJECT_TTL)
    return detail


def update_project(*, session, cache, project_id, user_id, fields: dict, client: dict | None = None) -> Project:
    """Partial update. Only keys present in *fields* / *client* are written."""
    with atomic(session):
        project = assert_project_ownership(session, project_id, user_id)
        for key in PROJECT_FIELDS:
            if key in fields:
                setattr(project, key, fields[key])
        if client:
            if project.client is None:
                project.client = Client(name=client.get("name") or "")
            for key in CLIENT_FIELDS:
                if key in client:
                    setattr(project.client, key, client[key])
        session.flush()

    logger.info("Project updated", extra={"project_id": project_id, "user_id": user_id})
    cache.invalidate_project(project_id, user_id)
    return project


def delete_project(*, session, cache, project_id, user_id) -> dict:
    """Delete a project; the store cascade removes every dependant row."""
    with atomic(session):
        project = assert_project_ownership(session, project_id, user_id)
        share_link_ids = [link.id for link in project.share_links]
        session.delete(project)

    logger.info("Project deleted", extra={"project_id": project_id, "user_id": user_id})
    cache.invalidate_project(project_id, user_id)
    cache.invalidate_share_links(project_id, *share_link_ids)
    return {"id": project_id}
