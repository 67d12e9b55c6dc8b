"""
Scope item service — CRUD behind the ownership guard.

Mutations invalidate the project detail and the owner's dashboard.
"""

import logging

from sqlalchemy import select

from scopematter.core.exceptions import ServiceErrorCode
from scopematter.models.project import ScopeItem
from scopematter.services.helpers.scoped_queries import assert_project_ownership, get_owned
from scopematter.services.helpers.transactions import atomic

logger = logging.getLogger(__name__)

SCOPE_ITEM_FIELDS = ("name", "description", "status")


def create_scope_item(*, session, cache, project_id, user_id, name, description) -> ScopeItem:
    with atomic(session):
        assert_project_ownership(session, project_id, user_id)
        item = ScopeItem(project_id=project_id, name=name, description=description, status="PENDING")
        session.add(item)
        session.flush()

    logger.info("Scope item created", extra={"project_id": project_id, "user_id": user_id})
    cache.invalidate_project(project_id, user_id)
    return item


def list_scope_items(*, session, project_id, user_id) -> list[ScopeItem]:
    assert_project_ownership(session, project_id, user_id)
    stmt = (
        select(ScopeItem)
        .where(ScopeItem.project_id == project_id)
        .order_by(ScopeItem.created_at.asc())
    )
    return list(session.execute(stmt).scalars())


def update_scope_item(*, session, cache, project_id, item_id, user_id, fields: dict) -> ScopeItem:
    with atomic(session):
        assert_project_ownership(session, project_id, user_id)
        item = get_owned(
            session, ScopeItem, item_id,
            project_id=project_id, user_id=user_id,
            not_found=ServiceErrorCode.SCOPE_ITEM_NOT_FOUND,
        )
        for key in SCOPE_ITEM_FIELDS:
            if key in fields:
                setattr(item, key, fields[key])
        session.flush()

    cache.invalidate_project(project_id, user_id)
    return item


def delete_scope_item(*, session, cache, project_id, item_id, user_id) -> dict:
    with atomic(session):
        assert_project_ownership(session, project_id, user_id)
        item = get_owned(
            session, ScopeItem, item_id,
            project_id=project_id, user_id=user_id,
            not_found=ServiceErrorCode.SCOPE_ITEM_NOT_FOUND,
        )
        session.delete(item)

    logger.info("Scope item deleted", extra={"project_id": project_id, "user_id": user_id})
    cache.invalidate_project(project_id, user_id)
    return {"id": item_id}
