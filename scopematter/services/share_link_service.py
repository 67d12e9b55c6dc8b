"""
Share link service — tokenized, revocable read-only project views.

Token handling:
  - The raw token is returned exactly once, from create_share_link.
  - Only hash_share_token(token) is stored; resolution re-derives the hash.
  - Raw tokens are never logged.

Lifecycle: created active → revoked (one-way). Revoking twice fails with
SHARE_LINK_NOT_ACTIVE.

Caching:
  share-links:{project_id}  owner's list, 300 s, dropped on create/revoke
  share-link:{id}           resolved public payload, 300 s, dropped on revoke
Project, scope item, request and change order writes do not drop
share-link:{id}, so a public view can lag those edits by up to 300 s.
The validity checks in resolve_share_link always read the database, so a
revoked or expired link is never served from cache.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from scopematter.core.exceptions import ConflictError, NotFoundError, ServiceErrorCode
from scopematter.models import _iso
from scopematter.models.project import Project
from scopematter.models.share_link import ShareLink
from scopematter.services.cache_service import (
    SHARE_LINK_TTL,
    share_link_key,
    share_links_key,
)
from scopematter.services.helpers.scoped_queries import assert_project_ownership
from scopematter.services.helpers.transactions import atomic
from scopematter.utils.crypto import generate_share_token, hash_share_token
from scopematter.utils.helpers import as_utc, utcnow

logger = logging.getLogger(__name__)


def create_share_link(*, session, cache, project_id, user_id, app_url,
                      expires_at=None, show_scope_items=True, show_requests=True,
                      show_change_orders=True) -> dict:
    """Issue a new link. The returned dict is the only place the raw token appears."""
    token = generate_share_token()
    with atomic(session):
        assert_project_ownership(session, project_id, user_id)
        link = ShareLink(
            project_id=project_id,
            token_hash=hash_share_token(token),
            expires_at=expires_at,
            show_scope_items=show_scope_items,
            show_requests=show_requests,
            show_change_orders=show_change_orders,
            is_active=True,
            view_count=0,
        )
        session.add(link)
        session.flush()

    logger.info("Share link %s created", link.id, extra={"project_id": project_id, "user_id": user_id})
    cache.delete(share_links_key(project_id))

    data = link.to_dict()
    data["url"] = f"{app_url.rstrip('/')}/p/{token}"
    data["token"] = token
    return data


def list_share_links(*, session, cache, project_id, user_id) -> list[dict]:
    """Owner's links for a project, newest first (token hashes excluded)."""
    assert_project_ownership(session, project_id, user_id)

    def _load():
        stmt = (
            select(ShareLink)
            .where(ShareLink.project_id == project_id)
            .order_by(ShareLink.created_at.desc())
        )
        return [link.to_dict() for link in session.execute(stmt).scalars()]

    return cache.get_or_load(share_links_key(project_id), _load, SHARE_LINK_TTL)


def revoke_share_link(*, session, cache, share_link_id, user_id) -> dict:
    """One-way deactivation. Ownership is checked through the parent project."""
    with atomic(session):
        stmt = (
            select(ShareLink)
            .join(Project, Project.id == ShareLink.project_id)
            .where(ShareLink.id == share_link_id, Project.user_id == user_id)
            .with_for_update(of=ShareLink)
        )
        link = session.execute(stmt).scalar_one_or_none()
        if link is None:
            raise NotFoundError(ServiceErrorCode.SHARE_LINK_NOT_FOUND)
        if not link.is_active:
            raise ConflictError(ServiceErrorCode.SHARE_LINK_NOT_ACTIVE)
        link.is_active = False
        link.revoked_at = utcnow()
        session.flush()
        project_id = link.project_id

    logger.info("Share link %s revoked", share_link_id, extra={"project_id": project_id, "user_id": user_id})
    cache.invalidate_share_links(project_id, share_link_id)
    return {"id": link.id, "revoked_at": _iso(link.revoked_at), "is_active": link.is_active}


def build_share_payload(link: ShareLink) -> dict:
    """Public view of the link's project, filtered by its visibility flags."""
    project = link.project
    client = project.client
    return {
        "project": {"name": project.name, "description": project.description},
        "client": {
            "name": client.name if client else None,
            "company": client.company if client else None,
        },
        "scope_items": [
            {"id": s.id, "name": s.name, "description": s.description, "status": s.status}
            for s in project.scope_items
        ] if link.show_scope_items else [],
        "requests": [
            {"id": r.id, "description": r.description, "status": r.status}
            for r in project.requests
        ] if link.show_requests else [],
        "change_orders": [
            {
                "id": c.id,
                "price_usd": str(c.price_usd),
                "extra_days": c.extra_days,
                "status": c.status,
            }
            for c in project.change_orders
        ] if link.show_change_orders else [],
        "permissions": link.permissions(),
    }


def _record_view(session, share_link_id) -> None:
    """Bump view_count / last_viewed_at. Best-effort: lost updates are acceptable."""
    try:
        session.execute(
            update(ShareLink)
            .where(ShareLink.id == share_link_id)
            .values(view_count=ShareLink.view_count + 1, last_viewed_at=utcnow())
        )
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.warning("Could not record share link view for %s: %s", share_link_id, exc)


def resolve_share_link(*, session, cache, token) -> dict:
    """Return the public payload for *token*.

    Raises:
        NotFoundError: SHARE_LINK_NOT_FOUND — no link has this token hash.
        ConflictError: SHARE_LINK_NOT_ACTIVE — revoked.
        ConflictError: SHARE_LINK_EXPIRED — expires_at has passed.
    """
    token_hash = hash_share_token(token or "")
    link = session.execute(
        select(ShareLink).where(ShareLink.token_hash == token_hash)
    ).scalar_one_or_none()

    if link is None:
        raise NotFoundError(ServiceErrorCode.SHARE_LINK_NOT_FOUND)
    if not link.is_active:
        raise ConflictError(ServiceErrorCode.SHARE_LINK_NOT_ACTIVE)
    expires_at = as_utc(link.expires_at)
    if expires_at is not None and expires_at < utcnow():
        raise ConflictError(ServiceErrorCode.SHARE_LINK_EXPIRED)

    share_link_id = link.id
    payload = cache.get(share_link_key(share_link_id))
    if payload is None:
        payload = build_share_payload(link)
        cache.set(share_link_key(share_link_id), payload, SHARE_LINK_TTL)

    _record_view(session, share_link_id)
    return payload
