"""
Tests: share links — issue, list, revoke, resolve.

    - Only the token hash is stored; the raw token is returned once.
    - Revocation is one-way; a second revoke is SHARE_LINK_NOT_ACTIVE.
    - Resolution checks the database every time, so revoked / expired links
      are never served from cache, and failed resolves do not count a view.
    - Visibility flags empty the corresponding payload arrays.
"""

from datetime import timedelta

import pytest

from conftest import make_change_order, make_request, make_scope_item, make_user
from scopematter.core.exceptions import ConflictError, NotFoundError, ServiceErrorCode
from scopematter.models import db
from scopematter.models.share_link import ShareLink
from scopematter.services import share_link_service as svc
from scopematter.services.cache_service import share_link_key, share_links_key
from scopematter.utils.crypto import hash_share_token
from scopematter.utils.helpers import utcnow

APP_URL = "http://testserver"


def _issue(cache, project, **kw):
    return svc.create_share_link(
        session=db.session, cache=cache, project_id=project.id,
        user_id=project.user_id, app_url=APP_URL, **kw,
    )


def _resolve(cache, token):
    return svc.resolve_share_link(session=db.session, cache=cache, token=token)


def _link(link_id) -> ShareLink:
    db.session.expire_all()
    return db.session.get(ShareLink, link_id)


class TestCreate:
    def test_returns_token_once_and_stores_hash(self, cache, project):
        data = _issue(cache, project)
        assert data["url"] == f"{APP_URL}/p/{data['token']}"
        link = _link(data["id"])
        assert link.token_hash == hash_share_token(data["token"])
        assert link.token_hash != data["token"]
        assert "token_hash" not in data

    def test_flags_default_true(self, cache, project):
        data = _issue(cache, project)
        assert data["permissions"] == {
            "show_scope_items": True,
            "show_requests": True,
            "show_change_orders": True,
        }
        assert data["is_active"] is True
        assert data["view_count"] == 0

    def test_tokens_are_unique(self, cache, project):
        assert _issue(cache, project)["token"] != _issue(cache, project)["token"]

    def test_foreign_project(self, cache, project):
        intruder = make_user(external_id="user_mallory", email="m@example.com")
        with pytest.raises(NotFoundError):
            svc.create_share_link(
                session=db.session, cache=cache, project_id=project.id,
                user_id=intruder.id, app_url=APP_URL,
            )


class TestList:
    def test_list_is_cached_and_refreshed_on_create(self, cache, project):
        _issue(cache, project)
        first = svc.list_share_links(session=db.session, cache=cache, project_id=project.id, user_id=project.user_id)
        assert len(first) == 1
        assert cache.get(share_links_key(project.id)) is not None

        _issue(cache, project)
        second = svc.list_share_links(session=db.session, cache=cache, project_id=project.id, user_id=project.user_id)
        assert len(second) == 2

    def test_cached_list_not_served_to_other_user(self, cache, project):
        _issue(cache, project)
        svc.list_share_links(session=db.session, cache=cache, project_id=project.id, user_id=project.user_id)
        intruder = make_user(external_id="user_mallory", email="m@example.com")
        with pytest.raises(NotFoundError):
            svc.list_share_links(session=db.session, cache=cache, project_id=project.id, user_id=intruder.id)


class TestRevoke:
    def test_revoke_is_one_way(self, cache, project):
        data = _issue(cache, project)
        result = svc.revoke_share_link(
            session=db.session, cache=cache, share_link_id=data["id"], user_id=project.user_id,
        )
        assert result["is_active"] is False
        assert result["revoked_at"] is not None

        with pytest.raises(ConflictError) as exc:
            svc.revoke_share_link(
                session=db.session, cache=cache, share_link_id=data["id"], user_id=project.user_id,
            )
        assert exc.value.code == ServiceErrorCode.SHARE_LINK_NOT_ACTIVE

    def test_revoke_foreign_link(self, cache, project):
        data = _issue(cache, project)
        intruder = make_user(external_id="user_mallory", email="m@example.com")
        with pytest.raises(NotFoundError) as exc:
            svc.revoke_share_link(session=db.session, cache=cache, share_link_id=data["id"], user_id=intruder.id)
        assert exc.value.code == ServiceErrorCode.SHARE_LINK_NOT_FOUND


class TestResolve:
    def test_unknown_token(self, cache):
        with pytest.raises(NotFoundError) as exc:
            _resolve(cache, "not-a-real-token")
        assert exc.value.code == ServiceErrorCode.SHARE_LINK_NOT_FOUND

    def test_success_counts_views(self, cache, project):
        data = _issue(cache, project)
        _resolve(cache, data["token"])
        _resolve(cache, data["token"])
        link = _link(data["id"])
        assert link.view_count == 2
        assert link.last_viewed_at is not None

    def test_revoked_link_not_served_from_cache(self, cache, project):
        data = _issue(cache, project)
        _resolve(cache, data["token"])
        assert cache.get(share_link_key(data["id"])) is not None

        svc.revoke_share_link(session=db.session, cache=cache, share_link_id=data["id"], user_id=project.user_id)
        with pytest.raises(ConflictError) as exc:
            _resolve(cache, data["token"])
        assert exc.value.code == ServiceErrorCode.SHARE_LINK_NOT_ACTIVE
        assert _link(data["id"]).view_count == 1

    def test_payload_lags_child_writes_until_expiry(self, cache, project):
        data = _issue(cache, project)
        assert _resolve(cache, data["token"])["requests"] == []

        make_request(project, description="Add dark mode")
        assert _resolve(cache, data["token"])["requests"] == []
        assert _link(data["id"]).view_count == 2

        cache.delete(share_link_key(data["id"]))
        payload = _resolve(cache, data["token"])
        assert [r["description"] for r in payload["requests"]] == ["Add dark mode"]

    def test_expired_link(self, cache, project):
        data = _issue(cache, project, expires_at=utcnow() - timedelta(minutes=1))
        with pytest.raises(ConflictError) as exc:
            _resolve(cache, data["token"])
        assert exc.value.code == ServiceErrorCode.SHARE_LINK_EXPIRED
        assert _link(data["id"]).view_count == 0

    def test_future_expiry_resolves(self, cache, project):
        data = _issue(cache, project, expires_at=utcnow() + timedelta(days=1))
        assert _resolve(cache, data["token"])["project"]["name"] == project.name

    def test_visibility_flags_filter_payload(self, cache, project):
        make_scope_item(project)
        req = make_request(project, status="OUT_OF_SCOPE")
        make_change_order(project, req)
        data = _issue(cache, project, show_scope_items=False, show_requests=True, show_change_orders=False)

        payload = _resolve(cache, data["token"])
        assert payload["scope_items"] == []
        assert payload["change_orders"] == []
        assert [r["description"] for r in payload["requests"]] == ["Add CSV export"]
        assert payload["client"] == {"name": "Acme", "company": "Acme Corporation"}
        assert payload["permissions"]["show_requests"] is True
