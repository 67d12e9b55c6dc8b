"""
Tests: owner isolation across every project-scoped service.

User B can neither read nor mutate anything under user A's project; each
attempt fails with the same *_NOT_FOUND code a missing record would
produce, and cached payloads are never served across owners.
"""

import pytest

from conftest import make_change_order, make_project, make_request, make_scope_item, make_user
from scopematter.core.exceptions import NotFoundError, ServiceErrorCode
from scopematter.models import db
from scopematter.services import (
    change_order_service,
    export_service,
    project_service,
    request_service,
    scope_item_service,
)


@pytest.fixture()
def stacks():
    """Two owners, each with a project holding one of everything."""
    alice = make_user(external_id="user_a", email="a@example.com")
    bob = make_user(external_id="user_b", email="b@example.com")
    project_a = make_project(alice, name="Project A")
    item_a = make_scope_item(project_a)
    request_a = make_request(project_a, status="OUT_OF_SCOPE")
    change_order_a = make_change_order(project_a, request_a)
    return {
        "alice": alice, "bob": bob, "project_a": project_a, "item_a": item_a,
        "request_a": request_a, "change_order_a": change_order_a,
    }


def _expect(code, fn, **kwargs):
    with pytest.raises(NotFoundError) as exc:
        fn(session=db.session, **kwargs)
    assert exc.value.code == code


PNF = ServiceErrorCode.PROJECT_NOT_FOUND


def test_project_reads(stacks, cache):
    s = stacks
    _expect(PNF, project_service.get_project, cache=cache, project_id=s["project_a"].id, user_id=s["bob"].id)
    assert project_service.list_projects(session=db.session, user_id=s["bob"].id) == []


def test_cached_project_not_served_to_other_owner(stacks, cache):
    s = stacks
    project_service.get_project(session=db.session, cache=cache, project_id=s["project_a"].id, user_id=s["alice"].id)
    _expect(PNF, project_service.get_project, cache=cache, project_id=s["project_a"].id, user_id=s["bob"].id)


def test_project_mutations(stacks, cache):
    s = stacks
    pid, bob = s["project_a"].id, s["bob"].id
    _expect(PNF, project_service.update_project, cache=cache, project_id=pid, user_id=bob, fields={"name": "x"})
    _expect(PNF, project_service.delete_project, cache=cache, project_id=pid, user_id=bob)


def test_scope_items(stacks, cache):
    s = stacks
    pid, bob = s["project_a"].id, s["bob"].id
    _expect(PNF, scope_item_service.list_scope_items, project_id=pid, user_id=bob)
    _expect(PNF, scope_item_service.create_scope_item, cache=cache, project_id=pid, user_id=bob,
            name="x", description="y")
    _expect(PNF, scope_item_service.update_scope_item, cache=cache, project_id=pid,
            item_id=s["item_a"].id, user_id=bob, fields={"name": "x"})
    _expect(PNF, scope_item_service.delete_scope_item, cache=cache, project_id=pid,
            item_id=s["item_a"].id, user_id=bob)


def test_scope_item_through_own_project_is_not_found(stacks, cache):
    """Bob's own project id plus Alice's item id must not reach the item."""
    s = stacks
    project_b = make_project(s["bob"], name="Project B")
    _expect(ServiceErrorCode.SCOPE_ITEM_NOT_FOUND, scope_item_service.update_scope_item, cache=cache,
            project_id=project_b.id, item_id=s["item_a"].id, user_id=s["bob"].id, fields={"name": "x"})


def test_requests(stacks, cache):
    s = stacks
    rnf = ServiceErrorCode.REQUEST_NOT_FOUND
    _expect(PNF, request_service.list_requests, project_id=s["project_a"].id, user_id=s["bob"].id)
    _expect(rnf, request_service.update_request, cache=cache, request_id=s["request_a"].id,
            user_id=s["bob"].id, fields={"status": "IN_SCOPE"})
    _expect(rnf, request_service.delete_request, cache=cache, request_id=s["request_a"].id, user_id=s["bob"].id)


def test_change_orders(stacks, cache):
    s = stacks
    pid, coid, bob = s["project_a"].id, s["change_order_a"].id, s["bob"].id
    _expect(PNF, change_order_service.list_change_orders, project_id=pid, user_id=bob)
    _expect(PNF, change_order_service.get_change_order, project_id=pid, change_order_id=coid, user_id=bob)
    _expect(PNF, change_order_service.delete_change_order, cache=cache, project_id=pid,
            change_order_id=coid, user_id=bob)


def test_exports(stacks):
    s = stacks
    pid, bob = s["project_a"].id, s["bob"].id
    _expect(PNF, export_service.export_scope_items, project_id=pid, user_id=bob)
    _expect(PNF, export_service.export_change_order, project_id=pid,
            change_order_id=s["change_order_a"].id, user_id=bob)
