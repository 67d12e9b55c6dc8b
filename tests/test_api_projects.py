"""
Tests: projects and scope items over HTTP.
"""

import io

from openpyxl import load_workbook

from conftest import make_scope_item


NEW_PROJECT = {
    "name": "Marketing Website Revamp",
    "description": "Landing page and blog",
    "client": {"name": "Acme Corp", "email": "client@acme.com", "company": "Acme Corporation"},
}


# ── Auth ─────────────────────────────────────────────────────────────────


def test_requires_bearer_token(client):
    res = client.get("/api/v1/projects")
    assert res.status_code == 401
    assert res.get_json()["code"] == "ERR_UNAUTHORIZED"


def test_garbage_token_rejected(client, user):
    res = client.get("/api/v1/projects", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401


def test_health_is_public(client):
    res = client.get("/api/v1/health")
    assert res.status_code == 200
    assert res.get_json()["status"] == "ok"


def test_liveness_reports_db_and_cache(client):
    res = client.get("/api/v1/health/live")
    assert res.status_code == 200
    checks = res.get_json()["checks"]
    assert checks["database"]["status"] == "ok"
    assert checks["cache"]["status"] == "ok"


def test_unknown_route_is_json_404(client):
    res = client.get("/api/v1/nope")
    assert res.status_code == 404
    assert res.get_json()["code"] == "ERR_NOT_FOUND"


def test_non_json_body_rejected(client, auth_headers):
    res = client.post("/api/v1/projects", data="name=x", headers=auth_headers,
                      content_type="text/plain")
    assert res.status_code == 415


# ── Projects ─────────────────────────────────────────────────────────────


def test_create_and_list_project(client, auth_headers):
    res = client.post("/api/v1/projects", json=NEW_PROJECT, headers=auth_headers)
    assert res.status_code == 201
    body = res.get_json()
    assert body["status"] == "PENDING"
    assert body["client"]["company"] == "Acme Corporation"

    listed = client.get("/api/v1/projects", headers=auth_headers).get_json()
    assert listed["total"] == 1
    assert listed["items"][0]["id"] == body["id"]


def test_create_project_validation(client, auth_headers):
    res = client.post("/api/v1/projects", json={"name": "", "client": {"email": "bad"}},
                      headers=auth_headers)
    assert res.status_code == 400
    body = res.get_json()
    assert body["code"] == "ERR_VALIDATION_INVALID"
    assert "name" in body["details"]
    assert "client.email" in body["details"]


def test_project_name_too_long(client, auth_headers):
    payload = dict(NEW_PROJECT, name="x" * 101)
    res = client.post("/api/v1/projects", json=payload, headers=auth_headers)
    assert res.status_code == 400
    assert "name" in res.get_json()["details"]


def test_project_detail(client, auth_headers, project):
    make_scope_item(project, name="Landing page")
    res = client.get(f"/api/v1/projects/{project.id}", headers=auth_headers)
    assert res.status_code == 200
    body = res.get_json()
    assert body["name"] == project.name
    assert [s["name"] for s in body["scope_items"]] == ["Landing page"]
    assert body["requests"] == []
    assert body["change_orders"] == []


def test_update_project_and_client(client, auth_headers, project):
    res = client.patch(
        f"/api/v1/projects/{project.id}",
        json={"status": "IN_PROGRESS", "client": {"company": "Acme Holdings"}},
        headers=auth_headers,
    )
    assert res.status_code == 200
    body = res.get_json()
    assert body["status"] == "IN_PROGRESS"
    assert body["client"]["company"] == "Acme Holdings"
    assert body["client"]["name"] == "Acme"


def test_update_project_rejects_unknown_status(client, auth_headers, project):
    res = client.patch(f"/api/v1/projects/{project.id}", json={"status": "DONE"}, headers=auth_headers)
    assert res.status_code == 400
    assert "status" in res.get_json()["details"]


def test_detail_refreshes_after_update(client, auth_headers, project):
    client.get(f"/api/v1/projects/{project.id}", headers=auth_headers)
    client.patch(f"/api/v1/projects/{project.id}", json={"name": "Renamed"}, headers=auth_headers)
    res = client.get(f"/api/v1/projects/{project.id}", headers=auth_headers)
    assert res.get_json()["name"] == "Renamed"


def test_delete_project(client, auth_headers, project):
    res = client.delete(f"/api/v1/projects/{project.id}", headers=auth_headers)
    assert res.status_code == 200
    assert res.get_json() == {"id": project.id}
    assert client.get(f"/api/v1/projects/{project.id}", headers=auth_headers).status_code == 404


def test_foreign_project_is_not_found(client, other_auth_headers, project):
    for method, path in (
        ("get", f"/api/v1/projects/{project.id}"),
        ("delete", f"/api/v1/projects/{project.id}"),
        ("get", f"/api/v1/projects/{project.id}/scope-items"),
    ):
        res = getattr(client, method)(path, headers=other_auth_headers)
        assert res.status_code == 404
        assert res.get_json()["code"] == "PROJECT_NOT_FOUND"


# ── Scope items ──────────────────────────────────────────────────────────


def test_scope_item_crud(client, auth_headers, project):
    base = f"/api/v1/projects/{project.id}/scope-items"
    res = client.post(base, json={"name": "Landing page", "description": "Hero + CTA"},
                      headers=auth_headers)
    assert res.status_code == 201
    item = res.get_json()
    assert item["status"] == "PENDING"

    res = client.patch(f"{base}/{item['id']}", json={"status": "COMPLETED"}, headers=auth_headers)
    assert res.status_code == 200
    assert res.get_json()["status"] == "COMPLETED"

    assert client.get(base, headers=auth_headers).get_json()["total"] == 1

    res = client.delete(f"{base}/{item['id']}", headers=auth_headers)
    assert res.status_code == 200
    assert client.get(base, headers=auth_headers).get_json()["total"] == 0


def test_scope_item_requires_description(client, auth_headers, project):
    res = client.post(f"/api/v1/projects/{project.id}/scope-items", json={"name": "Landing page"},
                      headers=auth_headers)
    assert res.status_code == 400
    assert "description" in res.get_json()["details"]


def test_unknown_scope_item(client, auth_headers, project):
    res = client.delete(f"/api/v1/projects/{project.id}/scope-items/missing", headers=auth_headers)
    assert res.status_code == 404
    assert res.get_json()["code"] == "SCOPE_ITEM_NOT_FOUND"


def test_scope_item_export_json(client, auth_headers, project):
    make_scope_item(project, name="Landing page")
    res = client.get(f"/api/v1/projects/{project.id}/scope-items/export?format=json",
                     headers=auth_headers)
    assert res.status_code == 200
    body = res.get_json()
    assert body["project"]["id"] == project.id
    assert body["scope_items"][0]["name"] == "Landing page"


def test_scope_item_export_xlsx(client, auth_headers, project):
    make_scope_item(project, name="Landing page")
    res = client.get(f"/api/v1/projects/{project.id}/scope-items/export", headers=auth_headers)
    assert res.status_code == 200
    assert res.mimetype == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    assert "attachment" in res.headers["Content-Disposition"]
    ws = load_workbook(io.BytesIO(res.data)).active
    assert ws.title == "Scope of Work"
