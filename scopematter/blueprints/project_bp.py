"""
Projects Blueprint.

Endpoints:
    GET    /api/v1/projects                 — list caller's projects
    POST   /api/v1/projects                 — create project + client
    GET    /api/v1/projects/<id>            — project detail (cached)
    PATCH  /api/v1/projects/<id>            — partial update (incl. client)
    DELETE /api/v1/projects/<id>            — delete with all dependants
"""

from flask import Blueprint, jsonify

from scopematter.blueprints import (
    check_choice,
    check_email,
    check_text,
    get_cache,
    validation_failed,
)
from scopematter.middleware.jwt_auth import current_user_id, require_auth
from scopematter.models import db
from scopematter.models.project import PROJECT_STATUSES
from scopematter.services import project_service
from scopematter.utils.helpers import get_json_body

project_bp = Blueprint("projects", __name__, url_prefix="/api/v1/projects")


def _validate_client_input(client, errors: dict, *, is_update: bool) -> None:
    if not isinstance(client, dict):
        errors["client"] = "client must be an object"
        return
    client_errors: dict[str, str] = {}
    check_text(client, "name", client_errors, max_len=200, required=not is_update)
    check_email(client, "email", client_errors)
    check_text(client, "company", client_errors, max_len=200, min_len=0)
    for key, msg in client_errors.items():
        errors[f"client.{key}"] = msg


def _validate_project_input(data: dict, *, is_update: bool = False) -> dict:
    """Return dict of field → error message. Empty dict = valid."""
    errors: dict[str, str] = {}
    check_text(data, "name", errors, max_len=100, required=not is_update)
    check_text(data, "description", errors, max_len=500, min_len=0)
    if is_update:
        check_choice(data, "status", errors, PROJECT_STATUSES)
    if "client" in data or not is_update:
        if data.get("client") is None and not is_update:
            errors["client"] = "client is required"
        elif data.get("client") is not None:
            _validate_client_input(data["client"], errors, is_update=is_update)
    return errors


@project_bp.route("", methods=["GET"])
@require_auth
def list_projects():
    projects = project_service.list_projects(session=db.session, user_id=current_user_id())
    return jsonify({"items": [p.to_dict() for p in projects], "total": len(projects)})


@project_bp.route("", methods=["POST"])
@require_auth
def create_project():
    data = get_json_body()
    errors = _validate_project_input(data)
    if errors:
        return validation_failed(errors)

    project = project_service.create_project(
        session=db.session,
        cache=get_cache(),
        user_id=current_user_id(),
        name=data["name"].strip(),
        description=data.get("description"),
        client=data["client"],
    )
    return jsonify(project.to_dict()), 201


@project_bp.route("/<project_id>", methods=["GET"])
@require_auth
def get_project(project_id):
    detail = project_service.get_project(
        session=db.session, cache=get_cache(), project_id=project_id, user_id=current_user_id(),
    )
    return jsonify(detail)


@project_bp.route("/<project_id>", methods=["PATCH", "PUT"])
@require_auth
def update_project(project_id):
    data = get_json_body()
    errors = _validate_project_input(data, is_update=True)
    if errors:
        return validation_failed(errors)

    fields = {k: data[k] for k in project_service.PROJECT_FIELDS if data.get(k) is not None}
    client = {k: v for k, v in (data.get("client") or {}).items()
              if k in project_service.CLIENT_FIELDS and v is not None}

    project = project_service.update_project(
        session=db.session,
        cache=get_cache(),
        project_id=project_id,
        user_id=current_user_id(),
        fields=fields,
        client=client or None,
    )
    return jsonify(project.to_dict())


@project_bp.route("/<project_id>", methods=["DELETE"])
@require_auth
def delete_project(project_id):
    result = project_service.delete_project(
        session=db.session, cache=get_cache(), project_id=project_id, user_id=current_user_id(),
    )
    return jsonify(result)
