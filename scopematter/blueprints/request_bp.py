"""
Requests Blueprint — client asks logged against a project.

Endpoints:
    GET    /api/v1/projects/<pid>/requests          — list (newest first)
    POST   /api/v1/projects/<pid>/requests          — log a request (PENDING)
    PATCH  /api/v1/projects/<pid>/requests/<id>     — classify / edit
    DELETE /api/v1/projects/<pid>/requests/<id>     — delete

Update and delete resolve the request through its owning project's user,
so the <pid> segment is not used for the lookup.
"""

from flask import Blueprint, jsonify

from scopematter.blueprints import check_choice, check_text, get_cache, validation_failed
from scopematter.middleware.jwt_auth import current_user_id, require_auth
from scopematter.models import db
from scopematter.models.change_order import REQUEST_UPDATE_STATUSES
from scopematter.services import request_service
from scopematter.utils.helpers import get_json_body

request_bp = Blueprint(
    "requests", __name__, url_prefix="/api/v1/projects/<project_id>/requests",
)

MAX_DESCRIPTION = request_service.MAX_DESCRIPTION_LENGTH


@request_bp.route("", methods=["GET"])
@require_auth
def list_requests(project_id):
    requests_ = request_service.list_requests(
        session=db.session, project_id=project_id, user_id=current_user_id(),
    )
    return jsonify({"items": [r.to_dict() for r in requests_], "total": len(requests_)})


@request_bp.route("", methods=["POST"])
@require_auth
def create_request(project_id):
    data = get_json_body()
    errors: dict[str, str] = {}
    check_text(data, "description", errors, max_len=MAX_DESCRIPTION, required=True)
    if errors:
        return validation_failed(errors)

    req = request_service.create_request(
        session=db.session,
        cache=get_cache(),
        project_id=project_id,
        user_id=current_user_id(),
        description=data["description"],
    )
    return jsonify(req.to_dict()), 201


@request_bp.route("/<request_id>", methods=["PATCH", "PUT"])
@require_auth
def update_request(project_id, request_id):
    data = get_json_body()
    errors: dict[str, str] = {}
    check_text(data, "description", errors, max_len=MAX_DESCRIPTION)
    check_choice(data, "status", errors, REQUEST_UPDATE_STATUSES)
    if errors:
        return validation_failed(errors)

    req = request_service.update_request(
        session=db.session,
        cache=get_cache(),
        request_id=request_id,
        user_id=current_user_id(),
        fields=data,
    )
    return jsonify(req.to_dict())


@request_bp.route("/<request_id>", methods=["DELETE"])
@require_auth
def delete_request(project_id, request_id):
    result = request_service.delete_request(
        session=db.session, cache=get_cache(), request_id=request_id, user_id=current_user_id(),
    )
    return jsonify(result)
