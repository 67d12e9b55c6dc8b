"""
Scope Items Blueprint — the agreed deliverables of a project.

Endpoints:
    GET    /api/v1/projects/<pid>/scope-items            — list (creation order)
    POST   /api/v1/projects/<pid>/scope-items            — create (status PENDING)
    PATCH  /api/v1/projects/<pid>/scope-items/<id>       — partial update
    DELETE /api/v1/projects/<pid>/scope-items/<id>       — delete
    GET    /api/v1/projects/<pid>/scope-items/export     — .xlsx (or ?format=json)
"""

from flask import Blueprint, jsonify, request

from scopematter.blueprints import check_choice, check_text, get_cache, send_xlsx, validation_failed
from scopematter.middleware.jwt_auth import current_user_id, require_auth
from scopematter.models import db
from scopematter.models.project import SCOPE_ITEM_STATUSES
from scopematter.services import export_service, scope_item_service
from scopematter.utils.helpers import get_json_body

scope_item_bp = Blueprint(
    "scope_items", __name__, url_prefix="/api/v1/projects/<project_id>/scope-items",
)


def _validate(data: dict, *, is_update: bool = False) -> dict:
    errors: dict[str, str] = {}
    check_text(data, "name", errors, max_len=100, required=not is_update)
    check_text(data, "description", errors, max_len=1000, required=not is_update)
    if is_update:
        check_choice(data, "status", errors, SCOPE_ITEM_STATUSES)
    return errors


@scope_item_bp.route("", methods=["GET"])
@require_auth
def list_scope_items(project_id):
    items = scope_item_service.list_scope_items(
        session=db.session, project_id=project_id, user_id=current_user_id(),
    )
    return jsonify({"items": [i.to_dict() for i in items], "total": len(items)})


@scope_item_bp.route("", methods=["POST"])
@require_auth
def create_scope_item(project_id):
    data = get_json_body()
    errors = _validate(data)
    if errors:
        return validation_failed(errors)

    item = scope_item_service.create_scope_item(
        session=db.session,
        cache=get_cache(),
        project_id=project_id,
        user_id=current_user_id(),
        name=data["name"].strip(),
        description=data["description"],
    )
    return jsonify(item.to_dict()), 201


@scope_item_bp.route("/<item_id>", methods=["PATCH", "PUT"])
@require_auth
def update_scope_item(project_id, item_id):
    data = get_json_body()
    errors = _validate(data, is_update=True)
    if errors:
        return validation_failed(errors)

    fields = {k: data[k] for k in scope_item_service.SCOPE_ITEM_FIELDS if data.get(k) is not None}
    item = scope_item_service.update_scope_item(
        session=db.session,
        cache=get_cache(),
        project_id=project_id,
        item_id=item_id,
        user_id=current_user_id(),
        fields=fields,
    )
    return jsonify(item.to_dict())


@scope_item_bp.route("/<item_id>", methods=["DELETE"])
@require_auth
def delete_scope_item(project_id, item_id):
    result = scope_item_service.delete_scope_item(
        session=db.session,
        cache=get_cache(),
        project_id=project_id,
        item_id=item_id,
        user_id=current_user_id(),
    )
    return jsonify(result)


@scope_item_bp.route("/export", methods=["GET"])
@require_auth
def export_scope_items(project_id):
    data = export_service.export_scope_items(
        session=db.session, project_id=project_id, user_id=current_user_id(),
    )
    if request.args.get("format") == "json":
        return jsonify(data)
    return send_xlsx(export_service.render_scope_items_xlsx(data), f"scope_items_{project_id}.xlsx")
