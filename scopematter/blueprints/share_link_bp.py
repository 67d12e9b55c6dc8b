"""
Share Links Blueprint — owner side of tokenized read-only project views.

Endpoints:
    GET    /api/v1/projects/<pid>/share-links   — list (cached, no token hashes)
    POST   /api/v1/projects/<pid>/share-links   — issue; the raw token appears only here
    DELETE /api/v1/share-links/<id>             — revoke (one-way)

The public read side lives in public_bp.
"""

from flask import Blueprint, current_app, jsonify

from scopematter.blueprints import check_bool, get_cache, validation_failed
from scopematter.middleware.jwt_auth import current_user_id, require_auth
from scopematter.models import db
from scopematter.services import share_link_service
from scopematter.utils.helpers import get_json_body, parse_datetime

share_link_bp = Blueprint("share_links", __name__, url_prefix="/api/v1")

FLAG_FIELDS = ("show_scope_items", "show_requests", "show_change_orders")


@share_link_bp.route("/projects/<project_id>/share-links", methods=["GET"])
@require_auth
def list_share_links(project_id):
    links = share_link_service.list_share_links(
        session=db.session, cache=get_cache(), project_id=project_id, user_id=current_user_id(),
    )
    return jsonify({"items": links, "total": len(links)})


@share_link_bp.route("/projects/<project_id>/share-links", methods=["POST"])
@require_auth
def create_share_link(project_id):
    data = get_json_body()
    errors: dict[str, str] = {}
    for field in FLAG_FIELDS:
        check_bool(data, field, errors)
    if errors:
        return validation_failed(errors)
    expires_at = parse_datetime(data.get("expires_at"), "expires_at")

    flags = {f: data[f] for f in FLAG_FIELDS if data.get(f) is not None}
    result = share_link_service.create_share_link(
        session=db.session,
        cache=get_cache(),
        project_id=project_id,
        user_id=current_user_id(),
        app_url=current_app.config["APP_URL"],
        expires_at=expires_at,
        **flags,
    )
    return jsonify(result), 201


@share_link_bp.route("/share-links/<share_link_id>", methods=["DELETE"])
@require_auth
def revoke_share_link(share_link_id):
    result = share_link_service.revoke_share_link(
        session=db.session, cache=get_cache(), share_link_id=share_link_id, user_id=current_user_id(),
    )
    return jsonify(result)
