"""
Change Orders Blueprint — priced, time-boxed proposals for out-of-scope work.

Endpoints:
    GET    /api/v1/projects/<pid>/change-orders             — list (newest first)
    POST   /api/v1/projects/<pid>/change-orders             — create from an OUT_OF_SCOPE request
    GET    /api/v1/projects/<pid>/change-orders/<id>        — detail incl. request summary
    PATCH  /api/v1/projects/<pid>/change-orders/<id>        — edit / decide (PENDING only)
    DELETE /api/v1/projects/<pid>/change-orders/<id>        — delete (PENDING only)
    GET    /api/v1/projects/<pid>/change-orders/<id>/export — .xlsx (or ?format=json)

Price and extra-day bounds are enforced by the service (ValidationError → 400).
"""

from flask import Blueprint, jsonify, request

from scopematter.blueprints import check_text, get_cache, send_xlsx, validation_failed
from scopematter.middleware.jwt_auth import current_user_id, require_auth
from scopematter.models import db
from scopematter.services import change_order_service, export_service
from scopematter.utils.helpers import get_json_body

change_order_bp = Blueprint(
    "change_orders", __name__, url_prefix="/api/v1/projects/<project_id>/change-orders",
)


@change_order_bp.route("", methods=["GET"])
@require_auth
def list_change_orders(project_id):
    orders = change_order_service.list_change_orders(
        session=db.session, project_id=project_id, user_id=current_user_id(),
    )
    return jsonify({"items": [o.to_dict() for o in orders], "total": len(orders)})


@change_order_bp.route("", methods=["POST"])
@require_auth
def create_change_order(project_id):
    data = get_json_body()
    errors: dict[str, str] = {}
    check_text(data, "request_id", errors, max_len=36, required=True)
    if "price_usd" not in data:
        errors["price_usd"] = "price_usd is required"
    if errors:
        return validation_failed(errors)

    change_order = change_order_service.create_change_order(
        session=db.session,
        cache=get_cache(),
        project_id=project_id,
        request_id=data["request_id"],
        user_id=current_user_id(),
        price_usd=data["price_usd"],
        extra_days=data.get("extra_days"),
    )
    return jsonify(change_order.to_dict()), 201


@change_order_bp.route("/<change_order_id>", methods=["GET"])
@require_auth
def get_change_order(project_id, change_order_id):
    change_order = change_order_service.get_change_order(
        session=db.session,
        project_id=project_id,
        change_order_id=change_order_id,
        user_id=current_user_id(),
    )
    return jsonify(change_order.to_dict())


@change_order_bp.route("/<change_order_id>", methods=["PATCH", "PUT"])
@require_auth
def update_change_order(project_id, change_order_id):
    data = get_json_body()
    change_order = change_order_service.update_change_order(
        session=db.session,
        cache=get_cache(),
        project_id=project_id,
        change_order_id=change_order_id,
        user_id=current_user_id(),
        price_usd=data.get("price_usd"),
        extra_days=data.get("extra_days"),
        status=data.get("status"),
    )
    return jsonify(change_order.to_dict())


@change_order_bp.route("/<change_order_id>", methods=["DELETE"])
@require_auth
def delete_change_order(project_id, change_order_id):
    result = change_order_service.delete_change_order(
        session=db.session,
        cache=get_cache(),
        project_id=project_id,
        change_order_id=change_order_id,
        user_id=current_user_id(),
    )
    return jsonify(result)


@change_order_bp.route("/<change_order_id>/export", methods=["GET"])
@require_auth
def export_change_order(project_id, change_order_id):
    data = export_service.export_change_order(
        session=db.session,
        project_id=project_id,
        change_order_id=change_order_id,
        user_id=current_user_id(),
    )
    if request.args.get("format") == "json":
        return jsonify(data)
    return send_xlsx(
        export_service.render_change_order_xlsx(data), f"change_order_{change_order_id}.xlsx",
    )
