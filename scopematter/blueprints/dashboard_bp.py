"""Dashboard Blueprint — GET /api/v1/dashboard (cached per user)."""

from flask import Blueprint, jsonify

from scopematter.blueprints import get_cache
from scopematter.middleware.jwt_auth import current_user_id, require_auth
from scopematter.models import db
from scopematter.services import dashboard_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1/dashboard")


@dashboard_bp.route("", methods=["GET"])
@require_auth
def get_dashboard():
    return jsonify(dashboard_service.get_dashboard(
        session=db.session, cache=get_cache(), user_id=current_user_id(),
    ))
