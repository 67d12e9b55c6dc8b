"""
Webhooks Blueprint — identity provider user lifecycle events.

    POST /api/v1/webhooks/identity
        {"type": "user.created" | "user.updated" | "user.deleted", "data": {...}}

Unauthenticated. When WEBHOOK_SECRET is configured the raw body must carry
a valid X-Webhook-Signature (hex HMAC-SHA256), otherwise 401.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from scopematter.models import db
from scopematter.services import user_service
from scopematter.utils.crypto import verify_webhook_signature
from scopematter.utils.errors import E, api_error
from scopematter.utils.helpers import get_json_body

logger = logging.getLogger(__name__)

webhook_bp = Blueprint("webhooks", __name__, url_prefix="/api/v1/webhooks")


@webhook_bp.route("/identity", methods=["POST"])
def identity_event():
    secret = current_app.config.get("WEBHOOK_SECRET")
    if secret:
        signature = request.headers.get("X-Webhook-Signature")
        if not verify_webhook_signature(secret, request.get_data(), signature):
            logger.warning("Identity webhook rejected: bad signature")
            return api_error(E.INVALID_SIGNATURE, "Invalid webhook signature")

    payload = get_json_body()
    event_type = payload.get("type")
    user = user_service.upsert_app_user(db.session, payload.get("data"), event_type)
    return jsonify({
        "received": True,
        "type": event_type,
        "user_id": user.id if user else None,
    })
