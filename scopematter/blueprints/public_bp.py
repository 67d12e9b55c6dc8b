"""
Public Blueprint — unauthenticated reads for clients and payers.

Endpoints:
    GET /api/v1/public/share/<token>   — resolve a share link (counts a view)
    GET /api/v1/public/pay/<slug>      — active payment link with wallet address

The JWT middleware skips this prefix; the request timing logger skips the
share path so raw tokens stay out of the logs.
"""

from flask import Blueprint, jsonify

from scopematter.blueprints import get_cache
from scopematter.models import db
from scopematter.services import payment_link_service, share_link_service

public_bp = Blueprint("public", __name__, url_prefix="/api/v1/public")


@public_bp.route("/share/<token>", methods=["GET"])
def resolve_share_link(token):
    payload = share_link_service.resolve_share_link(
        session=db.session, cache=get_cache(), token=token,
    )
    return jsonify(payload)


@public_bp.route("/pay/<slug>", methods=["GET"])
def get_payment_link(slug):
    return jsonify(payment_link_service.get_payment_link_by_slug(session=db.session, slug=slug))
