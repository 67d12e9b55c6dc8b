"""
Payment Links Blueprint — shareable crypto payment requests.

Endpoints:
    GET    /api/v1/payment-links         — active links (newest first)
    POST   /api/v1/payment-links         — create against an owned wallet
    DELETE /api/v1/payment-links/<id>    — deactivate

The public view is GET /api/v1/public/pay/<slug> (public_bp).
"""

from flask import Blueprint, jsonify

from scopematter.blueprints import check_choice, check_text, validation_failed
from scopematter.middleware.jwt_auth import current_user_id, require_auth
from scopematter.models import db
from scopematter.models.wallet import SUPPORTED_CHAINS
from scopematter.services import payment_link_service
from scopematter.utils.helpers import get_json_body

payment_link_bp = Blueprint("payment_links", __name__, url_prefix="/api/v1/payment-links")

MIN_AMOUNT_USD = 1
MAX_AMOUNT_USD = 99_999_999.99


def _validate_payment_link_input(data: dict) -> dict:
    errors: dict[str, str] = {}
    check_text(data, "wallet_id", errors, max_len=36, required=True)
    check_choice(data, "chain", errors, SUPPORTED_CHAINS, required=True)
    check_text(data, "asset", errors, max_len=10, required=True)
    check_text(data, "memo", errors, max_len=255, min_len=0)

    amount = data.get("amount_usd")
    if amount is not None:
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            errors["amount_usd"] = "amount_usd must be a number"
        elif not MIN_AMOUNT_USD <= amount <= MAX_AMOUNT_USD:
            errors["amount_usd"] = f"amount_usd must be between {MIN_AMOUNT_USD} and {MAX_AMOUNT_USD}"
    return errors


@payment_link_bp.route("", methods=["GET"])
@require_auth
def list_payment_links():
    links = payment_link_service.list_payment_links(session=db.session, user_id=current_user_id())
    return jsonify({"items": [link.to_dict() for link in links], "total": len(links)})


@payment_link_bp.route("", methods=["POST"])
@require_auth
def create_payment_link():
    data = get_json_body()
    errors = _validate_payment_link_input(data)
    if errors:
        return validation_failed(errors)

    link = payment_link_service.create_payment_link(
        session=db.session,
        user_id=current_user_id(),
        wallet_id=data["wallet_id"],
        chain=data["chain"],
        asset=data["asset"],
        amount_usd=data.get("amount_usd"),
        memo=data.get("memo"),
    )
    return jsonify(link.to_dict()), 201


@payment_link_bp.route("/<payment_link_id>", methods=["DELETE"])
@require_auth
def delete_payment_link(payment_link_id):
    link = payment_link_service.delete_payment_link(
        session=db.session, user_id=current_user_id(), payment_link_id=payment_link_id,
    )
    return jsonify(link.to_dict())
