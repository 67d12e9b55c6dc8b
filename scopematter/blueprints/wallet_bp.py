"""
Wallets Blueprint — the caller's receiving addresses.

Endpoints:
    GET    /api/v1/wallets                 — list (primary first)
    POST   /api/v1/wallets                 — register an address
    PATCH  /api/v1/wallets/<id>/primary    — make primary for its chain
    DELETE /api/v1/wallets/<id>            — delete a non-primary wallet
"""

import re

from flask import Blueprint, jsonify

from scopematter.blueprints import check_bool, check_choice, validation_failed
from scopematter.middleware.jwt_auth import current_user_id, require_auth
from scopematter.models import db
from scopematter.models.wallet import SUPPORTED_CHAINS
from scopematter.services import wallet_service
from scopematter.utils.helpers import get_json_body

wallet_bp = Blueprint("wallets", __name__, url_prefix="/api/v1/wallets")

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def _validate_wallet_input(data: dict) -> dict:
    errors: dict[str, str] = {}
    address = data.get("address")
    if not address:
        errors["address"] = "address is required"
    elif not isinstance(address, str) or not ADDRESS_RE.match(address):
        errors["address"] = "Invalid address format"
    check_choice(data, "chain", errors, SUPPORTED_CHAINS, required=True)
    check_bool(data, "is_primary", errors)
    return errors


@wallet_bp.route("", methods=["GET"])
@require_auth
def list_wallets():
    wallets = wallet_service.list_wallets(session=db.session, user_id=current_user_id())
    return jsonify({"items": [w.to_dict() for w in wallets], "total": len(wallets)})


@wallet_bp.route("", methods=["POST"])
@require_auth
def create_wallet():
    data = get_json_body()
    errors = _validate_wallet_input(data)
    if errors:
        return validation_failed(errors)

    wallet = wallet_service.create_wallet(
        session=db.session,
        user_id=current_user_id(),
        address=data["address"],
        chain=data["chain"],
        is_primary=bool(data.get("is_primary", False)),
    )
    return jsonify(wallet.to_dict()), 201


@wallet_bp.route("/<wallet_id>/primary", methods=["PATCH"])
@require_auth
def set_primary_wallet(wallet_id):
    wallet = wallet_service.set_primary_wallet(
        session=db.session, user_id=current_user_id(), wallet_id=wallet_id,
    )
    return jsonify(wallet.to_dict())


@wallet_bp.route("/<wallet_id>", methods=["DELETE"])
@require_auth
def delete_wallet(wallet_id):
    return jsonify(wallet_service.delete_wallet(
        session=db.session, user_id=current_user_id(), wallet_id=wallet_id,
    ))
