"""Standardised API error responses.

Usage
-----
    from scopematter.utils.errors import api_error, E

    return api_error(E.UNAUTHORIZED, "Authentication required")
    return api_error(E.VALIDATION_REQUIRED, "name is required")
    return service_error_response(exc)   # ServiceError → code-mapped status
"""

from __future__ import annotations

from flask import jsonify

from scopematter.core.exceptions import ServiceError, ServiceErrorCode


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants for boundary-layer failures.

    Business-rule violations use the ServiceErrorCode values instead.
    """

    # Validation – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    VALIDATION_CONSTRAINT = "ERR_VALIDATION_CONSTRAINT"

    # Auth – HTTP 401
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    INVALID_SIGNATURE = "ERR_INVALID_SIGNATURE"

    # Not-found – HTTP 404 (unknown route)
    NOT_FOUND = "ERR_NOT_FOUND"

    # Server – HTTP 500
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_CONSTRAINT: 400,
    E.UNAUTHORIZED: 401,
    E.INVALID_SIGNATURE: 401,
    E.NOT_FOUND: 404,
    E.INTERNAL: 500,
}

_C = ServiceErrorCode
SERVICE_ERROR_STATUS: dict[ServiceErrorCode, int] = {
    _C.PROJECT_NOT_FOUND: 404,
    _C.SCOPE_ITEM_NOT_FOUND: 404,
    _C.REQUEST_NOT_FOUND: 404,
    _C.CHANGE_ORDER_NOT_FOUND: 404,
    _C.SHARE_LINK_NOT_FOUND: 404,
    _C.WALLET_NOT_FOUND: 404,
    _C.PAYMENTLINK_NOT_FOUND: 404,
    _C.WALLET_EXISTS: 409,
    _C.REQUEST_NOT_ELIGIBLE: 409,
    _C.INVALID_STATUS_UPDATE: 409,
    _C.SHARE_LINK_NOT_ACTIVE: 409,
    _C.SHARE_LINK_EXPIRED: 410,
    _C.ALREADY_PRIMARY: 422,
    _C.CANNOT_DELETE_PRIMARY: 422,
    _C.CHAIN_MISMATCH: 422,
    _C.UNSUPPORTED_ASSET: 422,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (``E.*`` or a ServiceErrorCode value).
    message : str
        Human-readable explanation, safe to show to end users.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Field-level breakdown for validation failures.

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def service_error_response(exc: ServiceError):
    """Render a ServiceError with the status its code maps to."""
    return api_error(
        exc.code.value,
        exc.message,
        status=SERVICE_ERROR_STATUS.get(exc.code, 400),
    )
