"""
Service-layer exception hierarchy.

Services raise exactly two kinds of expected failures:

  ServiceError     — a business-rule violation identified by one code from the
                     closed ServiceErrorCode enum. Safe to show to end users.
  ValidationError  — well-formed request data that fails a boundary check
                     (price precision, extra_days range, missing fields).

Anything else (SQLAlchemy connection errors, bugs) propagates unchanged and is
rendered as a generic 500 by the app-level handler.

Usage:
    from scopematter.core.exceptions import ServiceError, ServiceErrorCode

    raise ServiceError(ServiceErrorCode.PROJECT_NOT_FOUND)
    raise ValidationError("price_usd must have at most 2 decimal places",
                          details={"price_usd": "precision"})
"""

from enum import Enum


class ServiceErrorCode(str, Enum):
    """Closed set of symbolic business error codes."""

    # Project
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"

    # ScopeItem
    SCOPE_ITEM_NOT_FOUND = "SCOPE_ITEM_NOT_FOUND"

    # Request
    REQUEST_NOT_FOUND = "REQUEST_NOT_FOUND"
    REQUEST_NOT_ELIGIBLE = "REQUEST_NOT_ELIGIBLE"

    # ChangeOrder
    CHANGE_ORDER_NOT_FOUND = "CHANGE_ORDER_NOT_FOUND"
    INVALID_STATUS_UPDATE = "INVALID_STATUS_UPDATE"

    # ShareLink
    SHARE_LINK_NOT_FOUND = "SHARE_LINK_NOT_FOUND"
    SHARE_LINK_NOT_ACTIVE = "SHARE_LINK_NOT_ACTIVE"
    SHARE_LINK_EXPIRED = "SHARE_LINK_EXPIRED"

    # Wallet
    WALLET_NOT_FOUND = "WALLET_NOT_FOUND"
    WALLET_EXISTS = "WALLET_EXISTS"
    ALREADY_PRIMARY = "ALREADY_PRIMARY"
    CANNOT_DELETE_PRIMARY = "CANNOT_DELETE_PRIMARY"

    # PaymentLink
    PAYMENTLINK_NOT_FOUND = "PAYMENTLINK_NOT_FOUND"
    CHAIN_MISMATCH = "CHAIN_MISMATCH"
    UNSUPPORTED_ASSET = "UNSUPPORTED_ASSET"


# Short end-user messages. No table names, ids or stack detail.
DEFAULT_MESSAGES: dict[ServiceErrorCode, str] = {
    ServiceErrorCode.PROJECT_NOT_FOUND: "Project not found",
    ServiceErrorCode.SCOPE_ITEM_NOT_FOUND: "Scope item not found",
    ServiceErrorCode.REQUEST_NOT_FOUND: "Request not found",
    ServiceErrorCode.REQUEST_NOT_ELIGIBLE: "Request is not eligible for a change order",
    ServiceErrorCode.CHANGE_ORDER_NOT_FOUND: "Change order not found",
    ServiceErrorCode.INVALID_STATUS_UPDATE: "Change order can no longer be modified",
    ServiceErrorCode.SHARE_LINK_NOT_FOUND: "Share link not found",
    ServiceErrorCode.SHARE_LINK_NOT_ACTIVE: "Share link is no longer active",
    ServiceErrorCode.SHARE_LINK_EXPIRED: "Share link has expired",
    ServiceErrorCode.WALLET_NOT_FOUND: "Wallet not found",
    ServiceErrorCode.WALLET_EXISTS: "Wallet already exists",
    ServiceErrorCode.ALREADY_PRIMARY: "Wallet is already primary",
    ServiceErrorCode.CANNOT_DELETE_PRIMARY: "Cannot delete primary wallet",
    ServiceErrorCode.PAYMENTLINK_NOT_FOUND: "Payment link not found",
    ServiceErrorCode.CHAIN_MISMATCH: "Wallet chain does not match link chain",
    ServiceErrorCode.UNSUPPORTED_ASSET: "Unsupported asset for this chain",
}


class ServiceError(Exception):
    """Raised for an expected business-rule violation.

    Security note: ownership failures and genuinely missing records share the
    same *_NOT_FOUND code. A distinct "forbidden" code would confirm that the
    resource exists for somebody else.

    Args:
        code: One of ServiceErrorCode (plain strings are coerced, unknown
              strings raise ValueError — the enum is closed).
        message: Optional override of the default end-user message.
    """

    def __init__(self, code: ServiceErrorCode | str, message: str | None = None) -> None:
        self.code = ServiceErrorCode(code)
        self.message = message or DEFAULT_MESSAGES[self.code]
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code.value})"


class NotFoundError(ServiceError):
    """A *_NOT_FOUND ServiceError — missing OR not owned by the caller."""


class ConflictError(ServiceError):
    """A ServiceError raised because the entity's current state forbids the operation."""


class ValidationError(Exception):
    """Raised when input fails boundary validation in the service layer.

    Distinct from ServiceError: the data violated a field-level constraint
    (e.g. price precision) rather than the entity's current state.

    Maps to HTTP 400 in the app-level error handler.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)
