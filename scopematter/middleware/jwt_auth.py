"""
JWT Auth Middleware — resolves the bearer token to a local AppUser.

Flow:
  Authorization: Bearer <token>
    → decode (signature, exp)
    → sub = identity-provider user id
    → active AppUser with that external_id
    → g.current_user_id = AppUser.id

An absent or invalid token leaves g.current_user_id as None; protected views
reject the request through @require_auth. The middleware itself never
blocks a request, so public endpoints keep working with a stale token.
"""

import functools
import logging

import jwt as pyjwt
from flask import g, request

from scopematter.models import db
from scopematter.services import user_service
from scopematter.services.jwt_service import decode_access_token
from scopematter.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/api/v1/webhooks/",
    "/api/v1/public/",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_user_id = None
        g.current_external_id = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]  # Strip "Bearer "

        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            logger.debug("Expired bearer token on %s", path)
            return
        except pyjwt.InvalidTokenError as exc:
            logger.debug("Invalid bearer token on %s: %s", path, exc)
            return

        external_id = payload.get("sub")
        user = user_service.get_active_user_by_external_id(db.session, external_id)
        if user is None:
            logger.info("Bearer token for unknown or inactive user", extra={"path": path})
            return

        g.current_user_id = user.id
        g.current_external_id = external_id


def require_auth(f):
    """Decorator: reject the request with 401 unless a user was resolved."""

    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if getattr(g, "current_user_id", None) is None:
            return api_error(E.UNAUTHORIZED, "Authentication required")
        return f(*args, **kwargs)

    return decorated


def current_user_id() -> str:
    """The authenticated AppUser id. Only valid inside @require_auth views."""
    return g.current_user_id
