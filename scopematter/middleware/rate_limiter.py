"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in scopematter/__init__.py with no default
limits; this module applies granular limits per route category.

Usage:
    from scopematter.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

# Unauthenticated endpoints that take a guessable path segment
PUBLIC_LIMIT = "30/minute"
WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Public share / pay views:  30/minute (token enumeration)
        - Owner API blueprints:      60/minute
        - Dashboard:                 200/minute
        - Health check, webhooks:    exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("public")
    if bp:
        limiter.limit(PUBLIC_LIMIT)(bp)

    for bp_name in ("projects", "scope_items", "requests", "change_orders",
                    "share_links", "wallets", "payment_links"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("dashboard")
    if bp:
        limiter.limit(READ_LIMIT)(bp)

    for bp_name in ("health", "webhooks"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — public: %s, write: %s, read: %s",
        PUBLIC_LIMIT, WRITE_LIMIT, READ_LIMIT,
    )
