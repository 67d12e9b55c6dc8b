"""
Cache Service — read-through / invalidate-on-write cache.

The cache is purely a latency optimisation: every entry can be rebuilt from
the database and a miss is always correct. Therefore:
  - Backend errors (Redis down, timeouts, undecodable payloads) are logged
    at WARNING and reported as a miss / no-op. They never reach callers.
  - Invalidation runs after the owning transaction commits.

Backends:
  redis   → redis.from_url(REDIS_URL)
  memory  → per-instance dict with expiry (dev/testing)
  none    → always-miss (NullBackend)

One CacheService is built per app in create_app and stored in
``app.extensions["cache"]``; blueprints pass it into services as ``cache=``.
"""

import json
import logging
import time
import uuid
from datetime import date, datetime
from decimal import Decimal

logger = logging.getLogger(__name__)

# ── Default TTLs ─────────────────────────────────────────────────────────

DEFAULT_TTL = 300   # 5 minutes
PROJECT_TTL = 300
DASHBOARD_TTL = 300
SHARE_LINK_TTL = 300


# ── Key builders ─────────────────────────────────────────────────────────

def project_key(project_id):
    return f"project:{project_id}"


def dashboard_key(user_id):
    return f"dashboard:{user_id}"


def share_link_key(share_link_id):
    return f"share-link:{share_link_id}"


def share_links_key(project_id):
    return f"share-links:{project_id}"


# ── Backends ─────────────────────────────────────────────────────────────


class MemoryBackend:
    """Simple dict cache for dev/testing."""

    def __init__(self):
        self._store: dict = {}  # key → (value_json, expire_ts)

    def get(self, key):
        entry = self._store.get(key)
        if entry is None:
            return None
        val, expires = entry
        if expires and time.time() > expires:
            self._store.pop(key, None)
            return None
        return val

    def setex(self, key, ttl_seconds, value):
        self._store[key] = (value, time.time() + ttl_seconds)

    def delete(self, *keys):
        for k in keys:
            self._store.pop(k, None)

    def flushdb(self):
        self._store.clear()

    def ping(self):
        return True


class NullBackend:
    """Cache that stores nothing. Every read is a miss."""

    def get(self, key):
        return None

    def setex(self, key, ttl_seconds, value):
        return None

    def delete(self, *keys):
        return None

    def flushdb(self):
        return None

    def ping(self):
        return True


def build_backend(kind: str, redis_url: str | None = None):
    """Instantiate the configured backend ("redis" | "memory" | "none")."""
    kind = (kind or "memory").lower()
    if kind == "none":
        return NullBackend()
    if kind == "redis":
        import redis as _redis
        logger.info("Cache: using Redis at %s", (redis_url or "").split("@")[-1])
        return _redis.from_url(redis_url, decode_responses=True, socket_timeout=2)
    return MemoryBackend()


def _json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


# ── Service ──────────────────────────────────────────────────────────────


class CacheService:
    """JSON get/set/delete over a backend, with every failure absorbed."""

    def __init__(self, backend=None, default_ttl: int = DEFAULT_TTL):
        self.backend = backend if backend is not None else NullBackend()
        self.default_ttl = default_ttl

    @property
    def backend_name(self) -> str:
        if isinstance(self.backend, MemoryBackend):
            return "memory"
        if isinstance(self.backend, NullBackend):
            return "none"
        return "redis"

    def get(self, key):
        """Return the decoded value, or None on miss or backend failure."""
        try:
            raw = self.backend.get(key)
        except Exception as exc:
            logger.warning("Cache get failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Cache entry %s is not valid JSON — treating as miss", key)
            return None

    def set(self, key, value, ttl: int | None = None) -> None:
        try:
            payload = json.dumps(value, default=_json_default)
            self.backend.setex(key, ttl or self.default_ttl, payload)
        except Exception as exc:
            logger.warning("Cache set failed for %s: %s", key, exc)

    def delete(self, *keys) -> None:
        if not keys:
            return
        try:
            self.backend.delete(*keys)
        except Exception as exc:
            logger.warning("Cache delete failed for %s: %s", ", ".join(keys), exc)

    def get_or_load(self, key, loader, ttl: int | None = None):
        """Read-through: return the cached value or call *loader* and cache it."""
        value = self.get(key)
        if value is not None:
            return value
        value = loader()
        if value is not None:
            self.set(key, value, ttl)
        return value

    def clear(self) -> None:
        try:
            self.backend.flushdb()
        except Exception as exc:
            logger.warning("Cache flush failed: %s", exc)

    def health_check(self) -> dict:
        """Return cache backend status."""
        try:
            self.backend.ping()
            return {"status": "ok", "backend": self.backend_name}
        except Exception as exc:
            return {"status": "error", "backend": self.backend_name, "detail": str(exc)}

    # ── Invalidation helpers ────────────────────────────────────────────

    def invalidate_project(self, project_id, user_id) -> None:
        """Drop the project detail and the owner's dashboard aggregate."""
        self.delete(project_key(project_id), dashboard_key(user_id))

    def invalidate_dashboard(self, user_id) -> None:
        self.delete(dashboard_key(user_id))

    def invalidate_share_links(self, project_id, *share_link_ids) -> None:
        keys = [share_links_key(project_id)]
        keys.extend(share_link_key(sid) for sid in share_link_ids)
        self.delete(*keys)
