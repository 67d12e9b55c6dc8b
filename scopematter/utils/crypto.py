"""
Crypto utilities — share-link tokens and webhook signatures.

Share-link tokens:
  24 random bytes rendered URL-safe base64. Only the SHA-256 digest (also
  URL-safe base64, unpadded) is persisted; lookups re-derive it from the
  presented token.

Webhook signatures:
  Hex HMAC-SHA256 of the raw request body keyed by WEBHOOK_SECRET, compared
  in constant time. An optional "sha256=" prefix is accepted.
"""

import base64
import hashlib
import hmac
import secrets

SHARE_TOKEN_BYTES = 24


def generate_share_token() -> str:
    """Generate a fresh raw share-link token (32 URL-safe chars)."""
    return secrets.token_urlsafe(SHARE_TOKEN_BYTES)


def hash_share_token(token: str) -> str:
    """One-way hash of a share-link token for storage and lookup."""
    digest = hashlib.sha256(token.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def sign_webhook_payload(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_webhook_signature(secret: str, body: bytes, signature: str | None) -> bool:
    """Constant-time check of an X-Webhook-Signature header value."""
    if not signature:
        return False
    if signature.startswith("sha256="):
        signature = signature[len("sha256="):]
    expected = sign_webhook_payload(secret, body)
    return hmac.compare_digest(expected, signature.strip().lower())
