"""
ShareLink — tokenized, revocable, optionally expiring read-only project view.

Security:
- Only token_hash is stored. The raw token is returned once at creation and
  never persisted or logged; lookups re-derive the hash.
- Revocation is one-way: is_active True → False with revoked_at set.
"""

from scopematter.models import _iso, _utcnow, _uuid, db


class ShareLink(db.Model):
    """Client-facing view of a subset of a project's data."""

    __tablename__ = "share_links"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token_hash = db.Column(
        db.String(64),
        nullable=False,
        unique=True,
        index=True,
        comment="URL-safe base64 SHA-256 of the raw token. NEVER expose.",
    )
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True)
    show_scope_items = db.Column(db.Boolean, nullable=False, default=True)
    show_requests = db.Column(db.Boolean, nullable=False, default=True)
    show_change_orders = db.Column(db.Boolean, nullable=False, default=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    view_count = db.Column(db.Integer, nullable=False, default=0)
    last_viewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    project = db.relationship("Project", back_populates="share_links")

    def permissions(self) -> dict:
        return {
            "show_scope_items": self.show_scope_items,
            "show_requests": self.show_requests,
            "show_change_orders": self.show_change_orders,
        }

    def to_dict(self) -> dict:
        """Owner-facing list item. token_hash is excluded."""
        return {
            "id": self.id,
            "project_id": self.project_id,
            "created_at": _iso(self.created_at),
            "expires_at": _iso(self.expires_at),
            "revoked_at": _iso(self.revoked_at),
            "is_active": self.is_active,
            "view_count": self.view_count,
            "last_viewed_at": _iso(self.last_viewed_at),
            "permissions": self.permissions(),
        }

    def __repr__(self):
        return f"<ShareLink {self.id} active={self.is_active}>"
