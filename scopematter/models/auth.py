"""
Identity model — AppUser.

Authentication itself is external: an identity provider issues the bearer
tokens and pushes user lifecycle events to the webhook. This table only mirrors
the provider's users so that projects, wallets and payment links have a local
owner row to reference.
"""

from scopematter.models import _iso, _utcnow, _uuid, db


class AppUser(db.Model):
    """Local mirror of an identity-provider user.

    Business rules:
    - external_id is the provider's user id and the upsert key.
    - Users are never hard-deleted by the webhook; ``user.deleted`` flips
      is_active to False so owned projects keep a valid FK.
    """

    __tablename__ = "app_users"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    external_id = db.Column(
        db.String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="User id at the identity provider (token 'sub' claim).",
    )
    email = db.Column(db.String(255), nullable=True)
    username = db.Column(db.String(255), nullable=True)
    first_name = db.Column(db.String(255), nullable=True)
    last_name = db.Column(db.String(255), nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    projects = db.relationship(
        "Project",
        back_populates="owner",
        lazy="select",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "external_id": self.external_id,
            "email": self.email,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "image_url": self.image_url,
            "is_active": self.is_active,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<AppUser {self.id} ext={self.external_id}>"
