"""
Request → ChangeOrder domain models.

Request lifecycle:
    PENDING → IN_SCOPE | OUT_OF_SCOPE
    PENDING is only ever the initial state. Switching between IN_SCOPE and
    OUT_OF_SCOPE is not restricted.

ChangeOrder lifecycle (CHANGE_ORDER_TRANSITIONS):
    PENDING  → PENDING | APPROVED | REJECTED
    APPROVED → (terminal)
    REJECTED → (terminal)
    Once a change order leaves PENDING, none of its fields may change and it
    cannot be deleted.

A Request has at most one ChangeOrder, enforced by the UNIQUE constraint on
change_orders.request_id.
"""

from scopematter.models import _iso, _utcnow, _uuid, db

# ── Constants ─────────────────────────────────────────────────────────────────

REQUEST_STATUSES = frozenset({"PENDING", "IN_SCOPE", "OUT_OF_SCOPE"})
# Targets accepted by the update operation (PENDING is creation-only)
REQUEST_UPDATE_STATUSES = frozenset({"IN_SCOPE", "OUT_OF_SCOPE"})

CHANGE_ORDER_STATUSES = frozenset({"PENDING", "APPROVED", "REJECTED"})

CHANGE_ORDER_TRANSITIONS = {
    "PENDING":  ["PENDING", "APPROVED", "REJECTED"],
    "APPROVED": [],
    "REJECTED": [],
}

MAX_PRICE_USD = "999999.99"
MAX_EXTRA_DAYS = 365


def validate_change_order_transition(old_status, new_status):
    """Return True if ChangeOrder status transition is valid."""
    return new_status in CHANGE_ORDER_TRANSITIONS.get(old_status, [])


def is_change_order_editable(status):
    """Only PENDING change orders accept updates or deletion."""
    return status == "PENDING"


class Request(db.Model):
    """A client-submitted work request logged against a project."""

    __tablename__ = "requests"
    __table_args__ = (
        db.Index("ix_requests_project_created", "project_id", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    description = db.Column(db.String(2000), nullable=False)
    status = db.Column(
        db.String(20),
        nullable=False,
        default="PENDING",
        comment="PENDING | IN_SCOPE | OUT_OF_SCOPE",
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    project = db.relationship("Project", back_populates="requests")
    change_order = db.relationship(
        "ChangeOrder",
        back_populates="request",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "description": self.description,
            "status": self.status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def to_summary(self) -> dict:
        return {"id": self.id, "description": self.description, "status": self.status}

    def __repr__(self):
        return f"<Request {self.id} {self.status}>"


class ChangeOrder(db.Model):
    """A priced, optionally time-extending addendum for one out-of-scope request."""

    __tablename__ = "change_orders"
    __table_args__ = (
        db.UniqueConstraint("request_id", name="uq_change_orders_request"),
        db.CheckConstraint("price_usd > 0", name="ck_change_orders_price_positive"),
        db.CheckConstraint(
            "extra_days IS NULL OR (extra_days > 0 AND extra_days <= 365)",
            name="ck_change_orders_extra_days_range",
        ),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    request_id = db.Column(
        db.String(36),
        db.ForeignKey("requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("app_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    price_usd = db.Column(db.Numeric(8, 2), nullable=False)
    extra_days = db.Column(db.Integer, nullable=True)
    status = db.Column(
        db.String(20),
        nullable=False,
        default="PENDING",
        comment="PENDING | APPROVED | REJECTED",
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    request = db.relationship("Request", back_populates="change_order")
    project = db.relationship("Project", back_populates="change_orders")

    def to_dict(self, include_request: bool = True) -> dict:
        data = {
            "id": self.id,
            "request_id": self.request_id,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "price_usd": str(self.price_usd) if self.price_usd is not None else None,
            "extra_days": self.extra_days,
            "status": self.status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_request:
            data["request"] = self.request.to_summary() if self.request else None
        return data

    def __repr__(self):
        return f"<ChangeOrder {self.id} {self.status}>"
