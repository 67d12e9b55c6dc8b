"""
Project domain models: Project, Client, ScopeItem.

A Project is owned by exactly one AppUser and has exactly one Client, created
in the same transaction. Every scoped entity (scope items, requests, change
orders, share links) hangs off a Project with ON DELETE CASCADE, so deleting a
project is a single store-level operation.
"""

from scopematter.models import _iso, _utcnow, _uuid, db

# ── Constants ─────────────────────────────────────────────────────────────────

PROJECT_STATUSES = frozenset({"PENDING", "IN_PROGRESS", "COMPLETED"})
SCOPE_ITEM_STATUSES = frozenset({"PENDING", "IN_PROGRESS", "COMPLETED"})


class Project(db.Model):
    """A freelancer/agency engagement with one client."""

    __tablename__ = "projects"
    __table_args__ = (
        db.Index("ix_projects_user_created", "user_id", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("app_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    status = db.Column(
        db.String(20),
        nullable=False,
        default="PENDING",
        comment="PENDING | IN_PROGRESS | COMPLETED",
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    owner = db.relationship("AppUser", back_populates="projects")
    client = db.relationship(
        "Client",
        back_populates="project",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    scope_items = db.relationship(
        "ScopeItem",
        back_populates="project",
        lazy="select",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ScopeItem.created_at",
    )
    requests = db.relationship(
        "Request",
        back_populates="project",
        lazy="select",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Request.created_at.desc()",
    )
    change_orders = db.relationship(
        "ChangeOrder",
        back_populates="project",
        lazy="select",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ChangeOrder.created_at.desc()",
    )
    share_links = db.relationship(
        "ShareLink",
        back_populates="project",
        lazy="select",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self, include_client: bool = True) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_client:
            data["client"] = self.client.to_dict() if self.client else None
        return data

    def __repr__(self):
        return f"<Project {self.id} {self.name!r}>"


class Client(db.Model):
    """The project's client. Exists only as a child of its project."""

    __tablename__ = "clients"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    company = db.Column(db.String(200), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    project = db.relationship("Project", back_populates="client")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "company": self.company,
        }


class ScopeItem(db.Model):
    """A unit of work covered by the original project scope."""

    __tablename__ = "scope_items"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(1000), nullable=False)
    status = db.Column(
        db.String(20),
        nullable=False,
        default="PENDING",
        comment="PENDING | IN_PROGRESS | COMPLETED",
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    project = db.relationship("Project", back_populates="scope_items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
