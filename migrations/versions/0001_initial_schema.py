"""initial_schema

Create the full Scopematter schema: identity mirror, projects and their
clients, scope items, requests, change orders, share links, wallets and
payment links.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated=True):
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False))
    return cols


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "app_users" not in existing_tables:
        op.create_table(
            "app_users",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("external_id", sa.String(length=255), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("username", sa.String(length=255), nullable=True),
            sa.Column("first_name", sa.String(length=255), nullable=True),
            sa.Column("last_name", sa.String(length=255), nullable=True),
            sa.Column("image_url", sa.String(length=1024), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_app_users_external_id", "app_users", ["external_id"], unique=True)

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("description", sa.String(length=500), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
            *_timestamps(),
            sa.ForeignKeyConstraint(["user_id"], ["app_users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_projects_user_id", "projects", ["user_id"])
        op.create_index("ix_projects_user_created", "projects", ["user_id", "created_at"])

    if "clients" not in existing_tables:
        op.create_table(
            "clients",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("company", sa.String(length=200), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_clients_project_id", "clients", ["project_id"], unique=True)

    if "scope_items" not in existing_tables:
        op.create_table(
            "scope_items",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("description", sa.String(length=1000), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
            *_timestamps(),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_scope_items_project_id", "scope_items", ["project_id"])

    if "requests" not in existing_tables:
        op.create_table(
            "requests",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("description", sa.String(length=2000), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
            *_timestamps(),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_requests_project_id", "requests", ["project_id"])
        op.create_index("ix_requests_project_created", "requests", ["project_id", "created_at"])

    if "change_orders" not in existing_tables:
        op.create_table(
            "change_orders",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("request_id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("price_usd", sa.Numeric(precision=8, scale=2), nullable=False),
            sa.Column("extra_days", sa.Integer(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
            *_timestamps(),
            sa.CheckConstraint("price_usd > 0", name="ck_change_orders_price_positive"),
            sa.CheckConstraint(
                "extra_days IS NULL OR (extra_days > 0 AND extra_days <= 365)",
                name="ck_change_orders_extra_days_range",
            ),
            sa.ForeignKeyConstraint(["request_id"], ["requests.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["app_users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("request_id", name="uq_change_orders_request"),
        )
        op.create_index("ix_change_orders_request_id", "change_orders", ["request_id"])
        op.create_index("ix_change_orders_project_id", "change_orders", ["project_id"])
        op.create_index("ix_change_orders_user_id", "change_orders", ["user_id"])

    if "share_links" not in existing_tables:
        op.create_table(
            "share_links",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("token_hash", sa.String(length=64), nullable=False),
            sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("show_scope_items", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("show_requests", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("show_change_orders", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("last_viewed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
            *_timestamps(updated=False),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_share_links_project_id", "share_links", ["project_id"])
        op.create_index("ix_share_links_token_hash", "share_links", ["token_hash"], unique=True)

    if "wallets" not in existing_tables:
        op.create_table(
            "wallets",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("address", sa.String(length=64), nullable=False),
            sa.Column("chain", sa.String(length=30), nullable=False),
            sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
            *_timestamps(),
            sa.ForeignKeyConstraint(["user_id"], ["app_users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("user_id", "chain", "address", name="uq_wallets_user_chain_address"),
        )
        op.create_index("ix_wallets_user_id", "wallets", ["user_id"])
        op.create_index("ix_wallets_user_chain", "wallets", ["user_id", "chain"])

    if "payment_links" not in existing_tables:
        op.create_table(
            "payment_links",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("slug", sa.String(length=32), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("wallet_id", sa.String(length=36), nullable=False),
            sa.Column("chain", sa.String(length=30), nullable=False),
            sa.Column("asset", sa.String(length=10), nullable=False),
            sa.Column("amount_usd", sa.Numeric(precision=10, scale=2), nullable=True),
            sa.Column("memo", sa.String(length=255), nullable=True),
            sa.Column("status", sa.String(length=10), nullable=False, server_default="ACTIVE"),
            *_timestamps(),
            sa.ForeignKeyConstraint(["user_id"], ["app_users.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["wallet_id"], ["wallets.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_payment_links_slug", "payment_links", ["slug"], unique=True)
        op.create_index("ix_payment_links_user_id", "payment_links", ["user_id"])
        op.create_index("ix_payment_links_wallet_id", "payment_links", ["wallet_id"])


def downgrade():
    for table in (
        "payment_links", "wallets", "share_links", "change_orders",
        "requests", "scope_items", "clients", "projects", "app_users",
    ):
        op.drop_table(table)
