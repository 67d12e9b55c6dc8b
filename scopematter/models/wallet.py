"""
Crypto payment models: Wallet and PaymentLink.

Wallet rules:
- Per (user, chain) there is exactly one primary wallet once any wallet
  exists for that pair. The first wallet of a chain is auto-promoted.
- Primary wallets cannot be deleted.

PaymentLink lifecycle: ACTIVE → INACTIVE (soft delete).
"""

import secrets

from scopematter.models import _iso, _utcnow, _uuid, db

# ── Constants ─────────────────────────────────────────────────────────────────

SUPPORTED_CHAINS = frozenset({"ETH_MAINNET"})

# Chain → assets a payment link may request on it
CHAIN_ASSETS = {
    "ETH_MAINNET": frozenset({"ETH", "USDT"}),
}

PAYMENT_LINK_STATUSES = frozenset({"ACTIVE", "INACTIVE"})


def _slug() -> str:
    return secrets.token_urlsafe(9)


class Wallet(db.Model):
    """A receiving address owned by a user on one chain."""

    __tablename__ = "wallets"
    __table_args__ = (
        db.UniqueConstraint("user_id", "chain", "address", name="uq_wallets_user_chain_address"),
        db.Index("ix_wallets_user_chain", "user_id", "chain"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("app_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    address = db.Column(db.String(64), nullable=False)
    chain = db.Column(db.String(30), nullable=False, comment="ETH_MAINNET")
    is_primary = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    payment_links = db.relationship(
        "PaymentLink",
        back_populates="wallet",
        lazy="select",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "address": self.address,
            "chain": self.chain,
            "is_primary": self.is_primary,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def to_public(self) -> dict:
        return {"address": self.address, "chain": self.chain, "is_primary": self.is_primary}


class PaymentLink(db.Model):
    """A shareable request for payment into one of the user's wallets."""

    __tablename__ = "payment_links"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    slug = db.Column(db.String(32), nullable=False, unique=True, index=True, default=_slug)
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("app_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    wallet_id = db.Column(
        db.String(36),
        db.ForeignKey("wallets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chain = db.Column(db.String(30), nullable=False)
    asset = db.Column(db.String(10), nullable=False, comment="ETH | USDT")
    amount_usd = db.Column(db.Numeric(10, 2), nullable=True)
    memo = db.Column(db.String(255), nullable=True)
    status = db.Column(
        db.String(10),
        nullable=False,
        default="ACTIVE",
        comment="ACTIVE | INACTIVE",
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    wallet = db.relationship("Wallet", back_populates="payment_links")
    user = db.relationship("AppUser")

    def to_dict(self, include_wallet: bool = True) -> dict:
        data = {
            "id": self.id,
            "slug": self.slug,
            "user_id": self.user_id,
            "wallet_id": self.wallet_id,
            "chain": self.chain,
            "asset": self.asset,
            "amount_usd": str(self.amount_usd) if self.amount_usd is not None else None,
            "memo": self.memo,
            "status": self.status,
            "created_at": _iso(self.created_at),
        }
        if include_wallet:
            data["wallet"] = self.wallet.to_public() if self.wallet else None
        return data
