"""
Payment link service — shareable requests for crypto payment.

Creation checks, in order:
    wallet owned by the user      → WALLET_NOT_FOUND
    wallet.chain == link chain    → CHAIN_MISMATCH
    asset allowed on that chain   → UNSUPPORTED_ASSET
Deletion is a soft deactivation (ACTIVE → INACTIVE); an inactive link is
reported as PAYMENTLINK_NOT_FOUND everywhere.
"""

import logging
from decimal import Decimal

from sqlalchemy import select

from scopematter.core.exceptions import ConflictError, NotFoundError, ServiceErrorCode
from scopematter.models.wallet import CHAIN_ASSETS, PaymentLink, Wallet
from scopematter.services.helpers.transactions import atomic

logger = logging.getLogger(__name__)


def create_payment_link(*, session, user_id, wallet_id, chain, asset,
                        amount_usd=None, memo=None) -> PaymentLink:
    with atomic(session):
        wallet = session.execute(
            select(Wallet).where(Wallet.id == wallet_id, Wallet.user_id == user_id)
        ).scalar_one_or_none()
        if wallet is None:
            raise NotFoundError(ServiceErrorCode.WALLET_NOT_FOUND)
        if wallet.chain != chain:
            raise ConflictError(ServiceErrorCode.CHAIN_MISMATCH)
        if asset not in CHAIN_ASSETS.get(chain, ()):
            raise ConflictError(ServiceErrorCode.UNSUPPORTED_ASSET)

        link = PaymentLink(
            user_id=user_id,
            wallet_id=wallet_id,
            chain=chain,
            asset=asset,
            amount_usd=Decimal(str(amount_usd)) if amount_usd is not None else None,
            memo=memo,
            status="ACTIVE",
        )
        session.add(link)
        session.flush()

    logger.info("Payment link %s created (%s on %s)", link.id, asset, chain,
                extra={"user_id": user_id})
    return link


def list_payment_links(*, session, user_id) -> list[PaymentLink]:
    """Active links of *user_id*, newest first."""
    stmt = (
        select(PaymentLink)
        .where(PaymentLink.user_id == user_id, PaymentLink.status == "ACTIVE")
        .order_by(PaymentLink.created_at.desc())
    )
    return list(session.execute(stmt).scalars())


def get_payment_link_by_slug(*, session, slug) -> dict:
    """Public view of an active link: wallet address and payee contact."""
    link = session.execute(
        select(PaymentLink).where(PaymentLink.slug == slug, PaymentLink.status == "ACTIVE")
    ).scalar_one_or_none()
    if link is None:
        raise NotFoundError(ServiceErrorCode.PAYMENTLINK_NOT_FOUND)

    data = link.to_dict()
    data.pop("user_id", None)
    data["user"] = {
        "email": link.user.email if link.user else None,
        "image_url": link.user.image_url if link.user else None,
    }
    return data


def delete_payment_link(*, session, user_id, payment_link_id) -> PaymentLink:
    """Soft-deactivate an active link."""
    with atomic(session):
        link = session.execute(
            select(PaymentLink).where(
                PaymentLink.id == payment_link_id, PaymentLink.user_id == user_id,
            )
        ).scalar_one_or_none()
        if link is None or link.status == "INACTIVE":
            raise NotFoundError(ServiceErrorCode.PAYMENTLINK_NOT_FOUND)
        link.status = "INACTIVE"
        session.flush()

    logger.info("Payment link %s deactivated", payment_link_id, extra={"user_id": user_id})
    return link
