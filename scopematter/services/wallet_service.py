"""
Wallet service — receiving addresses per (user, chain).

Primary-wallet invariant, held by every operation here: once a user has any
wallet on a chain, exactly one of them is primary.
    create (is_primary=True)  → demote the current primary, insert as primary
    create (is_primary=False) → auto-promote if the chain has no primary yet
    set_primary               → demote current, promote target (one transaction)
    delete                    → refused for the primary wallet
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from scopematter.core.exceptions import ConflictError, NotFoundError, ServiceErrorCode
from scopematter.models.wallet import Wallet
from scopematter.services.helpers.transactions import atomic

logger = logging.getLogger(__name__)


def _get_user_wallet(session, wallet_id, user_id) -> Wallet:
    wallet = session.execute(
        select(Wallet).where(Wallet.id == wallet_id, Wallet.user_id == user_id)
    ).scalar_one_or_none()
    if wallet is None:
        raise NotFoundError(ServiceErrorCode.WALLET_NOT_FOUND)
    return wallet


def _demote_primaries(session, user_id, chain) -> None:
    session.execute(
        update(Wallet)
        .where(Wallet.user_id == user_id, Wallet.chain == chain, Wallet.is_primary.is_(True))
        .values(is_primary=False)
    )


def list_wallets(*, session, user_id) -> list[Wallet]:
    stmt = (
        select(Wallet)
        .where(Wallet.user_id == user_id)
        .order_by(Wallet.is_primary.desc(), Wallet.created_at.asc())
    )
    return list(session.execute(stmt).scalars())


def create_wallet(*, session, user_id, address, chain, is_primary=False) -> Wallet:
    """Register a wallet.

    Raises:
        ConflictError: WALLET_EXISTS for a duplicate (user, chain, address).
    """
    with atomic(session):
        duplicate = session.execute(
            select(Wallet.id).where(
                Wallet.user_id == user_id, Wallet.chain == chain, Wallet.address == address,
            )
        ).first()
        if duplicate is not None:
            raise ConflictError(ServiceErrorCode.WALLET_EXISTS)

        if is_primary:
            _demote_primaries(session, user_id, chain)
        else:
            has_primary = session.execute(
                select(Wallet.id).where(
                    Wallet.user_id == user_id, Wallet.chain == chain, Wallet.is_primary.is_(True),
                )
            ).first()
            if has_primary is None:
                is_primary = True

        wallet = Wallet(user_id=user_id, address=address, chain=chain, is_primary=is_primary)
        session.add(wallet)
        try:
            session.flush()
        except IntegrityError:
            raise ConflictError(ServiceErrorCode.WALLET_EXISTS) from None

    logger.info("Wallet %s created on %s (primary=%s)", wallet.id, chain, is_primary,
                extra={"user_id": user_id})
    return wallet


def set_primary_wallet(*, session, user_id, wallet_id) -> Wallet:
    """Make *wallet_id* the primary wallet of its chain.

    Raises:
        NotFoundError: WALLET_NOT_FOUND (missing or another user's).
        ConflictError: ALREADY_PRIMARY.
    """
    with atomic(session):
        wallet = _get_user_wallet(session, wallet_id, user_id)
        if wallet.is_primary:
            raise ConflictError(ServiceErrorCode.ALREADY_PRIMARY)
        _demote_primaries(session, user_id, wallet.chain)
        wallet.is_primary = True
        session.flush()

    logger.info("Wallet %s set as primary", wallet_id, extra={"user_id": user_id})
    return wallet


def delete_wallet(*, session, user_id, wallet_id) -> dict:
    """Delete a non-primary wallet (its payment links go with it).

    Raises:
        NotFoundError: WALLET_NOT_FOUND.
        ConflictError: CANNOT_DELETE_PRIMARY.
    """
    with atomic(session):
        wallet = _get_user_wallet(session, wallet_id, user_id)
        if wallet.is_primary:
            raise ConflictError(ServiceErrorCode.CANNOT_DELETE_PRIMARY)
        session.delete(wallet)

    logger.info("Wallet %s deleted", wallet_id, extra={"user_id": user_id})
    return {"id": wallet_id}
