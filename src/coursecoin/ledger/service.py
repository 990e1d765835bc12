"""Wallets and the coin ledger.

Every balance change is an appended ``CoinTransaction`` plus an SQL-side
increment/decrement of ``wallets.balance`` in the same database transaction,
so a wallet's balance always equals EARNED minus REDEEMED over its rows.
Callers wrap these functions in :func:`atomic`.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from coursecoin.db.models import CoinTransaction, TransactionType, User, Wallet
from coursecoin.db.upsert import insert_ignore
from coursecoin.errors import (
    InsufficientBalanceError,
    InvalidInputError,
    LedgerStoreError,
    NotFoundError,
)
from coursecoin.progress.rewards import RewardDecision

logger = structlog.get_logger()


@asynccontextmanager
async def atomic(db: AsyncSession, operation: str) -> AsyncIterator[None]:
    """Commit everything done in the block, or roll all of it back.

    Store failures surface as ``LedgerStoreError``; no retry is attempted.
    """
    try:
        yield
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("ledger_store_failure", operation=operation, error=str(exc))
        msg = f"Failed to {operation}"
        raise LedgerStoreError(msg) from exc
    except BaseException:
        await db.rollback()
        raise


# ---------------------------------------------------------------------------
# Wallet store
# ---------------------------------------------------------------------------


async def get_wallet(db: AsyncSession, user_id: int) -> Wallet | None:
    result = await db.execute(
        select(Wallet).where(Wallet.user_id == user_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_or_create_wallet(db: AsyncSession, user_id: int) -> Wallet:
    """Get the user's wallet, creating an empty one if absent."""
    created = await insert_ignore(db, Wallet, {"user_id": user_id, "balance": 0}, ("user_id",))
    if created:
        logger.info("wallet_created", user_id=user_id)
    wallet = await get_wallet(db, user_id)
    if wallet is None:
        msg = "Wallet could not be created"
        raise LedgerStoreError(msg)
    return wallet


async def ledger_totals(db: AsyncSession, wallet_id: str) -> dict[str, int]:
    """Sum of transaction amounts per type for a wallet."""
    totals = {t.value: 0 for t in TransactionType}
    result = await db.execute(
        select(CoinTransaction.type, func.coalesce(func.sum(CoinTransaction.amount), 0))
        .where(CoinTransaction.wallet_id == wallet_id)
        .group_by(CoinTransaction.type)
    )
    for type_, amount in result.all():
        totals[type_] = int(amount)
    return totals


# ---------------------------------------------------------------------------
# Ledger transactions
# ---------------------------------------------------------------------------


async def _append(db: AsyncSession, wallet_id: str, type_: TransactionType, amount: int, note: str | None) -> CoinTransaction:
    entry = CoinTransaction(
        wallet_id=wallet_id,
        type=type_.value,
        amount=amount,
        note=note,
        created_at=datetime.now(timezone.utc),
    )
    db.add(entry)
    await db.flush()
    return entry


async def apply_reward(db: AsyncSession, user_id: int, decision: RewardDecision) -> CoinTransaction:
    """Credit a granted reward.

    Creates the wallet if needed, appends the EARNED row, and increments both
    the wallet balance and ``users.coins_earned``. Does not commit.
    """
    if not decision.grant or decision.amount <= 0:
        msg = "Reward decision does not grant any coins"
        raise InvalidInputError(msg)

    wallet = await get_or_create_wallet(db, user_id)
    entry = await _append(db, wallet.id, TransactionType.EARNED, decision.amount, decision.reason)

    now = datetime.now(timezone.utc)
    await db.execute(
        update(Wallet)
        .where(Wallet.id == wallet.id)
        .values(balance=Wallet.balance + decision.amount, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    user_result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(coins_earned=User.coins_earned + decision.amount)
        .execution_options(synchronize_session=False)
    )
    if user_result.rowcount != 1:
        msg = "User not found"
        raise NotFoundError(msg)

    logger.info("coins_awarded", user_id=user_id, amount=decision.amount, note=decision.reason, transaction_id=entry.id)
    return entry


async def redeem(db: AsyncSession, user_id: int, amount: int, note: str | None = None) -> CoinTransaction:
    """Debit coins. Rejects amounts that would take the balance below zero. Does not commit."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        msg = "Redemption amount must be a positive integer"
        raise InvalidInputError(msg)

    wallet = await get_wallet(db, user_id)
    if wallet is None:
        msg = "Wallet not found"
        raise NotFoundError(msg)

    result = await db.execute(
        update(Wallet)
        .where(Wallet.id == wallet.id, Wallet.balance >= amount)
        .values(balance=Wallet.balance - amount, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        msg = f"Insufficient balance to redeem {amount} coins"
        raise InsufficientBalanceError(msg)

    entry = await _append(db, wallet.id, TransactionType.REDEEMED, amount, note)
    logger.info("coins_redeemed", user_id=user_id, amount=amount, note=note, transaction_id=entry.id)
    return entry
