"""Wallet views, statistics and ledger audits."""

from __future__ import annotations

import calendar
from datetime import datetime, timezone

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from coursecoin.auth.service import get_user_by_id
from coursecoin.db.models import CoinTransaction, TransactionType, User, Wallet
from coursecoin.errors import NotFoundError
from coursecoin.ledger.service import get_wallet, ledger_totals

logger = structlog.get_logger()

RECENT_TRANSACTIONS = 5


def months_before(now: datetime, months: int) -> datetime:
    """Same day-of-month ``months`` calendar months earlier, clamped to month end."""
    month_index = now.year * 12 + (now.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def serialize_transaction(entry: CoinTransaction) -> dict:
    return {
        "id": entry.id,
        "type": entry.type,
        "amount": entry.amount,
        "note": entry.note,
        "created_at": entry.created_at,
    }


async def get_wallet_overview(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    per_page: int = 10,
    type_filter: TransactionType | None = None,
) -> dict:
    """Balance, lifetime totals and a page of transactions, newest first."""
    wallet = await get_wallet(db, user_id)
    if wallet is None:
        msg = "Wallet not found"
        raise NotFoundError(msg)

    user = await get_user_by_id(db, user_id)
    conditions = [CoinTransaction.wallet_id == wallet.id]
    if type_filter is not None:
        conditions.append(CoinTransaction.type == type_filter.value)

    total_result = await db.execute(select(func.count()).select_from(CoinTransaction).where(*conditions))
    total = total_result.scalar_one()

    offset = (page - 1) * per_page
    result = await db.execute(
        select(CoinTransaction)
        .where(*conditions)
        .order_by(CoinTransaction.created_at.desc(), CoinTransaction.id.desc())
        .offset(offset)
        .limit(per_page)
    )
    totals = await ledger_totals(db, wallet.id)

    return {
        "balance": wallet.balance,
        "coins_earned": user.coins_earned if user else 0,
        "total_earned": totals[TransactionType.EARNED.value],
        "total_redeemed": totals[TransactionType.REDEEMED.value],
        "transactions": [serialize_transaction(e) for e in result.scalars().all()],
        "total": total,
        "page": page,
        "per_page": per_page,
    }


async def get_wallet_statistics(
    db: AsyncSession,
    user_id: int,
    window_months: int = 6,
    now: datetime | None = None,
) -> dict:
    """Summary numbers for the wallet screen. A user without a wallet gets zeros."""
    if now is None:
        now = datetime.now(timezone.utc)
    breakdown = {t.value: 0 for t in TransactionType}

    wallet = await get_wallet(db, user_id)
    if wallet is None:
        return {
            "current_balance": 0,
            "total_earned": 0,
            "total_redeemed": 0,
            "net_earnings": 0,
            "recent_transactions": [],
            "window_months": window_months,
            "window_breakdown": breakdown,
        }

    totals = await ledger_totals(db, wallet.id)

    recent = await db.execute(
        select(CoinTransaction)
        .where(CoinTransaction.wallet_id == wallet.id)
        .order_by(CoinTransaction.created_at.desc(), CoinTransaction.id.desc())
        .limit(RECENT_TRANSACTIONS)
    )

    window = await db.execute(
        select(CoinTransaction.type, func.sum(CoinTransaction.amount))
        .where(
            CoinTransaction.wallet_id == wallet.id,
            CoinTransaction.created_at >= months_before(now, window_months),
        )
        .group_by(CoinTransaction.type)
    )
    for type_, amount in window.all():
        breakdown[type_] = int(amount or 0)

    earned = totals[TransactionType.EARNED.value]
    redeemed = totals[TransactionType.REDEEMED.value]
    return {
        "current_balance": wallet.balance,
        "total_earned": earned,
        "total_redeemed": redeemed,
        "net_earnings": earned - redeemed,
        "recent_transactions": [serialize_transaction(e) for e in recent.scalars().all()],
        "window_months": window_months,
        "window_breakdown": breakdown,
    }


async def audit_wallet(db: AsyncSession, user_id: int) -> dict:
    """Compare the stored balance and ``coins_earned`` cache against the ledger."""
    user = await get_user_by_id(db, user_id)
    if user is None:
        msg = "User not found"
        raise NotFoundError(msg)

    wallet = await get_wallet(db, user_id)
    if wallet is None:
        balance = 0
        totals = {t.value: 0 for t in TransactionType}
    else:
        balance = wallet.balance
        totals = await ledger_totals(db, wallet.id)

    ledger_earned = totals[TransactionType.EARNED.value]
    ledger_balance = ledger_earned - totals[TransactionType.REDEEMED.value]
    balance_drift = balance - ledger_balance
    coins_earned_drift = user.coins_earned - ledger_earned
    return {
        "user_id": user_id,
        "has_wallet": wallet is not None,
        "balance": balance,
        "ledger_balance": ledger_balance,
        "coins_earned": user.coins_earned,
        "ledger_earned": ledger_earned,
        "balance_drift": balance_drift,
        "coins_earned_drift": coins_earned_drift,
        "consistent": balance_drift == 0 and coins_earned_drift == 0,
    }


async def reconcile_wallet(db: AsyncSession, user_id: int) -> dict:
    """Rewrite the balance and ``coins_earned`` from the ledger if they drifted. Does not commit."""
    report = await audit_wallet(db, user_id)
    if report["consistent"]:
        return {"audit": report, "repaired": False}

    if report["has_wallet"]:
        await db.execute(
            update(Wallet)
            .where(Wallet.user_id == user_id)
            .values(balance=report["ledger_balance"], updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(coins_earned=report["ledger_earned"])
        .execution_options(synchronize_session=False)
    )
    logger.warning(
        "wallet_reconciled",
        user_id=user_id,
        balance_drift=report["balance_drift"],
        coins_earned_drift=report["coins_earned_drift"],
    )
    return {"audit": report, "repaired": True}
