"""Wallet endpoints: balance, history, redemption and admin ledger checks."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from coursecoin.auth.dependencies import get_current_user, require_admin
from coursecoin.config import get_settings
from coursecoin.db.models import TransactionType, User
from coursecoin.dependencies import get_db, get_redis_dep
from coursecoin.errors import InvalidInputError
from coursecoin.ledger.events import publish_ledger_event
from coursecoin.ledger.reporting import (
    audit_wallet,
    get_wallet_overview,
    get_wallet_statistics,
    reconcile_wallet,
    serialize_transaction,
)
from coursecoin.ledger.schemas import (
    ReconcileResponse,
    RedeemRequest,
    RedeemResponse,
    WalletAuditResponse,
    WalletResponse,
    WalletStatisticsResponse,
)
from coursecoin.ledger.service import atomic, get_wallet, redeem

router = APIRouter(prefix="/api/v1", tags=["Wallet"])


@router.get("/wallet", response_model=WalletResponse)
async def get_my_wallet(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1),
    type: TransactionType | None = Query(None),  # noqa: A002
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Balance, lifetime totals and paginated transactions, newest first."""
    max_page_size = get_settings().wallet_max_page_size
    if per_page > max_page_size:
        msg = f"per_page must be at most {max_page_size}"
        raise InvalidInputError(msg)
    return await get_wallet_overview(db, user.id, page=page, per_page=per_page, type_filter=type)


@router.get("/wallet/statistics", response_model=WalletStatisticsResponse)
async def get_my_wallet_statistics(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await get_wallet_statistics(db, user.id, window_months=get_settings().wallet_statistics_window_months)


@router.post("/wallet/redeem", response_model=RedeemResponse)
async def redeem_coins(
    body: RedeemRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> dict:
    """Spend coins. Overdrafts are rejected with 409."""
    async with atomic(db, "redeem coins"):
        entry = await redeem(db, user.id, body.amount, body.note)

    wallet = await get_wallet(db, user.id)
    await publish_ledger_event(
        redis,
        "coins_redeemed",
        {"user_id": user.id, "amount": entry.amount, "note": entry.note, "transaction_id": entry.id},
    )
    return {
        "transaction": serialize_transaction(entry),
        "balance": wallet.balance if wallet else 0,
    }


# ---- Admin ----


@router.get("/admin/users/{user_id}/wallet/audit", response_model=WalletAuditResponse)
async def audit_user_wallet(
    user_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Compare a user's cached balances against the transaction log."""
    return await audit_wallet(db, user_id)


@router.post("/admin/users/{user_id}/wallet/reconcile", response_model=ReconcileResponse)
async def reconcile_user_wallet(
    user_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Rewrite cached balances from the transaction log when they drifted."""
    async with atomic(db, "reconcile wallet"):
        return await reconcile_wallet(db, user_id)
