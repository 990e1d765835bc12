"""Pydantic models for wallet endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, StrictInt


class RedeemRequest(BaseModel):
    amount: StrictInt
    note: str | None = None


class TransactionResponse(BaseModel):
    id: str
    type: str
    amount: int
    note: str | None = None
    created_at: datetime


class WalletResponse(BaseModel):
    balance: int
    coins_earned: int
    total_earned: int
    total_redeemed: int
    transactions: list[TransactionResponse]
    total: int
    page: int
    per_page: int


class WalletStatisticsResponse(BaseModel):
    current_balance: int
    total_earned: int
    total_redeemed: int
    net_earnings: int
    recent_transactions: list[TransactionResponse]
    window_months: int
    window_breakdown: dict[str, int]


class RedeemResponse(BaseModel):
    transaction: TransactionResponse
    balance: int


class WalletAuditResponse(BaseModel):
    user_id: int
    has_wallet: bool
    balance: int
    ledger_balance: int
    coins_earned: int
    ledger_earned: int
    balance_drift: int
    coins_earned_drift: int
    consistent: bool


class ReconcileResponse(BaseModel):
    audit: WalletAuditResponse
    repaired: bool
