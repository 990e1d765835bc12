"""ORM models for users, course content, completion records and the coin ledger."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from coursecoin.db.base import Base

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
_BigIntPK = BigInteger().with_variant(Integer, "sqlite")


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TransactionType(str, Enum):
    EARNED = "EARNED"
    REDEEMED = "REDEEMED"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Platform user. ``coins_earned`` is a lifetime cache of EARNED ledger rows."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(_BigIntPK, primary_key=True, autoincrement=True)
    email: Mapped[str | None] = mapped_column(String(320), unique=True, nullable=True)
    name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="USER", server_default="USER")
    coins_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now(), onupdate=_now
    )


# ---------------------------------------------------------------------------
# Content (read-only from the ledger's point of view)
# ---------------------------------------------------------------------------


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now()
    )


class Chapter(Base):
    """A video chapter; ``coin_value`` of 0 means no reward."""

    __tablename__ = "chapters"
    __table_args__ = (
        UniqueConstraint("course_id", "order", name="uq_chapter_course_order"),
        CheckConstraint("coin_value >= 0", name="ck_chapter_coin_value"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    coin_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")


class Quiz(Base):
    """A chapter quiz; scores at or above ``pass_score`` pass."""

    __tablename__ = "quizzes"
    __table_args__ = (CheckConstraint("coin_value >= 0", name="ck_quiz_coin_value"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    chapter_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    pass_score: Mapped[int] = mapped_column(Integer, nullable=False)
    coin_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")


# ---------------------------------------------------------------------------
# Completion records
# ---------------------------------------------------------------------------


class QuizResult(Base):
    """Latest attempt per (user, quiz).

    ``score``/``passed``/``attempted_at`` are overwritten by every attempt;
    ``first_passed_at`` is set once, by the first passing attempt, and is what
    reward eligibility keys off.
    """

    __tablename__ = "quiz_results"
    __table_args__ = (UniqueConstraint("user_id", "quiz_id", name="uq_quiz_result_user_quiz"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quiz_id: Mapped[str] = mapped_column(String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    attempted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now()
    )
    first_passed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ChapterProgress(Base):
    """Watch progress per (user, chapter). ``completed`` never goes back to false."""

    __tablename__ = "chapter_progress"
    __table_args__ = (UniqueConstraint("user_id", "chapter_id", name="uq_chapter_progress_user_chapter"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    chapter_id: Mapped[str] = mapped_column(String(36), ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    current_time: Mapped[float] = mapped_column(
        "playback_seconds", Float, nullable=False, default=0.0, server_default="0"
    )
    watched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now()
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Coin ledger
# ---------------------------------------------------------------------------


class Wallet(Base):
    """One per user. ``balance`` equals EARNED minus REDEEMED over its transactions."""

    __tablename__ = "wallets"
    __table_args__ = (CheckConstraint("balance >= 0", name="ck_wallet_balance_non_negative"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="RESTRICT"), unique=True, nullable=False
    )
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now()
    )


class CoinTransaction(Base):
    """Append-only ledger entry. Never updated or deleted."""

    __tablename__ = "coin_transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_coin_transaction_amount_positive"),
        CheckConstraint("type IN ('EARNED', 'REDEEMED')", name="ck_coin_transaction_type"),
        Index("idx_coin_transactions_wallet_created", "wallet_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    wallet_id: Mapped[str] = mapped_column(String(36), ForeignKey("wallets.id", ondelete="RESTRICT"), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now()
    )
