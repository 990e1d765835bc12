"""Baseline: users, course content, completion records and the coin ledger.

Revision ID: 001_coin_ledger_baseline
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_coin_ledger_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(320), unique=True, nullable=True),
        sa.Column("name", sa.String(128), nullable=True),
        sa.Column("role", sa.String(16), nullable=False, server_default="USER"),
        sa.Column("coins_earned", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )

    # --- Content ---
    op.create_table(
        "courses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("is_published", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )

    op.create_table(
        "chapters",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("course_id", sa.String(36), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("order", sa.Integer, nullable=False),
        sa.Column("duration", sa.Integer, nullable=True),
        sa.Column("coin_value", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_published", sa.Boolean, nullable=False, server_default="false"),
        sa.UniqueConstraint("course_id", "order", name="uq_chapter_course_order"),
        sa.CheckConstraint("coin_value >= 0", name="ck_chapter_coin_value"),
    )
    op.create_index("ix_chapters_course_id", "chapters", ["course_id"])

    op.create_table(
        "quizzes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("chapter_id", sa.String(36), sa.ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("pass_score", sa.Integer, nullable=False),
        sa.Column("coin_value", sa.Integer, nullable=False, server_default="0"),
        sa.Column("duration", sa.Integer, nullable=True),
        sa.Column("is_published", sa.Boolean, nullable=False, server_default="false"),
        sa.CheckConstraint("coin_value >= 0", name="ck_quiz_coin_value"),
    )
    op.create_index("ix_quizzes_chapter_id", "quizzes", ["chapter_id"])

    # --- Completion records ---
    op.create_table(
        "quiz_results",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.BigInteger, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("quiz_id", sa.String(36), sa.ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("score", sa.Integer, nullable=False),
        sa.Column("passed", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("attempted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("first_passed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "quiz_id", name="uq_quiz_result_user_quiz"),
    )
    op.create_index("ix_quiz_results_user_id", "quiz_results", ["user_id"])

    op.create_table(
        "chapter_progress",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.BigInteger, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("chapter_id", sa.String(36), sa.ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False),
        sa.Column("completed", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("playback_seconds", sa.Float, nullable=False, server_default="0"),
        sa.Column("watched_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "chapter_id", name="uq_chapter_progress_user_chapter"),
    )
    op.create_index("ix_chapter_progress_user_id", "chapter_progress", ["user_id"])

    # --- Coin ledger ---
    op.create_table(
        "wallets",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.BigInteger, sa.ForeignKey("users.id", ondelete="RESTRICT"), unique=True, nullable=False),
        sa.Column("balance", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.CheckConstraint("balance >= 0", name="ck_wallet_balance_non_negative"),
    )

    op.create_table(
        "coin_transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("wallet_id", sa.String(36), sa.ForeignKey("wallets.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("note", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.CheckConstraint("amount > 0", name="ck_coin_transaction_amount_positive"),
        sa.CheckConstraint("type IN ('EARNED', 'REDEEMED')", name="ck_coin_transaction_type"),
    )
    op.create_index("idx_coin_transactions_wallet_created", "coin_transactions", ["wallet_id", "created_at"])


def downgrade() -> None:
    op.drop_table("coin_transactions")
    op.drop_table("wallets")
    op.drop_table("chapter_progress")
    op.drop_table("quiz_results")
    op.drop_table("quizzes")
    op.drop_table("chapters")
    op.drop_table("courses")
    op.drop_table("users")
