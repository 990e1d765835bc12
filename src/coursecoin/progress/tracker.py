"""Completion tracking for quizzes and chapters.

Each (user, unit) pair has one row, guarded by a unique constraint. The first
achievement is claimed with a conditional UPDATE, so when two requests race
only one of them observes the transition; the other sees the unit as already
achieved.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import Update, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from coursecoin.db.models import Chapter, ChapterProgress, Quiz, QuizResult
from coursecoin.db.upsert import insert_ignore
from coursecoin.errors import InvalidInputError
from coursecoin.progress.rewards import CompletionState

logger = structlog.get_logger()

MIN_SCORE = 0
MAX_SCORE = 100


@dataclass(frozen=True)
class Transition:
    prior: CompletionState | None
    new: CompletionState


def validate_score(score: int) -> None:
    if isinstance(score, bool) or not isinstance(score, int) or not MIN_SCORE <= score <= MAX_SCORE:
        msg = f"Score must be an integer between {MIN_SCORE} and {MAX_SCORE}"
        raise InvalidInputError(msg)


def validate_current_time(current_time: float) -> None:
    if isinstance(current_time, bool) or not isinstance(current_time, (int, float)):
        msg = "current_time must be a number"
        raise InvalidInputError(msg)
    if not math.isfinite(current_time) or current_time < 0:
        msg = "current_time must be a finite number >= 0"
        raise InvalidInputError(msg)


async def _claim(db: AsyncSession, stmt: Update) -> bool:
    result = await db.execute(stmt.execution_options(synchronize_session=False))
    return result.rowcount == 1


def _resolve_lost_claim(prior: CompletionState | None, unit_type: str, user_id: int, unit_id: str) -> CompletionState:
    """A failed claim means the unit was already achieved, possibly by a concurrent request."""
    if prior is None or not prior.achieved:
        logger.info("completion_race_lost", unit_type=unit_type, user_id=user_id, unit_id=unit_id)
    return CompletionState(achieved=True)


async def record_quiz_attempt(
    db: AsyncSession,
    user_id: int,
    quiz: Quiz,
    score: int,
) -> tuple[Transition, QuizResult]:
    """Store the latest attempt and report whether it is the first pass.

    ``score``, ``passed`` and ``attempted_at`` always reflect this attempt.
    ``first_passed_at`` is written once.
    """
    validate_score(score)
    passed = score >= quiz.pass_score
    now = datetime.now(timezone.utc)
    key = (QuizResult.user_id == user_id, QuizResult.quiz_id == quiz.id)

    existing = (await db.execute(select(QuizResult).where(*key).with_for_update())).scalar_one_or_none()
    prior = None if existing is None else CompletionState(achieved=existing.first_passed_at is not None)

    if existing is None:
        await insert_ignore(
            db,
            QuizResult,
            {"user_id": user_id, "quiz_id": quiz.id, "score": score, "passed": False, "attempted_at": now},
            ("user_id", "quiz_id"),
        )

    await db.execute(
        update(QuizResult)
        .where(*key)
        .values(score=score, passed=passed, attempted_at=now)
        .execution_options(synchronize_session=False)
    )

    if passed:
        claimed = await _claim(
            db,
            update(QuizResult).where(*key, QuizResult.first_passed_at.is_(None)).values(first_passed_at=now),
        )
        if not claimed:
            prior = _resolve_lost_claim(prior, "quiz", user_id, quiz.id)

    result = (
        await db.execute(select(QuizResult).where(*key).execution_options(populate_existing=True))
    ).scalar_one()
    return Transition(prior=prior, new=CompletionState(achieved=passed)), result


async def record_chapter_progress(
    db: AsyncSession,
    user_id: int,
    chapter: Chapter,
    completed: bool,
    current_time: float,
) -> tuple[Transition, ChapterProgress]:
    """Upsert watch progress; ``completed=True`` marks the chapter done for good."""
    validate_current_time(current_time)
    now = datetime.now(timezone.utc)
    key = (ChapterProgress.user_id == user_id, ChapterProgress.chapter_id == chapter.id)

    existing = (await db.execute(select(ChapterProgress).where(*key).with_for_update())).scalar_one_or_none()
    prior = None if existing is None else CompletionState(achieved=existing.completed)

    if existing is None:
        await insert_ignore(
            db,
            ChapterProgress,
            {"user_id": user_id, "chapter_id": chapter.id, "completed": False, "watched_at": now},
            ("user_id", "chapter_id"),
        )

    await db.execute(
        update(ChapterProgress)
        .where(*key)
        .values({ChapterProgress.current_time: float(current_time), ChapterProgress.watched_at: now})
        .execution_options(synchronize_session=False)
    )

    if completed:
        claimed = await _claim(
            db,
            update(ChapterProgress)
            .where(*key, ChapterProgress.completed.is_(False))
            .values(completed=True, completed_at=now),
        )
        if not claimed:
            prior = _resolve_lost_claim(prior, "chapter", user_id, chapter.id)

    progress = (
        await db.execute(select(ChapterProgress).where(*key).execution_options(populate_existing=True))
    ).scalar_one()
    return Transition(prior=prior, new=CompletionState(achieved=progress.completed)), progress
