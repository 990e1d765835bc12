"""Progress service: quiz submissions, chapter progress and coin rewards."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from coursecoin.content.service import (
    get_published_chapter,
    get_published_course,
    get_published_quiz,
    list_course_units,
)
from coursecoin.db.models import Chapter, ChapterProgress, CoinTransaction, Quiz, QuizResult
from coursecoin.errors import NotFoundError
from coursecoin.ledger.events import publish_ledger_event
from coursecoin.ledger.service import apply_reward, atomic
from coursecoin.progress.rewards import NO_REWARD, RewardableUnit, evaluate
from coursecoin.progress.tracker import (
    record_chapter_progress,
    record_quiz_attempt,
    validate_current_time,
    validate_score,
)


def _percent(done: int, total: int) -> float:
    return round(done / total * 100, 2) if total > 0 else 0.0


class ProgressService:
    """Turns completion events into at-most-once coin rewards.

    Each submission (completion update plus any reward) commits as a single
    database transaction.
    """

    def __init__(
        self,
        db: AsyncSession,
        redis: object | None = None,
    ) -> None:
        self.db = db
        self.redis = redis

    # --- Quizzes ---

    async def submit_quiz_result(self, user_id: int, quiz_id: str, score: int) -> dict:
        """Record a quiz attempt; the first passing attempt earns the quiz's coins."""
        validate_score(score)
        found = await get_published_quiz(self.db, quiz_id)
        if found is None:
            msg = "Quiz not found or not published"
            raise NotFoundError(msg)
        quiz, chapter = found
        unit = RewardableUnit.from_quiz(quiz)

        decision = NO_REWARD
        entry: CoinTransaction | None = None
        async with atomic(self.db, "submit quiz result"):
            transition, result = await record_quiz_attempt(self.db, user_id, quiz, score)
            decision = evaluate(transition.prior, transition.new, unit)
            if decision.grant:
                entry = await apply_reward(self.db, user_id, decision)

        if entry is not None:
            await self._publish_award(user_id, unit, entry)

        coins_awarded = decision.amount if decision.grant else 0
        if not result.passed:
            message = "Quiz completed but not passed"
        elif coins_awarded > 0:
            message = f"Quiz passed! Earned {coins_awarded} coins."
        else:
            message = "Quiz passed!"

        return {
            "id": result.id,
            "score": result.score,
            "passed": result.passed,
            "pass_score": quiz.pass_score,
            "attempted_at": result.attempted_at,
            "coins_awarded": coins_awarded,
            "transaction_note": decision.reason if decision.grant else None,
            "quiz": {
                "id": quiz.id,
                "title": quiz.title,
                "coin_value": quiz.coin_value,
                "duration": quiz.duration,
            },
            "chapter": {"id": chapter.id, "title": chapter.title},
            "message": message,
        }

    async def get_quiz_result(self, user_id: int, quiz_id: str) -> dict:
        """The caller's stored result for one quiz."""
        row = (
            await self.db.execute(
                select(QuizResult, Quiz, Chapter)
                .join(Quiz, Quiz.id == QuizResult.quiz_id)
                .join(Chapter, Chapter.id == Quiz.chapter_id)
                .where(QuizResult.user_id == user_id, QuizResult.quiz_id == quiz_id)
            )
        ).one_or_none()
        if row is None:
            msg = "Quiz result not found"
            raise NotFoundError(msg)
        result, quiz, chapter = row

        return {
            "result": {
                "id": result.id,
                "score": result.score,
                "passed": result.passed,
                "attempted_at": result.attempted_at,
                "first_passed_at": result.first_passed_at,
            },
            "quiz": {
                "id": quiz.id,
                "title": quiz.title,
                "pass_score": quiz.pass_score,
                "coin_value": quiz.coin_value,
                "duration": quiz.duration,
            },
            "chapter": {"id": chapter.id, "title": chapter.title},
            "can_retake": True,
        }

    async def get_quiz_history(self, user_id: int, page: int = 1, per_page: int = 10) -> dict:
        """The caller's quiz results, most recent attempt first."""
        total = (
            await self.db.execute(
                select(func.count()).select_from(QuizResult).where(QuizResult.user_id == user_id)
            )
        ).scalar_one()

        rows = await self.db.execute(
            select(QuizResult, Quiz)
            .join(Quiz, Quiz.id == QuizResult.quiz_id)
            .where(QuizResult.user_id == user_id)
            .order_by(QuizResult.attempted_at.desc(), QuizResult.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )

        return {
            "results": [
                {
                    "id": result.id,
                    "score": result.score,
                    "passed": result.passed,
                    "attempted_at": result.attempted_at,
                    "quiz": {
                        "id": quiz.id,
                        "title": quiz.title,
                        "pass_score": quiz.pass_score,
                        "coin_value": quiz.coin_value,
                        "chapter_id": quiz.chapter_id,
                    },
                }
                for result, quiz in rows.all()
            ],
            "total": total,
            "page": page,
            "per_page": per_page,
        }

    # --- Chapters ---

    async def record_chapter_progress(
        self,
        user_id: int,
        chapter_id: str,
        completed: bool,
        current_time: float,
    ) -> dict:
        """Update watch progress; the first completion earns the chapter's coins."""
        validate_current_time(current_time)
        chapter = await get_published_chapter(self.db, chapter_id)
        if chapter is None:
            msg = "Chapter not found"
            raise NotFoundError(msg)
        unit = RewardableUnit.from_chapter(chapter)

        decision = NO_REWARD
        entry: CoinTransaction | None = None
        async with atomic(self.db, "update chapter progress"):
            transition, progress = await record_chapter_progress(
                self.db, user_id, chapter, completed, current_time
            )
            decision = evaluate(transition.prior, transition.new, unit)
            if decision.grant:
                entry = await apply_reward(self.db, user_id, decision)

        if entry is not None:
            await self._publish_award(user_id, unit, entry)

        return {
            "progress": {
                "id": progress.id,
                "current_time": progress.current_time,
                "completed": progress.completed,
                "watched_at": progress.watched_at,
            },
            "coins_awarded": decision.amount if decision.grant else 0,
            "transaction_note": decision.reason if decision.grant else None,
            "message": "Chapter marked as completed" if completed else "Video progress updated successfully",
        }

    # --- Course overview ---

    async def get_course_progress(self, user_id: int, course_id: str) -> dict:
        """Chapter completion and quiz pass state across a published course."""
        course = await get_published_course(self.db, course_id)
        if course is None:
            msg = "Course not found"
            raise NotFoundError(msg)

        units = await list_course_units(self.db, course_id)
        chapter_ids = [chapter.id for chapter, _ in units]
        quiz_ids = [quiz.id for _, quizzes in units for quiz in quizzes]

        progress_map: dict[str, ChapterProgress] = {}
        if chapter_ids:
            progress_rows = await self.db.execute(
                select(ChapterProgress).where(
                    ChapterProgress.user_id == user_id,
                    ChapterProgress.chapter_id.in_(chapter_ids),
                )
            )
            progress_map = {p.chapter_id: p for p in progress_rows.scalars()}

        result_map: dict[str, QuizResult] = {}
        if quiz_ids:
            result_rows = await self.db.execute(
                select(QuizResult).where(QuizResult.user_id == user_id, QuizResult.quiz_id.in_(quiz_ids))
            )
            result_map = {r.quiz_id: r for r in result_rows.scalars()}

        chapters = []
        for chapter, quizzes in units:
            progress = progress_map.get(chapter.id)
            chapters.append({
                "id": chapter.id,
                "title": chapter.title,
                "order": chapter.order,
                "duration": chapter.duration,
                "coin_value": chapter.coin_value,
                "is_completed": bool(progress and progress.completed),
                "watched_at": progress.watched_at if progress else None,
                "quizzes": [
                    {
                        "id": quiz.id,
                        "title": quiz.title,
                        "coin_value": quiz.coin_value,
                        "is_attempted": quiz.id in result_map,
                        "is_passed": quiz.id in result_map and result_map[quiz.id].passed,
                        "score": result_map[quiz.id].score if quiz.id in result_map else None,
                    }
                    for quiz in quizzes
                ],
            })

        total_chapters = len(chapters)
        completed_chapters = sum(1 for c in chapters if c["is_completed"])
        total_quizzes = len(quiz_ids)
        passed_quizzes = sum(1 for r in result_map.values() if r.passed)
        total_coins = sum(c.coin_value for c, _ in units) + sum(q.coin_value for _, qs in units for q in qs)

        return {
            "course": {
                "id": course.id,
                "title": course.title,
                "description": course.description,
                "total_coins": total_coins,
            },
            "progress": {
                "total_chapters": total_chapters,
                "completed_chapters": completed_chapters,
                "progress_percentage": _percent(completed_chapters, total_chapters),
                "total_quizzes": total_quizzes,
                "completed_quizzes": passed_quizzes,
                "quiz_progress_percentage": _percent(passed_quizzes, total_quizzes),
                "total_coins": total_coins,
                "chapters": chapters,
            },
        }

    # --- Integration Helpers ---

    async def _publish_award(self, user_id: int, unit: RewardableUnit, entry: CoinTransaction) -> None:
        await publish_ledger_event(
            self.redis,
            "coins_awarded",
            {
                "user_id": user_id,
                "unit_type": unit.kind.value,
                "unit_id": unit.id,
                "amount": entry.amount,
                "note": entry.note,
                "transaction_id": entry.id,
            },
        )
