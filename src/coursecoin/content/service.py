"""Read-only access to course content: courses, chapters and quizzes.

Only published units are visible to learners; everything else is treated as
not found.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coursecoin.db.models import Chapter, Course, Quiz


async def get_published_course(db: AsyncSession, course_id: str) -> Course | None:
    result = await db.execute(
        select(Course).where(Course.id == course_id, Course.is_published.is_(True))
    )
    return result.scalar_one_or_none()


async def get_published_chapter(db: AsyncSession, chapter_id: str) -> Chapter | None:
    result = await db.execute(
        select(Chapter).where(Chapter.id == chapter_id, Chapter.is_published.is_(True))
    )
    return result.scalar_one_or_none()


async def get_published_quiz(db: AsyncSession, quiz_id: str) -> tuple[Quiz, Chapter] | None:
    """Fetch a published quiz together with its parent chapter, which must also be published."""
    result = await db.execute(
        select(Quiz, Chapter)
        .join(Chapter, Chapter.id == Quiz.chapter_id)
        .where(Quiz.id == quiz_id, Quiz.is_published.is_(True), Chapter.is_published.is_(True))
    )
    row = result.one_or_none()
    if row is None:
        return None
    return row[0], row[1]


async def list_course_units(db: AsyncSession, course_id: str) -> list[tuple[Chapter, list[Quiz]]]:
    """Published chapters of a course in order, each with its published quizzes."""
    chapters_result = await db.execute(
        select(Chapter)
        .where(Chapter.course_id == course_id, Chapter.is_published.is_(True))
        .order_by(Chapter.order)
    )
    chapters = list(chapters_result.scalars().all())
    if not chapters:
        return []

    quizzes_result = await db.execute(
        select(Quiz)
        .where(Quiz.chapter_id.in_([c.id for c in chapters]), Quiz.is_published.is_(True))
        .order_by(Quiz.title)
    )
    by_chapter: dict[str, list[Quiz]] = {c.id: [] for c in chapters}
    for quiz in quizzes_result.scalars():
        by_chapter[quiz.chapter_id].append(quiz)

    return [(c, by_chapter[c.id]) for c in chapters]
