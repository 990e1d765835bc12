"""Quiz and chapter progress endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from coursecoin.auth.dependencies import get_current_user
from coursecoin.db.models import User
from coursecoin.dependencies import get_db, get_redis_dep
from coursecoin.progress.schemas import (
    ChapterCompletion,
    ChapterProgressResponse,
    ChapterProgressUpdate,
    CourseProgressResponse,
    QuizHistoryResponse,
    QuizResultResponse,
    QuizSubmission,
    QuizSubmissionResponse,
)
from coursecoin.progress.service import ProgressService

router = APIRouter(prefix="/api/v1", tags=["Progress"])


# ---- Quizzes ----


@router.post("/quizzes/{quiz_id}/result", response_model=QuizSubmissionResponse)
async def submit_quiz_result(
    quiz_id: str,
    body: QuizSubmission,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> dict:
    """Submit a quiz score. The first passing attempt credits the quiz's coins."""
    svc = ProgressService(db, redis=redis)
    return await svc.submit_quiz_result(user.id, quiz_id, body.score)


# Registered before /quizzes/{quiz_id}/result so "history" is not read as an ID.
@router.get("/quizzes/history", response_model=QuizHistoryResponse)
async def get_quiz_history(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await ProgressService(db).get_quiz_history(user.id, page=page, per_page=per_page)


@router.get("/quizzes/{quiz_id}/result", response_model=QuizResultResponse)
async def get_quiz_result(
    quiz_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await ProgressService(db).get_quiz_result(user.id, quiz_id)


# ---- Chapters ----


@router.post("/chapters/{chapter_id}/progress", response_model=ChapterProgressResponse)
async def update_chapter_progress(
    chapter_id: str,
    body: ChapterProgressUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> dict:
    """Video heartbeat; ``completed=true`` marks the chapter as watched."""
    svc = ProgressService(db, redis=redis)
    return await svc.record_chapter_progress(user.id, chapter_id, body.completed, body.current_time)


@router.post("/chapters/{chapter_id}/complete", response_model=ChapterProgressResponse)
async def complete_chapter(
    chapter_id: str,
    body: ChapterCompletion | None = Body(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> dict:
    """Mark a chapter as watched."""
    current_time = body.current_time if body is not None else 0
    svc = ProgressService(db, redis=redis)
    return await svc.record_chapter_progress(user.id, chapter_id, True, current_time)


# ---- Courses ----


@router.get("/courses/{course_id}/progress", response_model=CourseProgressResponse)
async def get_course_progress(
    course_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await ProgressService(db).get_course_progress(user.id, course_id)
