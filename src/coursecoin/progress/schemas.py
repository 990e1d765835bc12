"""Pydantic models for quiz and chapter progress endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, StrictBool, StrictFloat, StrictInt


# --- Requests ---


class QuizSubmission(BaseModel):
    score: StrictInt


class ChapterProgressUpdate(BaseModel):
    current_time: StrictFloat
    completed: StrictBool = False


class ChapterCompletion(BaseModel):
    current_time: StrictFloat = 0


# --- Quiz ---


class QuizSummary(BaseModel):
    id: str
    title: str
    coin_value: int
    duration: int | None = None


class ChapterSummary(BaseModel):
    id: str
    title: str


class QuizSubmissionResponse(BaseModel):
    id: str
    score: int
    passed: bool
    pass_score: int
    attempted_at: datetime
    coins_awarded: int
    transaction_note: str | None = None
    quiz: QuizSummary
    chapter: ChapterSummary
    message: str


class StoredQuizResult(BaseModel):
    id: str
    score: int
    passed: bool
    attempted_at: datetime
    first_passed_at: datetime | None = None


class QuizDetail(BaseModel):
    id: str
    title: str
    pass_score: int
    coin_value: int
    duration: int | None = None


class QuizResultResponse(BaseModel):
    result: StoredQuizResult
    quiz: QuizDetail
    chapter: ChapterSummary
    can_retake: bool = True


class HistoryQuiz(BaseModel):
    id: str
    title: str
    pass_score: int
    coin_value: int
    chapter_id: str


class HistoryEntry(BaseModel):
    id: str
    score: int
    passed: bool
    attempted_at: datetime
    quiz: HistoryQuiz


class QuizHistoryResponse(BaseModel):
    results: list[HistoryEntry]
    total: int
    page: int
    per_page: int


# --- Chapter ---


class ProgressSnapshot(BaseModel):
    id: str
    current_time: float
    completed: bool
    watched_at: datetime | None = None


class ChapterProgressResponse(BaseModel):
    progress: ProgressSnapshot
    coins_awarded: int
    transaction_note: str | None = None
    message: str


# --- Course ---


class CourseQuizProgress(BaseModel):
    id: str
    title: str
    coin_value: int
    is_attempted: bool
    is_passed: bool
    score: int | None = None


class CourseChapterProgress(BaseModel):
    id: str
    title: str
    order: int
    duration: int | None = None
    coin_value: int
    is_completed: bool
    watched_at: datetime | None = None
    quizzes: list[CourseQuizProgress] = []


class CourseSummary(BaseModel):
    id: str
    title: str
    description: str | None = None
    total_coins: int


class CourseProgressSummary(BaseModel):
    total_chapters: int
    completed_chapters: int
    progress_percentage: float
    total_quizzes: int
    completed_quizzes: int
    quiz_progress_percentage: float
    total_coins: int
    chapters: list[CourseChapterProgress]


class CourseProgressResponse(BaseModel):
    course: CourseSummary
    progress: CourseProgressSummary
