"""Shared test fixtures.

Each test gets its own SQLite database file (schema from the ORM metadata) and
a freshly generated RSA key pair for JWTs. Redis is not initialized, so rate
limiting and event publication are disabled.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from coursecoin.auth.jwt import create_access_token, reset_keys
from coursecoin.auth.roles import Role
from coursecoin.config import get_settings
from coursecoin.database import close_db, get_engine, get_session_factory, init_db
from coursecoin.db.base import Base
from coursecoin.db.models import Chapter, Course, Quiz, User
from coursecoin.redis_client import close_redis


@pytest.fixture(scope="session")
def jwt_key_paths(tmp_path_factory: pytest.TempPathFactory) -> tuple[str, str]:
    """Generate an RSA key pair once per test session."""
    key_dir = tmp_path_factory.mktemp("jwt_keys")
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    private_path = key_dir / "jwt_private.pem"
    public_path = key_dir / "jwt_public.pem"
    private_path.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    public_path.write_bytes(
        private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )
    return str(private_path), str(public_path)


@pytest.fixture(autouse=True)
def test_settings(jwt_key_paths: tuple[str, str], tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point settings at the test keys and a per-test SQLite database."""
    private_path, public_path = jwt_key_paths
    monkeypatch.setenv("COURSECOIN_ENVIRONMENT", "test")
    monkeypatch.setenv("COURSECOIN_LOG_FORMAT", "console")
    monkeypatch.setenv("COURSECOIN_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'coursecoin.db'}")
    monkeypatch.setenv("COURSECOIN_JWT_PRIVATE_KEY_PATH", private_path)
    monkeypatch.setenv("COURSECOIN_JWT_PUBLIC_KEY_PATH", public_path)
    get_settings.cache_clear()
    reset_keys()

    yield get_settings()

    get_settings.cache_clear()
    reset_keys()


@pytest_asyncio.fixture
async def database(test_settings) -> AsyncGenerator[None, None]:
    """Initialize the engine and create the schema."""
    await init_db(test_settings.database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    await close_db()
    await close_redis()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for setup and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def client(database) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against a fresh app instance."""
    from coursecoin.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def seeded(db_session: AsyncSession) -> SimpleNamespace:
    """Two learners, an admin, and one published course.

    The course has chapter C1 (20 coins) with quiz Q1 (pass 70, 50 coins) and a
    zero-coin practice quiz, plus chapter C2 (15 coins, no quizzes). A draft
    chapter and its quiz are unpublished.
    """
    learner = User(email="learner@example.com", name="Learner", role=Role.USER.value)
    other = User(email="other@example.com", name="Other", role=Role.USER.value)
    admin = User(email="admin@example.com", name="Admin", role=Role.SUPER_ADMIN.value)
    org_admin = User(email="org@example.com", name="Org Admin", role=Role.ORG_ADMIN.value)
    course = Course(title="Intro to Saving", description="Money basics", is_published=True)
    db_session.add_all([learner, other, admin, org_admin, course])
    await db_session.flush()

    chapter = Chapter(course_id=course.id, title="Budgeting", order=1, duration=600, coin_value=20, is_published=True)
    chapter_two = Chapter(course_id=course.id, title="Compound Interest", order=2, coin_value=15, is_published=True)
    draft = Chapter(course_id=course.id, title="Draft", order=3, coin_value=30, is_published=False)
    db_session.add_all([chapter, chapter_two, draft])
    await db_session.flush()

    quiz = Quiz(chapter_id=chapter.id, title="Budgeting Quiz", pass_score=70, coin_value=50, duration=300, is_published=True)
    practice = Quiz(chapter_id=chapter.id, title="Practice Round", pass_score=50, coin_value=0, is_published=True)
    draft_quiz = Quiz(chapter_id=draft.id, title="Draft Quiz", pass_score=50, coin_value=10, is_published=True)
    hidden_quiz = Quiz(chapter_id=chapter.id, title="Hidden Quiz", pass_score=50, coin_value=10, is_published=False)
    db_session.add_all([quiz, practice, draft_quiz, hidden_quiz])
    await db_session.commit()

    return SimpleNamespace(
        learner=learner,
        other=other,
        admin=admin,
        org_admin=org_admin,
        course=course,
        chapter=chapter,
        chapter_two=chapter_two,
        draft_chapter=draft,
        quiz=quiz,
        practice_quiz=practice,
        draft_quiz=draft_quiz,
        hidden_quiz=hidden_quiz,
    )


@pytest.fixture
def auth_headers(test_settings) -> Callable[[User], dict[str, str]]:
    """Build a Bearer header for a user."""

    def _headers(user: User) -> dict[str, str]:
        token = create_access_token(user.id, Role(user.role))
        return {"Authorization": f"Bearer {token}"}

    return _headers
