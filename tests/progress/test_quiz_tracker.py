"""Quiz submission tests: first pass pays once, retakes never pay again."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import func, select

from coursecoin.auth.service import get_user_by_id
from coursecoin.database import get_session_factory
from coursecoin.db.models import CoinTransaction, QuizResult
from coursecoin.errors import InvalidInputError, NotFoundError
from coursecoin.ledger.service import get_wallet, ledger_totals
from coursecoin.progress.service import ProgressService


async def _transaction_count(db, user_id: int) -> int:
    wallet = await get_wallet(db, user_id)
    if wallet is None:
        return 0
    result = await db.execute(
        select(func.count()).select_from(CoinTransaction).where(CoinTransaction.wallet_id == wallet.id)
    )
    return result.scalar_one()


class TestSubmitQuizResult:
    @pytest.mark.asyncio
    async def test_first_pass_awards_coins(self, db_session, seeded):
        user_id, quiz_id = seeded.learner.id, seeded.quiz.id
        result = await ProgressService(db_session).submit_quiz_result(user_id, quiz_id, 85)

        assert result["passed"] is True
        assert result["score"] == 85
        assert result["pass_score"] == 70
        assert result["coins_awarded"] == 50
        assert result["transaction_note"] == "Passed quiz: Budgeting Quiz"
        assert result["message"] == "Quiz passed! Earned 50 coins."
        assert result["quiz"]["title"] == "Budgeting Quiz"
        assert result["chapter"]["title"] == "Budgeting"

        wallet = await get_wallet(db_session, user_id)
        user = await get_user_by_id(db_session, user_id)
        assert wallet.balance == 50
        assert user.coins_earned == 50

    @pytest.mark.asyncio
    async def test_retake_pass_pays_nothing(self, db_session, seeded):
        user_id, quiz_id = seeded.learner.id, seeded.quiz.id
        svc = ProgressService(db_session)
        await svc.submit_quiz_result(user_id, quiz_id, 85)
        again = await svc.submit_quiz_result(user_id, quiz_id, 100)

        assert again["passed"] is True
        assert again["score"] == 100
        assert again["coins_awarded"] == 0
        assert again["message"] == "Quiz passed!"
        assert (await get_wallet(db_session, user_id)).balance == 50
        assert await _transaction_count(db_session, user_id) == 1

    @pytest.mark.asyncio
    async def test_fail_records_attempt_without_wallet(self, db_session, seeded):
        user_id, quiz_id = seeded.learner.id, seeded.quiz.id
        result = await ProgressService(db_session).submit_quiz_result(user_id, quiz_id, 40)

        assert result["passed"] is False
        assert result["coins_awarded"] == 0
        assert result["transaction_note"] is None
        assert result["message"] == "Quiz completed but not passed"
        assert await get_wallet(db_session, user_id) is None

    @pytest.mark.asyncio
    async def test_fail_then_pass_awards_once(self, db_session, seeded):
        user_id, quiz_id = seeded.learner.id, seeded.quiz.id
        svc = ProgressService(db_session)
        await svc.submit_quiz_result(user_id, quiz_id, 40)
        passed = await svc.submit_quiz_result(user_id, quiz_id, 70)

        assert passed["passed"] is True
        assert passed["coins_awarded"] == 50

    @pytest.mark.asyncio
    async def test_pass_fail_pass_does_not_regrant(self, db_session, seeded):
        """A failed retake overwrites the score but not the first pass."""
        user_id, quiz_id = seeded.learner.id, seeded.quiz.id
        svc = ProgressService(db_session)
        await svc.submit_quiz_result(user_id, quiz_id, 90)
        failed = await svc.submit_quiz_result(user_id, quiz_id, 10)
        repassed = await svc.submit_quiz_result(user_id, quiz_id, 95)

        assert failed["passed"] is False
        assert failed["coins_awarded"] == 0
        assert repassed["coins_awarded"] == 0
        assert (await get_wallet(db_session, user_id)).balance == 50

        stored = (
            await db_session.execute(
                select(QuizResult).where(QuizResult.user_id == user_id, QuizResult.quiz_id == quiz_id)
            )
        ).scalar_one()
        assert stored.score == 95
        assert stored.first_passed_at is not None

    @pytest.mark.asyncio
    async def test_zero_coin_quiz_passes_without_reward(self, db_session, seeded):
        user_id, quiz_id = seeded.learner.id, seeded.practice_quiz.id
        result = await ProgressService(db_session).submit_quiz_result(user_id, quiz_id, 100)

        assert result["passed"] is True
        assert result["coins_awarded"] == 0
        assert result["message"] == "Quiz passed!"
        assert await get_wallet(db_session, user_id) is None

    @pytest.mark.asyncio
    async def test_users_are_independent(self, db_session, seeded):
        learner_id, other_id, quiz_id = seeded.learner.id, seeded.other.id, seeded.quiz.id
        svc = ProgressService(db_session)
        await svc.submit_quiz_result(learner_id, quiz_id, 80)
        other = await svc.submit_quiz_result(other_id, quiz_id, 80)

        assert other["coins_awarded"] == 50
        assert (await get_wallet(db_session, learner_id)).balance == 50
        assert (await get_wallet(db_session, other_id)).balance == 50

    @pytest.mark.parametrize("score", [-1, 101, 1.5, True])
    @pytest.mark.asyncio
    async def test_invalid_score(self, db_session, seeded, score):
        with pytest.raises(InvalidInputError):
            await ProgressService(db_session).submit_quiz_result(seeded.learner.id, seeded.quiz.id, score)

    @pytest.mark.asyncio
    async def test_boundary_scores(self, db_session, seeded):
        user_id, quiz_id = seeded.learner.id, seeded.quiz.id
        svc = ProgressService(db_session)
        assert (await svc.submit_quiz_result(user_id, quiz_id, 0))["passed"] is False
        assert (await svc.submit_quiz_result(user_id, quiz_id, 69))["passed"] is False
        assert (await svc.submit_quiz_result(user_id, quiz_id, 70))["passed"] is True

    @pytest.mark.asyncio
    async def test_unpublished_quiz_not_found(self, db_session, seeded):
        user_id, hidden_id, draft_id = seeded.learner.id, seeded.hidden_quiz.id, seeded.draft_quiz.id
        svc = ProgressService(db_session)
        with pytest.raises(NotFoundError):
            await svc.submit_quiz_result(user_id, hidden_id, 100)
        with pytest.raises(NotFoundError):
            await svc.submit_quiz_result(user_id, draft_id, 100)
        with pytest.raises(NotFoundError):
            await svc.submit_quiz_result(user_id, "missing", 100)


class TestConcurrentSubmissions:
    @pytest.mark.asyncio
    async def test_racing_first_passes_award_once(self, seeded):
        user_id, quiz_id = seeded.learner.id, seeded.quiz.id
        factory = get_session_factory()

        async def submit(score: int) -> dict:
            async with factory() as session:
                return await ProgressService(session).submit_quiz_result(user_id, quiz_id, score)

        first, second = await asyncio.gather(submit(80), submit(90))

        assert sorted([first["coins_awarded"], second["coins_awarded"]]) == [0, 50]
        async with factory() as session:
            wallet = await get_wallet(session, user_id)
            user = await get_user_by_id(session, user_id)
            totals = await ledger_totals(session, wallet.id)
        assert wallet.balance == 50
        assert user.coins_earned == 50
        assert totals["EARNED"] == 50


class TestQuizQueries:
    @pytest.mark.asyncio
    async def test_get_quiz_result(self, db_session, seeded):
        user_id, quiz_id = seeded.learner.id, seeded.quiz.id
        svc = ProgressService(db_session)
        await svc.submit_quiz_result(user_id, quiz_id, 75)

        stored = await svc.get_quiz_result(user_id, quiz_id)
        assert stored["result"]["score"] == 75
        assert stored["result"]["passed"] is True
        assert stored["quiz"]["pass_score"] == 70
        assert stored["can_retake"] is True

    @pytest.mark.asyncio
    async def test_get_quiz_result_missing(self, db_session, seeded):
        with pytest.raises(NotFoundError):
            await ProgressService(db_session).get_quiz_result(seeded.learner.id, seeded.quiz.id)

    @pytest.mark.asyncio
    async def test_history(self, db_session, seeded):
        user_id = seeded.learner.id
        quiz_id, practice_id = seeded.quiz.id, seeded.practice_quiz.id
        svc = ProgressService(db_session)
        await svc.submit_quiz_result(user_id, quiz_id, 50)
        await svc.submit_quiz_result(user_id, practice_id, 60)

        history = await svc.get_quiz_history(user_id)
        assert history["total"] == 2
        assert {r["quiz"]["id"] for r in history["results"]} == {quiz_id, practice_id}

        paged = await svc.get_quiz_history(user_id, page=2, per_page=1)
        assert len(paged["results"]) == 1
