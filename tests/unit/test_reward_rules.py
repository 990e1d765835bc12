"""Reward rule tests: a unit pays out once, on the first transition into achieved."""

import pytest

from coursecoin.progress.rewards import (
    NO_REWARD,
    CompletionState,
    RewardableUnit,
    UnitKind,
    evaluate,
    reward_note,
)

QUIZ = RewardableUnit(kind=UnitKind.QUIZ, id="q1", title="Budgeting Quiz", coin_value=50)
CHAPTER = RewardableUnit(kind=UnitKind.CHAPTER, id="c1", title="Budgeting", coin_value=20)

ACHIEVED = CompletionState(achieved=True)
NOT_ACHIEVED = CompletionState(achieved=False)


class TestEvaluate:
    def test_first_pass_without_record_grants(self):
        decision = evaluate(None, ACHIEVED, QUIZ)
        assert decision.grant is True
        assert decision.amount == 50
        assert decision.reason == "Passed quiz: Budgeting Quiz"

    def test_pass_after_failed_attempt_grants(self):
        decision = evaluate(NOT_ACHIEVED, ACHIEVED, QUIZ)
        assert decision.grant is True
        assert decision.amount == 50

    def test_repeat_pass_does_not_grant(self):
        assert evaluate(ACHIEVED, ACHIEVED, QUIZ) == NO_REWARD

    def test_fail_never_grants(self):
        assert evaluate(None, NOT_ACHIEVED, QUIZ) == NO_REWARD
        assert evaluate(NOT_ACHIEVED, NOT_ACHIEVED, QUIZ) == NO_REWARD

    def test_fail_after_pass_does_not_claw_back(self):
        """A later failure is simply no reward; nothing is reversed."""
        decision = evaluate(ACHIEVED, NOT_ACHIEVED, QUIZ)
        assert decision.grant is False
        assert decision.amount == 0

    def test_zero_coin_unit_grants_nothing(self):
        free = RewardableUnit(kind=UnitKind.QUIZ, id="q2", title="Practice", coin_value=0)
        assert evaluate(None, ACHIEVED, free) == NO_REWARD

    def test_chapter_completion_grants_chapter_value(self):
        decision = evaluate(None, ACHIEVED, CHAPTER)
        assert decision.grant is True
        assert decision.amount == 20
        assert decision.reason == "Completed chapter: Budgeting"


class TestRewardNote:
    @pytest.mark.parametrize(
        ("unit", "expected"),
        [
            (QUIZ, "Passed quiz: Budgeting Quiz"),
            (CHAPTER, "Completed chapter: Budgeting"),
        ],
    )
    def test_note_format(self, unit, expected):
        assert reward_note(unit) == expected
