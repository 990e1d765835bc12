"""Reward rules: decide whether a completion earns coins.

A unit pays out once per user, the first time that user reaches its
passing/completed state. Failing never costs anything, and an earned reward
is never taken back.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from coursecoin.db.models import Chapter, Quiz


class UnitKind(str, Enum):
    CHAPTER = "chapter"
    QUIZ = "quiz"


@dataclass(frozen=True)
class RewardableUnit:
    kind: UnitKind
    id: str
    title: str
    coin_value: int

    @classmethod
    def from_quiz(cls, quiz: Quiz) -> RewardableUnit:
        return cls(kind=UnitKind.QUIZ, id=quiz.id, title=quiz.title, coin_value=quiz.coin_value)

    @classmethod
    def from_chapter(cls, chapter: Chapter) -> RewardableUnit:
        return cls(kind=UnitKind.CHAPTER, id=chapter.id, title=chapter.title, coin_value=chapter.coin_value)


@dataclass(frozen=True)
class CompletionState:
    """Whether a user has reached the unit's goal (quiz passed / chapter completed)."""

    achieved: bool


@dataclass(frozen=True)
class RewardDecision:
    grant: bool
    amount: int
    reason: str


NO_REWARD = RewardDecision(grant=False, amount=0, reason="")


def reward_note(unit: RewardableUnit) -> str:
    """Ledger note for a unit's reward, stored verbatim on the transaction."""
    if unit.kind is UnitKind.QUIZ:
        return f"Passed quiz: {unit.title}"
    return f"Completed chapter: {unit.title}"


def evaluate(prior: CompletionState | None, new: CompletionState, unit: RewardableUnit) -> RewardDecision:
    """Grant ``unit.coin_value`` only on the first transition into the achieved state.

    ``prior`` is None when the user had no record for the unit.
    """
    if not new.achieved:
        return NO_REWARD
    if prior is not None and prior.achieved:
        return NO_REWARD
    if unit.coin_value <= 0:
        return NO_REWARD
    return RewardDecision(grant=True, amount=unit.coin_value, reason=reward_note(unit))
