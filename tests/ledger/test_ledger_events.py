"""Ledger event publication tests: best effort, after commit."""

from __future__ import annotations

import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from coursecoin.ledger.events import publish_ledger_event
from coursecoin.progress.service import ProgressService


class _RecordingRedis:
    def __init__(self, fail: bool = False) -> None:
        self.published: list[tuple[str, dict]] = []
        self.fail = fail

    async def publish(self, channel: str, message: str) -> int:
        if self.fail:
            msg = "redis down"
            raise RedisConnectionError(msg)
        self.published.append((channel, json.loads(message)))
        return 1


class TestPublishLedgerEvent:
    @pytest.mark.asyncio
    async def test_publishes_on_prefixed_channel(self):
        redis = _RecordingRedis()
        await publish_ledger_event(redis, "coins_awarded", {"user_id": 1, "amount": 50})
        assert redis.published == [("pubsub:coins_awarded", {"user_id": 1, "amount": 50})]

    @pytest.mark.asyncio
    async def test_no_redis_is_a_noop(self):
        await publish_ledger_event(None, "coins_awarded", {"user_id": 1})

    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self):
        await publish_ledger_event(_RecordingRedis(fail=True), "coins_awarded", {"user_id": 1})


class TestRewardEvents:
    @pytest.mark.asyncio
    async def test_award_publishes_once(self, db_session, seeded):
        user_id, quiz_id = seeded.learner.id, seeded.quiz.id
        redis = _RecordingRedis()
        svc = ProgressService(db_session, redis=redis)

        await svc.submit_quiz_result(user_id, quiz_id, 90)
        await svc.submit_quiz_result(user_id, quiz_id, 95)

        assert len(redis.published) == 1
        channel, payload = redis.published[0]
        assert channel == "pubsub:coins_awarded"
        assert payload["user_id"] == user_id
        assert payload["unit_type"] == "quiz"
        assert payload["unit_id"] == quiz_id
        assert payload["amount"] == 50
        assert payload["note"] == "Passed quiz: Budgeting Quiz"

    @pytest.mark.asyncio
    async def test_publish_failure_keeps_reward(self, db_session, seeded):
        user_id, chapter_id = seeded.learner.id, seeded.chapter.id
        svc = ProgressService(db_session, redis=_RecordingRedis(fail=True))

        result = await svc.record_chapter_progress(user_id, chapter_id, True, 0)
        assert result["coins_awarded"] == 20
