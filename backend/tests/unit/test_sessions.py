"""Tests for per-session transition locks."""

from uuid import uuid4

from quest_player.quest.sessions import SessionLocks


def test_same_session_shares_a_lock() -> None:
    locks = SessionLocks()
    learner, lesson = uuid4(), uuid4()

    first = locks.get(learner, lesson)

    assert locks.get(learner, lesson) is first
    assert locks.get(learner, uuid4()) is not first
    assert locks.get(uuid4(), lesson) is not first
