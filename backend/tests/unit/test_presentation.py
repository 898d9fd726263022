"""Tests for cumulative reveal and step indicators."""

from datetime import UTC, datetime
from uuid import uuid4

from quest_player.blocks.schemas import select_step_blocks
from quest_player.progress.schemas import ProgressState
from quest_player.quest.presentation import build_quest_view, progress_percent, step_indicators, visible_steps
from quest_player.quest.schemas import IndicatorStatus, StepMode


def test_only_steps_up_to_current_are_rendered(quest_blocks) -> None:
    steps = select_step_blocks(quest_blocks)
    state = ProgressState(current_step_index=2)

    assert [b.id for b in visible_steps(steps, state)] == ["quiz", "role", "video"]


def test_progress_percent() -> None:
    assert progress_percent(0, ProgressState()) == 0.0
    assert progress_percent(4, ProgressState(current_step_index=1)) == 50.0
    assert progress_percent(4, ProgressState(current_step_index=3, completed_at=datetime.now(UTC))) == 100.0


def test_indicator_statuses(quest_blocks) -> None:
    steps = select_step_blocks(quest_blocks)
    # Walked up to Point A, then back to the quiz
    state = ProgressState(current_step_index=0, completed_block_ids=["quiz", "role", "video"])

    indicators = step_indicators(steps, state)

    assert [i.status for i in indicators] == [
        IndicatorStatus.CURRENT,
        IndicatorStatus.COMPLETED,
        IndicatorStatus.COMPLETED,
        IndicatorStatus.LOCKED,
        IndicatorStatus.LOCKED,
        IndicatorStatus.LOCKED,
    ]
    assert [i.can_jump for i in indicators] == [True, True, True, False, False, False]
    assert [i.label for i in indicators] == ["Quiz", "Role description", "Video", "Point A", None, "Point B"]


def test_visited_uncompleted_step_is_accessible(quest_blocks) -> None:
    steps = select_step_blocks(quest_blocks)
    state = ProgressState(current_step_index=2, completed_block_ids=["quiz"])

    assert step_indicators(steps, state)[1].status == IndicatorStatus.ACCESSIBLE


def test_view_marks_earlier_steps_read_only_and_passes_recorded_data(quest_blocks) -> None:
    steps = select_step_blocks(quest_blocks)
    state = ProgressState(
        current_step_index=2,
        completed_block_ids=["quiz", "role"],
        role="A",
        video_progress={"video": 40},
    )

    view = build_quest_view(uuid4(), steps, state)

    assert [s.mode for s in view.steps] == [StepMode.READ_ONLY, StepMode.READ_ONLY, StepMode.INTERACTIVE]
    assert view.steps[0].data == {"role": "A"}
    assert view.steps[2].data["watched_percent"] == 40
    assert view.steps[2].gate_open is False
    assert view.steps[2].gate_message
    assert view.can_go_back
    assert not view.can_go_next
    assert not view.can_finish
    assert view.current_block_id == "video"
    assert view.progress_percent == 50.0


def test_finished_view_is_fully_read_only(quest_blocks) -> None:
    steps = select_step_blocks(quest_blocks)
    ids = [b.id for b in steps]
    state = ProgressState(
        current_step_index=len(steps) - 1,
        completed_block_ids=ids,
        form_completed=True,
        completed_at=datetime.now(UTC),
    )

    view = build_quest_view(uuid4(), steps, state)

    assert view.is_finished
    assert len(view.steps) == len(steps)
    assert all(s.mode == StepMode.READ_ONLY for s in view.steps)
    assert not view.can_finish
    assert view.progress_percent == 100.0


def test_empty_lesson_view() -> None:
    view = build_quest_view(uuid4(), [], ProgressState())

    assert view.total_steps == 0
    assert view.steps == []
    assert view.current_block_id is None
    assert not view.can_go_next
    assert not view.can_finish
