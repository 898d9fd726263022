"""Tests for the progress document model and the admin overview."""

from datetime import UTC, datetime
from uuid import uuid4

from quest_player.progress.schemas import LessonStateRecord, ProgressState, ProgressStatus
from quest_player.progress.service import summarize_lesson_progress


def test_document_uses_stored_keys() -> None:
    state = ProgressState(
        current_step_index=2,
        completed_block_ids=["a"],
        table_rows=[{"income": 1}],
        form_answers={"1": "x"},
        completed_at=datetime.now(UTC),
    )

    document = state.to_document()

    assert document["currentStepIndex"] == 2
    assert document["completedBlocks"] == ["a"]
    assert document["pointA_rows"] == [{"income": 1}]
    assert document["pointB_answers"] == {"1": "x"}
    # Lesson completion lives in its own column
    assert "completed_at" not in document


def test_from_document_tolerates_missing_and_legacy_values() -> None:
    completed_at = datetime.now(UTC)

    state = ProgressState.from_document(
        {"currentStepIndex": 1, "pointB_answers": {"1": 42, "2": None}, "completedBlocks": ["a", "a", "b"]},
        completed_at,
    )

    assert state.current_step_index == 1
    assert state.form_answers == {"1": "42", "2": ""}
    assert state.completed_block_ids == ["a", "b"]
    assert state.role is None
    assert state.is_finished


def test_from_empty_document() -> None:
    state = ProgressState.from_document(None)
    assert state == ProgressState()
    assert not state.is_finished


def test_diff_lists_only_changed_keys() -> None:
    before = ProgressState(role="A", video_progress={"v": 40})
    after = before.model_copy(update={"video_progress": {"v": 80}})

    assert before.diff(after) == {"videoProgress": {"v": 80.0}}
    assert before.diff(before) == {}


def test_completion_helpers_return_copies() -> None:
    state = ProgressState()

    completed = state.with_completed("a").with_completed("a")

    assert completed.completed_block_ids == ["a"]
    assert state.completed_block_ids == []
    assert completed.without_completed("a").completed_block_ids == []


def test_lesson_overview_totals() -> None:
    lesson_id = uuid4()
    done_at = datetime.now(UTC)
    records = [
        LessonStateRecord(
            user_id=uuid4(),
            lesson_id=lesson_id,
            state=ProgressState(role="A", table_completed=True, form_completed=True, completed_block_ids=["x"]),
            completed_at=done_at,
        ),
        LessonStateRecord(
            user_id=uuid4(),
            lesson_id=lesson_id,
            state=ProgressState(role="B", table_completed=True, current_step_index=3),
        ),
        LessonStateRecord(user_id=uuid4(), lesson_id=lesson_id, state=ProgressState()),
    ]

    overview = summarize_lesson_progress(lesson_id, records)

    assert overview.student_count == 3
    assert overview.completed_count == 1
    assert overview.point_a_count == 2
    assert overview.point_b_count == 1
    assert [row.status for row in overview.learners] == [
        ProgressStatus.COMPLETED,
        ProgressStatus.IN_PROGRESS,
        ProgressStatus.NOT_STARTED,
    ]
    assert overview.learners[0].completed_steps == 1
