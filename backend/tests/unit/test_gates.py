"""Tests for the gate evaluator and block behavior registry."""

import pytest

from quest_player.blocks.schemas import BlockType
from quest_player.progress.schemas import ProgressState
from quest_player.quest.gates import (
    BLOCK_BEHAVIORS,
    DEFAULT_GATE_MESSAGE,
    GateOptions,
    behavior_for,
    gate_message,
    is_gate_open,
)
from tests.fixtures.blocks import VIDEO_URL, make_block


EMPTY = ProgressState()


class TestGateRules:
    """Open conditions per block type."""

    def test_quiz_opens_once_role_is_set(self) -> None:
        quiz = make_block(BlockType.QUIZ_SURVEY, "quiz")
        assert not is_gate_open(quiz, EMPTY)
        assert is_gate_open(quiz, ProgressState(role="A+B"))

    def test_role_description_needs_explicit_completion(self) -> None:
        block = make_block(BlockType.ROLE_DESCRIPTION, "role")
        assert not is_gate_open(block, ProgressState(role="A"))
        assert is_gate_open(block, EMPTY.with_completed("role"))

    @pytest.mark.parametrize(
        ("watched", "expected"),
        [(0, False), (94.9, False), (95, True), (100, True)],
    )
    def test_unskippable_video_default_threshold(self, watched, expected) -> None:
        video = make_block(BlockType.VIDEO_UNSKIPPABLE, "v", url=VIDEO_URL)
        state = ProgressState(video_progress={"v": watched})
        assert is_gate_open(video, state) is expected

    def test_unskippable_video_threshold_from_content_and_options(self) -> None:
        custom = make_block(BlockType.VIDEO_UNSKIPPABLE, "v", url=VIDEO_URL, threshold_percent=60)
        plain = make_block(BlockType.VIDEO_UNSKIPPABLE, "v", url=VIDEO_URL)
        state = ProgressState(video_progress={"v": 70})

        assert is_gate_open(custom, state)
        assert not is_gate_open(plain, state, GateOptions(default_video_threshold=80))

    def test_video_without_source_needs_bypass(self) -> None:
        video = make_block(BlockType.VIDEO_UNSKIPPABLE, "v", url="")
        watched = ProgressState(video_progress={"v": 100})

        assert not is_gate_open(video, watched)
        assert is_gate_open(video, EMPTY, GateOptions(allow_empty_video_bypass=True))

    def test_skippable_video_is_always_open(self) -> None:
        assert is_gate_open(make_block(BlockType.VIDEO, "v"), EMPTY)

    def test_table_needs_rows_and_completion_flag(self) -> None:
        table = make_block(BlockType.DIAGNOSTIC_TABLE, "t")
        rows = [{"income": 100}]

        assert not is_gate_open(table, ProgressState(table_rows=rows))
        assert not is_gate_open(table, ProgressState(table_completed=True))
        assert is_gate_open(table, ProgressState(table_rows=rows, table_completed=True))

    def test_form_needs_completion_flag(self) -> None:
        form = make_block(BlockType.SEQUENTIAL_FORM, "f")
        assert not is_gate_open(form, ProgressState(form_answers={"1": "x"}))
        assert is_gate_open(form, ProgressState(form_completed=True))

    @pytest.mark.parametrize(
        "block_type",
        ["text", "callout", "accordion", "tabs", "steps", "timeline", "some_future_block"],
    )
    def test_other_types_are_open(self, block_type) -> None:
        block = make_block(block_type, "b")
        assert is_gate_open(block, EMPTY)
        assert behavior_for(block).reset is None

    def test_completion_is_sticky(self) -> None:
        # A completed video stays open even though its progress entry is gone
        video = make_block(BlockType.VIDEO_UNSKIPPABLE, "v", url=VIDEO_URL)
        assert is_gate_open(video, EMPTY.with_completed("v"))

    def test_evaluation_does_not_mutate_state(self) -> None:
        block = make_block(BlockType.DIAGNOSTIC_TABLE, "t")
        state = ProgressState(table_rows=[{"income": 1}], table_completed=True)
        before = state.to_document()

        first = is_gate_open(block, state)
        second = is_gate_open(block, state)

        assert first == second
        assert state.to_document() == before


class TestRegistry:
    """Registry entries."""

    def test_auto_advancing_types(self) -> None:
        auto = {block_type for block_type, behavior in BLOCK_BEHAVIORS.items() if behavior.auto_advances}
        assert auto == {"role_description", "video_unskippable", "video", "diagnostic_table"}

    def test_resettable_types(self) -> None:
        resettable = {block_type for block_type, behavior in BLOCK_BEHAVIORS.items() if behavior.reset}
        assert resettable == {"quiz_survey", "diagnostic_table", "sequential_form"}
        assert BLOCK_BEHAVIORS["quiz_survey"].reset.remote

    def test_gate_messages(self) -> None:
        assert gate_message(make_block(BlockType.TEXT, "t")) == DEFAULT_GATE_MESSAGE
        assert gate_message(make_block(BlockType.DIAGNOSTIC_TABLE, "t")) != DEFAULT_GATE_MESSAGE

    def test_table_view_data_includes_aggregates(self) -> None:
        table = make_block(BlockType.DIAGNOSTIC_TABLE, "t")
        state = ProgressState(table_rows=[{"income": 1000, "work_hours": 8, "overhead_hours": 2}])

        data = behavior_for(table).view_data(table, state, GateOptions())

        assert data["completed"] is False
        assert data["aggregates"]["avg_hourly_rate"] == 100.0
