"""Tests for block content readers: survey roles, table totals, form steps."""

from quest_player.blocks.schemas import BlockType, select_step_blocks
from quest_player.progress.schemas import ProgressState
from quest_player.quest.block_content import (
    DEFAULT_FORM_STEP_IDS,
    derive_role,
    dominant_categories,
    form_required_step_ids,
    table_aggregates,
    table_min_rows,
    video_threshold,
)
from quest_player.quest.gates import GateOptions, is_gate_open
from tests.fixtures.blocks import VIDEO_URL, make_block, make_lesson, survey_content


def test_dominant_category_wins() -> None:
    assert derive_role(survey_content(), {"q1": "q1a", "q2": "q2a"}) == "A"


def test_tie_produces_mixed_role_in_sorted_order() -> None:
    assert dominant_categories(survey_content(), {"q1": "q1b", "q2": "q2a"}) == ["A", "B"]
    assert derive_role(survey_content(), {"q1": "q1b", "q2": "q2a"}) == "A+B"


def test_unanswered_or_unknown_option_yields_no_role() -> None:
    assert derive_role(survey_content(), {"q1": "q1a"}) is None
    assert derive_role(survey_content(), {"q1": "q1a", "q2": "nope"}) is None
    assert derive_role({}, {"q1": "q1a"}) is None


def test_table_aggregates() -> None:
    rows = [
        {"income": "1000", "work_hours": 10, "overhead_hours": 5},
        {"income": 500, "work_hours": "5", "overhead_hours": None},
    ]

    totals = table_aggregates(rows)

    assert totals == {
        "total_income": 1500.0,
        "total_work_hours": 15.0,
        "total_overhead_hours": 5.0,
        "avg_hourly_rate": 75.0,
    }


def test_table_aggregates_without_rows_or_hours() -> None:
    assert table_aggregates([]) is None
    assert table_aggregates([{"income": 100}])["avg_hourly_rate"] == 0.0


def test_table_min_rows_defaults_to_one() -> None:
    assert table_min_rows(make_block(BlockType.DIAGNOSTIC_TABLE, "t")) == 1
    assert table_min_rows(make_block(BlockType.DIAGNOSTIC_TABLE, "t", minRows=3)) == 3


def test_form_required_steps() -> None:
    configured = make_block(
        BlockType.SEQUENTIAL_FORM,
        "f",
        steps=[{"id": 1, "required": True}, {"id": 2, "required": False}, {"id": 3}],
    )

    assert form_required_step_ids(configured) == ["1", "3"]
    assert form_required_step_ids(make_block(BlockType.SEQUENTIAL_FORM, "f")) == list(DEFAULT_FORM_STEP_IDS)


def test_video_threshold_default() -> None:
    assert video_threshold(make_block(BlockType.VIDEO_UNSKIPPABLE, "v"), 95.0) == 95.0
    assert video_threshold(make_block(BlockType.VIDEO_UNSKIPPABLE, "v", threshold_percent="80"), 95.0) == 80.0


def test_step_blocks_follow_sort_order_and_skip_decoration() -> None:
    blocks = make_lesson((BlockType.TEXT, "a"), (BlockType.HEADING, "h"), (BlockType.VIDEO, "b"))
    shuffled = [blocks[2], blocks[0], blocks[1]]

    assert [b.id for b in select_step_blocks(shuffled)] == ["a", "b"]


class TestMalformedContent:
    """Authored content with invalid values falls back instead of failing."""

    def test_invalid_video_threshold_uses_default(self, caplog) -> None:
        block = make_block(BlockType.VIDEO_UNSKIPPABLE, "v", url=VIDEO_URL, threshold_percent="most of it")

        with caplog.at_level("WARNING"):
            assert video_threshold(block, 95.0) == 95.0

        assert "threshold_percent" in caplog.text
        assert is_gate_open(block, ProgressState(video_progress={"v": 96}), GateOptions())
        assert not is_gate_open(block, ProgressState(video_progress={"v": 50}), GateOptions())

    def test_invalid_min_rows_uses_default(self) -> None:
        assert table_min_rows(make_block(BlockType.DIAGNOSTIC_TABLE, "t", minRows="two")) == 1
        assert table_min_rows(make_block(BlockType.DIAGNOSTIC_TABLE, "t", minRows=[2])) == 1

    def test_form_steps_without_id_are_skipped(self) -> None:
        block = make_block(
            BlockType.SEQUENTIAL_FORM,
            "f",
            steps=[{"id": "1"}, {"required": True}, "step two", {"id": "3", "required": False}],
        )

        assert form_required_step_ids(block) == ["1"]

    def test_form_steps_that_are_not_a_list_use_defaults(self) -> None:
        block = make_block(BlockType.SEQUENTIAL_FORM, "f", steps={"id": "1"})
        assert form_required_step_ids(block) == list(DEFAULT_FORM_STEP_IDS)

    def test_survey_question_without_id_is_skipped(self) -> None:
        content = survey_content()
        content["questions"].append({"text": "Unnumbered", "options": []})

        assert derive_role(content, {"q1": "q1a", "q2": "q2b"}) == "A+B"

    def test_survey_option_without_category_yields_no_role(self) -> None:
        content = survey_content()
        del content["questions"][0]["options"][0]["category"]

        assert derive_role(content, {"q1": "q1a", "q2": "q2a"}) is None
        assert derive_role(content, {"q1": "q1b", "q2": "q2a"}) == "A+B"

    def test_survey_options_without_id_never_match(self) -> None:
        content = {"questions": [{"id": "q1", "options": [{"text": "No id", "category": "A"}]}]}
        assert derive_role(content, {"q1": "None"}) is None

    def test_malformed_question_list_yields_no_role(self) -> None:
        assert derive_role({"questions": "q1,q2"}, {"q1": "q1a"}) is None
