"""Gate evaluator and per-block-type behavior registry.

Every block type maps to one ``BlockBehavior``: when its gate is open, whether
its own completion may be recorded, what completing it records, whether it
advances automatically, how it is reset and which recorded data a read-only
rendering needs. Adding a gated block type is a single registry entry.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from quest_player.blocks.schemas import Block, BlockType
from quest_player.progress.schemas import ProgressState

from .block_content import (
    form_required_step_ids,
    table_aggregates,
    table_min_rows,
    video_source,
    video_threshold,
)
from .resets import DIAGNOSTIC_TABLE_RESET, ROLE_QUIZ_RESET, SEQUENTIAL_FORM_RESET, BlockReset


DEFAULT_GATE_MESSAGE = "Complete the action to continue"


@dataclass(frozen=True)
class GateOptions:
    """Settings that influence gate evaluation."""

    default_video_threshold: float = 95.0
    allow_empty_video_bypass: bool = False


GateRule = Callable[[Block, ProgressState, GateOptions], bool]
CompletionRule = Callable[[ProgressState, Block], ProgressState]
ViewData = Callable[[Block, ProgressState, GateOptions], dict[str, Any]]


def _always_open(_block: Block, _state: ProgressState, _options: GateOptions) -> bool:
    return True


def _records_nothing(state: ProgressState, _block: Block) -> ProgressState:
    return state


def _no_view_data(_block: Block, _state: ProgressState, _options: GateOptions) -> dict[str, Any]:
    return {}


@dataclass(frozen=True)
class BlockBehavior:
    """Strategy entry for one block type."""

    is_open: GateRule = _always_open
    can_complete: GateRule = _always_open
    on_complete: CompletionRule = _records_nothing
    auto_advances: bool = False
    reset: BlockReset | None = None
    gate_message: str = DEFAULT_GATE_MESSAGE
    label: str | None = None
    view_data: ViewData = field(default=_no_view_data)


# === Role selection quiz ===


def _role_selected(_block: Block, state: ProgressState, _options: GateOptions) -> bool:
    return bool(state.role)


def _role_view(_block: Block, state: ProgressState, _options: GateOptions) -> dict[str, Any]:
    return {"role": state.role}


# === Role description ===


def _acknowledged(block: Block, state: ProgressState, _options: GateOptions) -> bool:
    return state.is_block_completed(block.id)


# === Videos ===


def _watched_enough(block: Block, state: ProgressState, options: GateOptions) -> bool:
    # No source: only an administrative bypass can open it
    if not video_source(block):
        return options.allow_empty_video_bypass
    watched = state.video_progress.get(block.id, 0.0)
    return watched >= video_threshold(block, options.default_video_threshold)


def _video_view(block: Block, state: ProgressState, _options: GateOptions) -> dict[str, Any]:
    return {"watched_percent": state.video_progress.get(block.id, 0.0)}


def _unskippable_video_view(block: Block, state: ProgressState, options: GateOptions) -> dict[str, Any]:
    return {
        "watched_percent": state.video_progress.get(block.id, 0.0),
        "threshold_percent": video_threshold(block, options.default_video_threshold),
        "has_source": bool(video_source(block)),
        "allow_bypass": options.allow_empty_video_bypass,
    }


# === Diagnostic table (Point A) ===


def _table_submitted(_block: Block, state: ProgressState, _options: GateOptions) -> bool:
    return len(state.table_rows) > 0 and state.table_completed


def _table_has_enough_rows(block: Block, state: ProgressState, _options: GateOptions) -> bool:
    return len(state.table_rows) >= table_min_rows(block)


def _complete_table(state: ProgressState, _block: Block) -> ProgressState:
    return state.model_copy(update={"table_completed": True})


def _table_view(_block: Block, state: ProgressState, _options: GateOptions) -> dict[str, Any]:
    return {
        "rows": state.table_rows,
        "completed": state.table_completed,
        "aggregates": table_aggregates(state.table_rows),
    }


# === Sequential form (Point B) ===


def _form_submitted(_block: Block, state: ProgressState, _options: GateOptions) -> bool:
    return state.form_completed


def _form_answered(block: Block, state: ProgressState, _options: GateOptions) -> bool:
    return all(state.form_answers.get(step_id, "").strip() for step_id in form_required_step_ids(block))


def _complete_form(state: ProgressState, _block: Block) -> ProgressState:
    return state.model_copy(update={"form_completed": True})


def _form_view(_block: Block, state: ProgressState, _options: GateOptions) -> dict[str, Any]:
    return {
        "answers": state.form_answers,
        "completed": state.form_completed,
        "summary": state.form_summary,
        "role": state.role,
    }


PASS_THROUGH = BlockBehavior()

BLOCK_BEHAVIORS: dict[str, BlockBehavior] = {
    BlockType.QUIZ_SURVEY.value: BlockBehavior(
        is_open=_role_selected,
        can_complete=_role_selected,
        reset=ROLE_QUIZ_RESET,
        gate_message="Choose your answers and get the result to continue",
        label="Quiz",
        view_data=_role_view,
    ),
    BlockType.ROLE_DESCRIPTION.value: BlockBehavior(
        is_open=_acknowledged,
        auto_advances=True,
        gate_message="Read the description and press the button to continue",
        label="Role description",
        view_data=_role_view,
    ),
    BlockType.VIDEO_UNSKIPPABLE.value: BlockBehavior(
        is_open=_watched_enough,
        can_complete=_watched_enough,
        auto_advances=True,
        gate_message="Watch the video to the end and confirm viewing",
        label="Video",
        view_data=_unskippable_video_view,
    ),
    BlockType.VIDEO.value: BlockBehavior(
        auto_advances=True,
        label="Video",
        view_data=_video_view,
    ),
    BlockType.DIAGNOSTIC_TABLE.value: BlockBehavior(
        is_open=_table_submitted,
        can_complete=_table_has_enough_rows,
        on_complete=_complete_table,
        auto_advances=True,
        reset=DIAGNOSTIC_TABLE_RESET,
        gate_message="Add at least one row and press the finish button",
        label="Point A",
        view_data=_table_view,
    ),
    BlockType.SEQUENTIAL_FORM.value: BlockBehavior(
        is_open=_form_submitted,
        can_complete=_form_answered,
        on_complete=_complete_form,
        reset=SEQUENTIAL_FORM_RESET,
        gate_message="Fill in all steps and press the finish button",
        label="Point B",
        view_data=_form_view,
    ),
}


def behavior_for(block: Block) -> BlockBehavior:
    """Registry lookup; unknown types are pass-through steps."""
    return BLOCK_BEHAVIORS.get(block.block_type, PASS_THROUGH)


def is_gate_open(block: Block, state: ProgressState, options: GateOptions | None = None) -> bool:
    """Whether the learner may move past ``block``. Completed blocks are always open."""
    if state.is_block_completed(block.id):
        return True
    return behavior_for(block).is_open(block, state, options or GateOptions())


def gate_message(block: Block) -> str:
    """Short explanation shown when the gate of ``block`` is closed."""
    return behavior_for(block).gate_message
