"""Derives what a client renders from the step blocks and committed state.

Nothing here is stored: visibility, modes and indicator statuses are computed
from ``current_step_index`` and the completed set on every call.
"""

from uuid import UUID

from quest_player.blocks.schemas import Block
from quest_player.progress.schemas import ProgressState

from .gates import GateOptions, behavior_for, gate_message, is_gate_open
from .schemas import IndicatorStatus, QuestView, StepIndicator, StepMode, StepView


def visible_steps(step_blocks: list[Block], state: ProgressState) -> list[Block]:
    """Steps up to and including the current one; later steps are not rendered."""
    if not step_blocks:
        return []
    return step_blocks[: state.current_step_index + 1]


def progress_percent(total_steps: int, state: ProgressState) -> float:
    """Position in the lesson as a percentage."""
    if total_steps == 0:
        return 0.0
    if state.is_finished:
        return 100.0
    return (state.current_step_index + 1) / total_steps * 100


def indicator_status(index: int, block: Block, state: ProgressState) -> IndicatorStatus:
    if index == state.current_step_index:
        return IndicatorStatus.CURRENT
    if state.is_block_completed(block.id):
        return IndicatorStatus.COMPLETED
    if index < state.current_step_index:
        return IndicatorStatus.ACCESSIBLE
    return IndicatorStatus.LOCKED


def step_indicators(step_blocks: list[Block], state: ProgressState) -> list[StepIndicator]:
    """Indicator strip: any step at or before the current one, or completed, can be jumped to."""
    indicators = []
    for index, block in enumerate(step_blocks):
        status = indicator_status(index, block, state)
        indicators.append(
            StepIndicator(
                index=index,
                block_id=block.id,
                block_type=block.block_type,
                label=behavior_for(block).label,
                status=status,
                can_jump=status != IndicatorStatus.LOCKED,
            )
        )
    return indicators


def build_step_view(index: int, block: Block, state: ProgressState, options: GateOptions) -> StepView:
    behavior = behavior_for(block)
    interactive = index == state.current_step_index and not state.is_finished
    gate_open = is_gate_open(block, state, options)

    return StepView(
        index=index,
        block_id=block.id,
        block_type=block.block_type,
        content=block.content,
        mode=StepMode.INTERACTIVE if interactive else StepMode.READ_ONLY,
        completed=state.is_block_completed(block.id),
        gate_open=gate_open,
        gate_message=None if gate_open else gate_message(block),
        label=behavior.label,
        data=behavior.view_data(block, state, options),
    )


def build_quest_view(
    lesson_id: UUID,
    step_blocks: list[Block],
    state: ProgressState,
    options: GateOptions | None = None,
) -> QuestView:
    """Assemble the full client view of a quest lesson."""
    options = options or GateOptions()
    total = len(step_blocks)
    current = state.current_step_index if total else 0
    is_last = total > 0 and current == total - 1
    current_open = total > 0 and is_gate_open(step_blocks[current], state, options)

    return QuestView(
        lesson_id=lesson_id,
        total_steps=total,
        current_step_index=current,
        current_block_id=step_blocks[current].id if total else None,
        progress_percent=progress_percent(total, state),
        is_last_step=is_last,
        is_finished=state.is_finished,
        completed_at=state.completed_at,
        can_go_back=current > 0,
        can_go_next=not is_last and current_open,
        can_finish=is_last and current_open and not state.is_finished,
        steps=[
            build_step_view(index, block, state, options)
            for index, block in enumerate(visible_steps(step_blocks, state))
        ],
        indicators=step_indicators(step_blocks, state),
    )
