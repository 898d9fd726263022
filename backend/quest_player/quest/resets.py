"""Per-block reset rules.

Each rule returns a new state with exactly one block's recorded data cleared
and that block removed from the completed set. Nothing else is touched.
"""

from collections.abc import Callable
from dataclasses import dataclass

from quest_player.blocks.schemas import Block
from quest_player.progress.schemas import ProgressState


ResetRule = Callable[[ProgressState, Block], ProgressState]


@dataclass(frozen=True)
class BlockReset:
    """How a block type is reset.

    ``remote`` resets are applied authoritatively by the store (together with
    clearing the block's raw answer record) and followed by a full reload.
    """

    apply: ResetRule
    remote: bool = False


def reset_role_quiz(state: ProgressState, block: Block) -> ProgressState:
    """Forget the derived role."""
    return state.without_completed(block.id).model_copy(update={"role": None})


def reset_diagnostic_table(state: ProgressState, block: Block) -> ProgressState:
    """Clear Point A rows and step back once, since completing the table advanced the learner."""
    return state.without_completed(block.id).model_copy(
        update={
            "table_rows": [],
            "table_completed": False,
            "current_step_index": max(0, state.current_step_index - 1),
        }
    )


def reset_sequential_form(state: ProgressState, block: Block) -> ProgressState:
    """Clear Point B answers and summary. The form never auto-advanced, so no rewind."""
    return state.without_completed(block.id).model_copy(
        update={
            "form_answers": {},
            "form_completed": False,
            "form_summary": None,
        }
    )


ROLE_QUIZ_RESET = BlockReset(apply=reset_role_quiz, remote=True)
DIAGNOSTIC_TABLE_RESET = BlockReset(apply=reset_diagnostic_table)
SEQUENTIAL_FORM_RESET = BlockReset(apply=reset_sequential_form)
