"""Quest lessons: gated, step-by-step progression through a lesson's blocks."""

from quest_player.quest.controller import QuestController, TransitionResult
from quest_player.quest.gates import BLOCK_BEHAVIORS, BlockBehavior, GateOptions, gate_message, is_gate_open
from quest_player.quest.presentation import build_quest_view, progress_percent, step_indicators, visible_steps


__all__ = [
    "BLOCK_BEHAVIORS",
    "BlockBehavior",
    "GateOptions",
    "QuestController",
    "TransitionResult",
    "build_quest_view",
    "gate_message",
    "is_gate_open",
    "progress_percent",
    "step_indicators",
    "visible_steps",
]
