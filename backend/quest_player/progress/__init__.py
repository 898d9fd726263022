"""Progress module for persisting quest lesson progress."""

from quest_player.progress.protocols import ProgressStore
from quest_player.progress.schemas import (
    LessonProgressOverview,
    LessonStateRecord,
    ProgressState,
    ResetScope,
)
from quest_player.progress.service import SqlProgressStore, summarize_lesson_progress


__all__ = [
    "LessonProgressOverview",
    "LessonStateRecord",
    "ProgressState",
    "ProgressStore",
    "ResetScope",
    "SqlProgressStore",
    "summarize_lesson_progress",
]
