"""Progress store contract used by the quest controller.

The controller owns the state machine; a store only loads and merge-saves
progress documents and performs authoritative remote resets.
"""

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from .schemas import LessonStateRecord, ProgressState, ResetScope


class ProgressStore(Protocol):
    """Protocol for persisting per-(learner, lesson) quest progress."""

    async def load(self, learner_id: UUID, lesson_id: UUID) -> ProgressState:
        """Load progress, or a default empty state if none was stored."""
        ...

    async def merge(
        self,
        learner_id: UUID,
        lesson_id: UUID,
        patch: dict[str, Any],
        completed_at: datetime | None = None,
    ) -> None:
        """Merge top-level document keys; ``completed_at`` is only ever set once."""
        ...

    async def reset_block(self, learner_id: UUID, lesson_id: UUID, block_id: str, scope: ResetScope) -> None:
        """Authoritatively clear a block's stored answer and apply the scope's state patch."""
        ...

    async def save_block_response(
        self, learner_id: UUID, lesson_id: UUID, block_id: str, response: dict[str, Any]
    ) -> None:
        """Store the raw answer record of a block."""
        ...

    async def reset_all(self, learner_id: UUID, lesson_id: UUID) -> bool:
        """Delete all progress of a learner in a lesson. Returns whether anything existed."""
        ...

    async def list_lesson_states(self, lesson_id: UUID) -> list[LessonStateRecord]:
        """List every learner's stored progress for a lesson, most recent first."""
        ...
