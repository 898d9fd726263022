"""Business logic for quest progress persistence."""

import json
import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from quest_player.database.session import async_session_maker

from .protocols import ProgressStore
from .queries import (
    DELETE_BLOCK_RESPONSE_QUERY,
    DELETE_LESSON_RESPONSES_QUERY,
    DELETE_STATE_QUERY,
    GET_STATE_QUERY,
    LIST_LESSON_STATES_QUERY,
    MERGE_STATE_QUERY,
    UPSERT_BLOCK_RESPONSE_QUERY,
)
from .schemas import (
    LearnerProgressRow,
    LessonProgressOverview,
    LessonStateRecord,
    ProgressState,
    ProgressStatus,
    ResetScope,
)


logger = logging.getLogger(__name__)


def _parse_document(raw: Any, user_id: Any, lesson_id: Any) -> dict[str, Any]:
    """Parse a ``state_json`` value that may come back as a string."""
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Failed to parse progress state for user {user_id}, lesson {lesson_id}: {raw}")
            return {}
    return raw or {}


class ProgressStateService:
    """SQL operations on ``lesson_progress_state`` and ``user_lesson_progress``."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize progress state service."""
        self.session = session

    async def get_state(self, user_id: UUID, lesson_id: UUID) -> ProgressState | None:
        """Get the stored progress state, or None."""
        result = await self.session.execute(
            text(GET_STATE_QUERY), {"user_id": str(user_id), "lesson_id": str(lesson_id)}
        )

        row = result.first()
        if not row:
            return None

        document = _parse_document(row.state_json, user_id, lesson_id)
        return ProgressState.from_document(document, row.completed_at)

    async def merge_state(
        self,
        user_id: UUID,
        lesson_id: UUID,
        patch: dict[str, Any],
        completed_at: datetime | None = None,
    ) -> None:
        """Merge top-level keys into the stored document, creating it if needed."""
        await self.session.execute(
            text(MERGE_STATE_QUERY),
            {
                "user_id": str(user_id),
                "lesson_id": str(lesson_id),
                "patch": json.dumps(patch),
                "completed_at": completed_at,
            },
        )

    async def save_block_response(
        self, user_id: UUID, lesson_id: UUID, block_id: str, response: dict[str, Any]
    ) -> None:
        """Upsert the raw answer record of a block."""
        await self.session.execute(
            text(UPSERT_BLOCK_RESPONSE_QUERY),
            {
                "user_id": str(user_id),
                "lesson_id": str(lesson_id),
                "block_id": block_id,
                "response": json.dumps(response),
            },
        )

    async def delete_block_response(self, user_id: UUID, lesson_id: UUID, block_id: str) -> bool:
        """Delete the raw answer record of a block."""
        result = await self.session.execute(
            text(DELETE_BLOCK_RESPONSE_QUERY),
            {"user_id": str(user_id), "lesson_id": str(lesson_id), "block_id": block_id},
        )
        return result.rowcount > 0

    async def delete_lesson_progress(self, user_id: UUID, lesson_id: UUID) -> bool:
        """Delete the progress document and every raw answer of a lesson."""
        params = {"user_id": str(user_id), "lesson_id": str(lesson_id)}
        await self.session.execute(text(DELETE_LESSON_RESPONSES_QUERY), params)
        result = await self.session.execute(text(DELETE_STATE_QUERY), params)
        return result.rowcount > 0

    async def list_lesson_states(self, lesson_id: UUID) -> list[LessonStateRecord]:
        """List every stored progress document of a lesson."""
        result = await self.session.execute(text(LIST_LESSON_STATES_QUERY), {"lesson_id": str(lesson_id)})

        records = []
        for row in result:
            document = _parse_document(row.state_json, row.user_id, lesson_id)
            records.append(
                LessonStateRecord(
                    user_id=row.user_id,
                    lesson_id=row.lesson_id,
                    state=ProgressState.from_document(document, row.completed_at),
                    completed_at=row.completed_at,
                    updated_at=row.updated_at,
                )
            )
        return records


class SqlProgressStore(ProgressStore):
    """Progress store that commits every call in its own session."""

    async def load(self, learner_id: UUID, lesson_id: UUID) -> ProgressState:
        """Load progress, or a default empty state if none was stored."""
        async with async_session_maker() as session:
            state = await ProgressStateService(session).get_state(learner_id, lesson_id)
            return state or ProgressState()

    async def merge(
        self,
        learner_id: UUID,
        lesson_id: UUID,
        patch: dict[str, Any],
        completed_at: datetime | None = None,
    ) -> None:
        """Merge top-level document keys; ``completed_at`` is only ever set once."""
        async with async_session_maker() as session:
            await ProgressStateService(session).merge_state(learner_id, lesson_id, patch, completed_at)
            await session.commit()

        logger.debug(f"Merged progress keys {sorted(patch)} for user {learner_id}, lesson {lesson_id}")

    async def reset_block(self, learner_id: UUID, lesson_id: UUID, block_id: str, scope: ResetScope) -> None:
        """Clear a block's raw answer and apply the scope's state patch in one transaction."""
        async with async_session_maker() as session:
            service = ProgressStateService(session)
            if scope.clear_response:
                await service.delete_block_response(learner_id, lesson_id, block_id)
            if scope.state_patch:
                await service.merge_state(learner_id, lesson_id, scope.state_patch)
            await session.commit()

        logger.info(f"Reset block {block_id} for user {learner_id}, lesson {lesson_id}")

    async def save_block_response(
        self, learner_id: UUID, lesson_id: UUID, block_id: str, response: dict[str, Any]
    ) -> None:
        """Store the raw answer record of a block."""
        async with async_session_maker() as session:
            await ProgressStateService(session).save_block_response(learner_id, lesson_id, block_id, response)
            await session.commit()

    async def reset_all(self, learner_id: UUID, lesson_id: UUID) -> bool:
        """Delete all progress of a learner in a lesson."""
        async with async_session_maker() as session:
            deleted = await ProgressStateService(session).delete_lesson_progress(learner_id, lesson_id)
            await session.commit()
            return deleted

    async def list_lesson_states(self, lesson_id: UUID) -> list[LessonStateRecord]:
        """List every learner's stored progress for a lesson."""
        async with async_session_maker() as session:
            return await ProgressStateService(session).list_lesson_states(lesson_id)


def summarize_lesson_progress(lesson_id: UUID, records: list[LessonStateRecord]) -> LessonProgressOverview:
    """Build the admin overview of a quest lesson from stored progress documents."""
    learners = []
    for record in records:
        state = record.state
        if record.completed_at is not None:
            status = ProgressStatus.COMPLETED
        elif state.completed_block_ids or state.current_step_index > 0:
            status = ProgressStatus.IN_PROGRESS
        else:
            status = ProgressStatus.NOT_STARTED

        learners.append(
            LearnerProgressRow(
                user_id=record.user_id,
                status=status,
                role=state.role,
                point_a_completed=state.table_completed,
                point_b_completed=state.form_completed,
                completed_steps=len(state.completed_block_ids),
                completed_at=record.completed_at,
                updated_at=record.updated_at,
            )
        )

    return LessonProgressOverview(
        lesson_id=lesson_id,
        student_count=len(learners),
        completed_count=sum(1 for row in learners if row.completed_at is not None),
        point_a_count=sum(1 for row in learners if row.point_a_completed),
        point_b_count=sum(1 for row in learners if row.point_b_completed),
        learners=learners,
    )
