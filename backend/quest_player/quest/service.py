"""Quest service: runs learner actions against a freshly loaded controller."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from uuid import UUID

from quest_player.blocks.service import BlockCatalog
from quest_player.progress.protocols import ProgressStore
from quest_player.progress.schemas import LessonProgressOverview
from quest_player.progress.service import summarize_lesson_progress

from .controller import QuestController, TransitionResult
from .gates import GateOptions
from .presentation import build_quest_view
from .schemas import QuestView, TransitionResponse
from .sessions import SessionLocks, session_locks


logger = logging.getLogger(__name__)

Action = Callable[[QuestController], Awaitable[TransitionResult]]


class QuestService:
    """Service for driving quest lessons over HTTP.

    Each request builds a short-lived controller. The session lock is held from
    loading progress until the action is committed, so concurrent requests of
    one learner in one lesson are evaluated one after another against the
    committed state.
    """

    def __init__(
        self,
        store: ProgressStore,
        catalog: BlockCatalog,
        options: GateOptions | None = None,
        locks: SessionLocks | None = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._options = options or GateOptions()
        self._locks = locks or session_locks

    async def _controller(self, learner_id: UUID, lesson_id: UUID) -> QuestController:
        blocks = await self._catalog.list_blocks(lesson_id)
        controller = QuestController(
            self._store,
            learner_id,
            lesson_id,
            blocks,
            options=self._options,
            on_lesson_completed=lambda: self._lesson_completed(learner_id, lesson_id),
            # The caller already holds the session lock for the whole request
            lock=asyncio.Lock(),
        )
        await controller.load()
        return controller

    async def _lesson_completed(self, learner_id: UUID, lesson_id: UUID) -> None:
        logger.info(f"Quest lesson {lesson_id} completed by user {learner_id}")

    def _view(self, lesson_id: UUID, controller: QuestController) -> QuestView:
        return build_quest_view(lesson_id, controller.step_blocks, controller.state, self._options)

    async def get_view(self, learner_id: UUID, lesson_id: UUID) -> QuestView:
        """Load progress and build the lesson view."""
        async with self._locks.get(learner_id, lesson_id):
            controller = await self._controller(learner_id, lesson_id)
            return self._view(lesson_id, controller)

    async def perform(self, learner_id: UUID, lesson_id: UUID, action: Action) -> TransitionResponse:
        """Run one learner action and return its outcome with the refreshed view."""
        async with self._locks.get(learner_id, lesson_id):
            controller = await self._controller(learner_id, lesson_id)
            result = await action(controller)
            if not result.accepted:
                logger.info(f"Rejected action for user {learner_id} in lesson {lesson_id}: {result.message}")

            return TransitionResponse(
                accepted=result.accepted,
                message=result.message,
                lesson_completed=result.lesson_completed,
                view=self._view(lesson_id, controller),
            )

    async def lesson_progress_overview(self, lesson_id: UUID) -> LessonProgressOverview:
        """Every learner's progress in a lesson, for administrators."""
        records = await self._store.list_lesson_states(lesson_id)
        return summarize_lesson_progress(lesson_id, records)

    async def reset_learner(self, learner_id: UUID, lesson_id: UUID) -> bool:
        """Delete a learner's whole progress in a lesson."""
        async with self._locks.get(learner_id, lesson_id):
            deleted = await self._store.reset_all(learner_id, lesson_id)
        logger.info(f"Reset quest progress of user {learner_id} in lesson {lesson_id} (existed: {deleted})")
        return deleted
