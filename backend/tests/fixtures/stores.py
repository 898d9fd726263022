"""In-memory stand-ins for the progress store and block catalog."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from quest_player.blocks.schemas import Block
from quest_player.blocks.service import BlockCatalog
from quest_player.progress.protocols import ProgressStore
from quest_player.progress.schemas import LessonStateRecord, ProgressState, ResetScope


class StoreUnavailableError(ConnectionError):
    """Simulated store outage."""


class InMemoryProgressStore(ProgressStore):
    """Progress store keeping documents in dictionaries.

    Set ``fail_merge`` / ``fail_reset`` / ``fail_load`` to simulate an
    unavailable store. Every confirmed merge patch is kept in ``merges``.
    """

    def __init__(self) -> None:
        self.documents: dict[tuple[UUID, UUID], dict[str, Any]] = {}
        self.completed: dict[tuple[UUID, UUID], datetime] = {}
        self.updated: dict[tuple[UUID, UUID], datetime] = {}
        self.responses: dict[tuple[UUID, UUID, str], dict[str, Any]] = {}
        self.merges: list[dict[str, Any]] = []
        self.fail_load = False
        self.fail_merge = False
        self.fail_reset = False

    def seed(self, learner_id: UUID, lesson_id: UUID, document: dict[str, Any]) -> None:
        self.documents[(learner_id, lesson_id)] = dict(document)
        self.updated[(learner_id, lesson_id)] = datetime.now(UTC)

    async def load(self, learner_id: UUID, lesson_id: UUID) -> ProgressState:
        if self.fail_load:
            raise StoreUnavailableError("store unavailable")
        key = (learner_id, lesson_id)
        return ProgressState.from_document(self.documents.get(key), self.completed.get(key))

    async def merge(
        self,
        learner_id: UUID,
        lesson_id: UUID,
        patch: dict[str, Any],
        completed_at: datetime | None = None,
    ) -> None:
        if self.fail_merge:
            raise StoreUnavailableError("store unavailable")
        key = (learner_id, lesson_id)
        self.documents.setdefault(key, {}).update(patch)
        self.updated[key] = datetime.now(UTC)
        if completed_at is not None:
            self.completed.setdefault(key, completed_at)
        self.merges.append(dict(patch))

    async def reset_block(self, learner_id: UUID, lesson_id: UUID, block_id: str, scope: ResetScope) -> None:
        if self.fail_reset:
            raise StoreUnavailableError("store unavailable")
        if scope.clear_response:
            self.responses.pop((learner_id, lesson_id, block_id), None)
        if scope.state_patch:
            self.documents.setdefault((learner_id, lesson_id), {}).update(scope.state_patch)

    async def save_block_response(
        self, learner_id: UUID, lesson_id: UUID, block_id: str, response: dict[str, Any]
    ) -> None:
        if self.fail_merge:
            raise StoreUnavailableError("store unavailable")
        self.responses[(learner_id, lesson_id, block_id)] = dict(response)

    async def reset_all(self, learner_id: UUID, lesson_id: UUID) -> bool:
        if self.fail_reset:
            raise StoreUnavailableError("store unavailable")
        key = (learner_id, lesson_id)
        existed = key in self.documents
        self.documents.pop(key, None)
        self.completed.pop(key, None)
        self.updated.pop(key, None)
        for response_key in [k for k in self.responses if k[:2] == key]:
            del self.responses[response_key]
        return existed

    async def list_lesson_states(self, lesson_id: UUID) -> list[LessonStateRecord]:
        records = [
            LessonStateRecord(
                user_id=user_id,
                lesson_id=lesson_id,
                state=ProgressState.from_document(document, self.completed.get((user_id, lesson_id))),
                completed_at=self.completed.get((user_id, lesson_id)),
                updated_at=self.updated.get((user_id, lesson_id)),
            )
            for (user_id, doc_lesson_id), document in self.documents.items()
            if doc_lesson_id == lesson_id
        ]
        return sorted(records, key=lambda r: r.updated_at, reverse=True)


class InMemoryBlockCatalog(BlockCatalog):
    """Block catalog serving fixed block lists per lesson."""

    def __init__(self, lessons: dict[UUID, list[Block]] | None = None) -> None:
        self.lessons = lessons or {}

    async def list_blocks(self, lesson_id: UUID) -> list[Block]:
        return list(self.lessons.get(lesson_id, []))
