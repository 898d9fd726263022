"""Progression controller for quest lessons.

Walks a learner through the step blocks of one lesson. Every transition is
validated against the gate registry, runs under the lesson session's lock and
is committed only once the store confirmed the write.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from quest_player.blocks.schemas import Block, BlockType, select_step_blocks
from quest_player.progress.protocols import ProgressStore
from quest_player.progress.schemas import ProgressState, ResetScope

from .block_content import derive_role, dominant_categories
from .exceptions import (
    BlockNotResettableError,
    BlockResetError,
    ProgressNotLoadedError,
    ProgressPersistenceError,
    StepBlockNotFoundError,
    WrongBlockTypeError,
)
from .gates import GateOptions, behavior_for, gate_message, is_gate_open
from .sessions import session_locks


logger = logging.getLogger(__name__)

LessonCompletedCallback = Callable[[], Awaitable[None] | None]

NO_STEPS_MESSAGE = "No steps to complete"
ALREADY_FINISHED_MESSAGE = "Lesson already completed"
NOT_LAST_STEP_MESSAGE = "Finish is only available on the last step"
LOCKED_STEP_MESSAGE = "Complete the previous steps first"
QUIZ_INCOMPLETE_MESSAGE = "Answer every question to get your result"
TABLE_LOCKED_MESSAGE = "Point A is already completed; reset it to make changes"
FORM_LOCKED_MESSAGE = "Point B is already completed; reset it to make changes"
QUIZ_LOCKED_MESSAGE = "The quiz is already completed; reset it to make changes"

VIDEO_TYPES = (BlockType.VIDEO.value, BlockType.VIDEO_UNSKIPPABLE.value)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a learner action.

    A rejected action (closed gate, locked step) is an expected outcome, not an
    error: ``accepted`` is False, ``message`` explains why and ``state`` is the
    unchanged committed state.
    """

    accepted: bool
    state: ProgressState
    message: str | None = None
    lesson_completed: bool = False

    @classmethod
    def ok(cls, state: ProgressState, *, lesson_completed: bool = False) -> "TransitionResult":
        return cls(accepted=True, state=state, lesson_completed=lesson_completed)

    @classmethod
    def rejected(cls, state: ProgressState, message: str) -> "TransitionResult":
        return cls(accepted=False, state=state, message=message)


class QuestController:
    """State machine over the step blocks of one lesson for one learner."""

    def __init__(
        self,
        store: ProgressStore,
        learner_id: UUID,
        lesson_id: UUID,
        blocks: Iterable[Block],
        *,
        options: GateOptions | None = None,
        on_lesson_completed: LessonCompletedCallback | None = None,
        lock: asyncio.Lock | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            store: Progress store used for every load and write
            learner_id: Learner whose progress is driven
            lesson_id: Lesson being traversed
            blocks: The lesson's block catalog; decorative blocks are dropped
            options: Gate evaluation settings
            on_lesson_completed: Invoked once, when the learner finishes the lesson
            lock: Transition lock; defaults to the lesson session lock shared by every
                controller of this learner and lesson
        """
        self._store = store
        self._learner_id = learner_id
        self._lesson_id = lesson_id
        self._step_blocks = select_step_blocks(blocks)
        self._index_by_id = {block.id: idx for idx, block in enumerate(self._step_blocks)}
        self._options = options or GateOptions()
        self._on_lesson_completed = on_lesson_completed
        self._lock = lock or session_locks.get(learner_id, lesson_id)

        # _persisted mirrors what the store confirmed; _state may additionally
        # carry a repaired step pointer that is written with the next commit
        self._persisted: ProgressState | None = None
        self._state: ProgressState | None = None

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def step_blocks(self) -> list[Block]:
        """Step blocks in lesson order."""
        return list(self._step_blocks)

    @property
    def options(self) -> GateOptions:
        return self._options

    @property
    def state(self) -> ProgressState:
        """Last committed progress state."""
        if self._state is None:
            raise ProgressNotLoadedError
        return self._state

    @property
    def total_steps(self) -> int:
        return len(self._step_blocks)

    @property
    def current_block(self) -> Block | None:
        """Block at the current step, or None for a lesson without steps."""
        if not self._step_blocks:
            return None
        return self._step_blocks[self.state.current_step_index]

    @property
    def is_last_step(self) -> bool:
        return self.total_steps > 0 and self.state.current_step_index == self.total_steps - 1

    @property
    def is_busy(self) -> bool:
        """Whether a transition of this lesson session is in flight."""
        return self._lock.locked()

    def block_index(self, block_id: str) -> int:
        """Index of a step block."""
        try:
            return self._index_by_id[block_id]
        except KeyError:
            raise StepBlockNotFoundError(block_id) from None

    def is_step_open(self, index: int) -> bool:
        """Gate status of the step at ``index`` in the committed state."""
        return is_gate_open(self._step_blocks[index], self.state, self._options)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def load(self) -> ProgressState:
        """Load (or reload) progress from the store and repair a stale step pointer."""
        async with self._lock:
            return await self._reload()

    async def _reload(self) -> ProgressState:
        try:
            stored = await self._store.load(self._learner_id, self._lesson_id)
        except Exception as e:
            logger.exception(f"Failed to load progress for user {self._learner_id}, lesson {self._lesson_id}")
            msg = "Could not load lesson progress"
            raise ProgressPersistenceError(msg) from e

        self._persisted = stored
        self._state = self._resolve_position(stored)
        return self._state

    def _resolve_position(self, state: ProgressState) -> ProgressState:
        """Map the stored step pointer onto the current catalog.

        The block id wins when it still names a step block; otherwise the
        stored index is clamped into range.
        """
        if not self._step_blocks:
            return state

        stored_index = state.current_step_index
        if state.current_step_block_id in self._index_by_id:
            index = self._index_by_id[state.current_step_block_id]
        else:
            index = min(max(stored_index, 0), self.total_steps - 1)

        if index != stored_index:
            logger.warning(
                f"Stale step pointer for user {self._learner_id}, lesson {self._lesson_id}: "
                f"stored index {stored_index}, resuming at {index}"
            )

        return self._at_index(state, index)

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    async def go_to(self, index: int) -> TransitionResult:
        """Move to step ``index``.

        Going back is always allowed. Going forward requires the gate of every
        step passed over to be open, and the target to be the next step or an
        already-completed one.
        """
        async with self._lock:
            return await self._go_to(index)

    async def next(self) -> TransitionResult:
        """Move to the following step."""
        async with self._lock:
            return await self._go_to(self._require_state().current_step_index + 1)

    async def back(self) -> TransitionResult:
        """Move to the preceding step."""
        async with self._lock:
            return await self._go_to(self._require_state().current_step_index - 1)

    async def _go_to(self, index: int) -> TransitionResult:
        state = self._require_state()
        if not self._step_blocks:
            return TransitionResult.rejected(state, NO_STEPS_MESSAGE)
        if index < 0 or index >= self.total_steps:
            return TransitionResult.rejected(state, f"Step {index + 1} does not exist")

        current = state.current_step_index
        if index == current:
            return TransitionResult.ok(state)

        if index < current:
            await self._commit(self._at_index(state, index))
            logger.info(f"User {self._learner_id} went back to step {index} in lesson {self._lesson_id}")
            return TransitionResult.ok(self._state)

        return await self._advance(state, index)

    async def _advance(self, state: ProgressState, target: int) -> TransitionResult:
        """Forward transition; caller holds the lock."""
        current = state.current_step_index
        target_block = self._step_blocks[target]
        if target > current + 1 and not state.is_block_completed(target_block.id):
            return TransitionResult.rejected(state, LOCKED_STEP_MESSAGE)

        new_state = state
        for block in self._step_blocks[current:target]:
            if not is_gate_open(block, new_state, self._options):
                logger.info(f"Gate closed on {block.block_type} block {block.id} for user {self._learner_id}")
                return TransitionResult.rejected(state, gate_message(block))
            new_state = new_state.with_completed(block.id)

        await self._commit(self._at_index(new_state, target))
        logger.info(f"User {self._learner_id} advanced to step {target} in lesson {self._lesson_id}")
        return TransitionResult.ok(self._state)

    async def finish(self) -> TransitionResult:
        """Complete the final step and the lesson; notifies the caller exactly once."""
        async with self._lock:
            state = self._require_state()
            if not self._step_blocks:
                return TransitionResult.rejected(state, NO_STEPS_MESSAGE)
            if state.is_finished:
                return TransitionResult.rejected(state, ALREADY_FINISHED_MESSAGE)
            if not self.is_last_step:
                return TransitionResult.rejected(state, NOT_LAST_STEP_MESSAGE)

            last_block = self._step_blocks[-1]
            if not is_gate_open(last_block, state, self._options):
                return TransitionResult.rejected(state, gate_message(last_block))

            finished = state.with_completed(last_block.id).model_copy(update={"completed_at": datetime.now(UTC)})
            await self._commit(finished)
            logger.info(f"User {self._learner_id} completed lesson {self._lesson_id}")

            if self._on_lesson_completed is not None:
                outcome = self._on_lesson_completed()
                if inspect.isawaitable(outcome):
                    await outcome

            return TransitionResult.ok(self._state, lesson_completed=True)

    # -------------------------------------------------------------------------
    # Block events
    # -------------------------------------------------------------------------

    async def complete_block(self, block_id: str) -> TransitionResult:
        """Record a block's own completion (button press, video end, table submit).

        Blocks that auto-advance move the learner on when they are the current
        step and not the last one. Steps ahead of the current one are locked.
        """
        async with self._lock:
            state = self._require_state()
            index = self.block_index(block_id)
            block = self._step_blocks[index]
            rejection = self._event_rejection(state, block)
            if rejection:
                return TransitionResult.rejected(state, rejection)
            behavior = behavior_for(block)

            if not state.is_block_completed(block.id) and not behavior.can_complete(block, state, self._options):
                return TransitionResult.rejected(state, gate_message(block))

            new_state = behavior.on_complete(state, block).with_completed(block.id)
            advanced = (
                behavior.auto_advances
                and index == state.current_step_index
                and index < self.total_steps - 1
            )
            if advanced:
                new_state = self._at_index(new_state, index + 1)

            await self._commit(new_state)
            logger.info(
                f"User {self._learner_id} completed {block.block_type} block {block.id}"
                + (f", auto-advanced to step {index + 1}" if advanced else "")
            )
            return TransitionResult.ok(self._state)

    async def submit_quiz(self, block_id: str, answers: dict[str, str]) -> TransitionResult:
        """Store survey answers, derive the learner's role and complete the quiz."""
        async with self._lock:
            state = self._require_state()
            block = self._typed_block(block_id, BlockType.QUIZ_SURVEY.value)
            rejection = self._quiz_rejection(state, block)
            if rejection:
                return TransitionResult.rejected(state, rejection)

            role = derive_role(block.content, answers)
            if role is None:
                return TransitionResult.rejected(state, QUIZ_INCOMPLETE_MESSAGE)

            response = {
                "answers": answers,
                "is_submitted": True,
                "submitted_at": datetime.now(UTC).isoformat(),
                "dominantCategories": dominant_categories(block.content, answers),
            }
            try:
                await self._store.save_block_response(self._learner_id, self._lesson_id, block.id, response)
            except Exception as e:
                logger.exception(f"Failed to store quiz answers for block {block.id}")
                msg = "Could not save quiz answers"
                raise ProgressPersistenceError(msg) from e

            return await self._record_role(state, block, role)

    async def submit_role(self, block_id: str, role: str) -> TransitionResult:
        """Record a role derived outside the player and complete the quiz."""
        async with self._lock:
            state = self._require_state()
            block = self._typed_block(block_id, BlockType.QUIZ_SURVEY.value)
            rejection = self._quiz_rejection(state, block)
            if rejection:
                return TransitionResult.rejected(state, rejection)
            if not role.strip():
                return TransitionResult.rejected(state, gate_message(block))
            return await self._record_role(state, block, role.strip())

    async def _record_role(self, state: ProgressState, block: Block, role: str) -> TransitionResult:
        # The quiz completes itself but never auto-advances
        await self._commit(state.model_copy(update={"role": role}).with_completed(block.id))
        logger.info(f"User {self._learner_id} got role {role!r} in lesson {self._lesson_id}")
        return TransitionResult.ok(self._state)

    async def report_video_progress(self, block_id: str, percent: float) -> TransitionResult:
        """Record a watched-percentage report; only a new maximum is stored."""
        async with self._lock:
            state = self._require_state()
            block = self._typed_block(block_id, *VIDEO_TYPES)
            rejection = self._event_rejection(state, block)
            if rejection:
                return TransitionResult.rejected(state, rejection)

            percent = min(100.0, max(0.0, float(percent)))
            if percent <= state.video_progress.get(block.id, 0.0):
                return TransitionResult.ok(state)

            await self._commit(state.model_copy(update={"video_progress": {**state.video_progress, block.id: percent}}))
            return TransitionResult.ok(self._state)

    async def update_table_rows(self, block_id: str, rows: list[dict[str, Any]]) -> TransitionResult:
        """Replace the Point A rows while the table is still open for editing."""
        async with self._lock:
            state = self._require_state()
            block = self._typed_block(block_id, BlockType.DIAGNOSTIC_TABLE.value)
            rejection = self._event_rejection(state, block)
            if rejection:
                return TransitionResult.rejected(state, rejection)
            if state.table_completed:
                return TransitionResult.rejected(state, TABLE_LOCKED_MESSAGE)

            await self._commit(state.model_copy(update={"table_rows": [dict(row) for row in rows]}))
            return TransitionResult.ok(self._state)

    async def update_form_answers(self, block_id: str, answers: dict[str, str]) -> TransitionResult:
        """Merge Point B answers while the form is still open for editing."""
        async with self._lock:
            state = self._require_state()
            block = self._typed_block(block_id, BlockType.SEQUENTIAL_FORM.value)
            rejection = self._event_rejection(state, block)
            if rejection:
                return TransitionResult.rejected(state, rejection)
            if state.form_completed:
                return TransitionResult.rejected(state, FORM_LOCKED_MESSAGE)

            merged = {**state.form_answers, **{str(k): str(v) for k, v in answers.items()}}
            await self._commit(state.model_copy(update={"form_answers": merged}))
            return TransitionResult.ok(self._state)

    async def set_form_summary(self, block_id: str, summary: str) -> TransitionResult:
        """Store the generated Point B summary."""
        async with self._lock:
            state = self._require_state()
            block = self._typed_block(block_id, BlockType.SEQUENTIAL_FORM.value)
            rejection = self._event_rejection(state, block)
            if rejection:
                return TransitionResult.rejected(state, rejection)
            await self._commit(state.model_copy(update={"form_summary": summary}))
            return TransitionResult.ok(self._state)

    # -------------------------------------------------------------------------
    # Resets
    # -------------------------------------------------------------------------

    async def reset_block(self, block_id: str) -> TransitionResult:
        """Clear one block's recorded data without touching any other step."""
        async with self._lock:
            state = self._require_state()
            block = self._step_blocks[self.block_index(block_id)]
            reset = behavior_for(block).reset
            if reset is None:
                raise BlockNotResettableError(block.id, block.block_type)
            rejection = self._event_rejection(state, block)
            if rejection:
                return TransitionResult.rejected(state, rejection)

            cleared = reset.apply(state, block)

            if not reset.remote:
                await self._commit(self._at_index(cleared, cleared.current_step_index), error_cls=BlockResetError)
                logger.info(f"User {self._learner_id} reset {block.block_type} block {block.id}")
                return TransitionResult.ok(self._state)

            # Remote reset is authoritative: nothing local changes until it is confirmed
            scope = ResetScope(clear_response=True, state_patch=state.diff(cleared))
            try:
                await self._store.reset_block(self._learner_id, self._lesson_id, block.id, scope)
            except Exception as e:
                logger.exception(f"Remote reset failed for block {block.id}, lesson {self._lesson_id}")
                msg = f"Could not reset block {block.id}"
                raise BlockResetError(msg) from e

            logger.info(f"User {self._learner_id} reset {block.block_type} block {block.id}, reloading progress")
            return TransitionResult.ok(await self._reload())

    async def reset_all(self) -> TransitionResult:
        """Delete the learner's whole progress for this lesson."""
        async with self._lock:
            self._require_state()
            try:
                await self._store.reset_all(self._learner_id, self._lesson_id)
            except Exception as e:
                logger.exception(f"Failed to reset progress for user {self._learner_id}, lesson {self._lesson_id}")
                msg = "Could not reset lesson progress"
                raise BlockResetError(msg) from e

            self._persisted = ProgressState()
            self._state = self._resolve_position(self._persisted)
            logger.info(f"User {self._learner_id} reset all progress in lesson {self._lesson_id}")
            return TransitionResult.ok(self._state)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _require_state(self) -> ProgressState:
        if self._state is None:
            raise ProgressNotLoadedError
        return self._state

    def _event_rejection(self, state: ProgressState, block: Block) -> str | None:
        """Why a block event cannot be applied to ``block``, or None when it can.

        Steps after the current one are not shown to the learner yet.
        """
        if state.is_finished:
            return ALREADY_FINISHED_MESSAGE
        if self._index_by_id[block.id] > state.current_step_index:
            return LOCKED_STEP_MESSAGE
        return None

    def _quiz_rejection(self, state: ProgressState, block: Block) -> str | None:
        rejection = self._event_rejection(state, block)
        if rejection:
            return rejection
        # A new result needs the quiz reset, which also clears the stored answers
        if state.is_block_completed(block.id):
            return QUIZ_LOCKED_MESSAGE
        return None

    def _typed_block(self, block_id: str, *expected: str) -> Block:
        block = self._step_blocks[self.block_index(block_id)]
        if block.block_type not in expected:
            raise WrongBlockTypeError(block.id, block.block_type, expected)
        return block

    def _at_index(self, state: ProgressState, index: int) -> ProgressState:
        if not self._step_blocks:
            return state
        return state.model_copy(
            update={"current_step_index": index, "current_step_block_id": self._step_blocks[index].id}
        )

    async def _commit(
        self,
        new_state: ProgressState,
        error_cls: type[ProgressPersistenceError] = ProgressPersistenceError,
    ) -> None:
        """Write the difference to the store, then adopt ``new_state``.

        If the write fails the committed state is left as it was.
        """
        persisted = self._persisted or ProgressState()
        patch = persisted.diff(new_state)
        completed_at = new_state.completed_at if persisted.completed_at is None else None

        if patch or completed_at is not None:
            try:
                await self._store.merge(self._learner_id, self._lesson_id, patch, completed_at=completed_at)
            except Exception as e:
                logger.exception(f"Failed to save progress for user {self._learner_id}, lesson {self._lesson_id}")
                msg = "Could not save lesson progress"
                raise error_cls(msg) from e

        self._persisted = new_state
        self._state = new_state
