"""Progress state of one learner in one quest lesson."""

from datetime import datetime
from enum import Enum
from typing import Any, Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProgressStatus(str, Enum):
    """Coarse lesson status derived from a progress document."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ProgressState(BaseModel):
    """Per-(learner, lesson) progress document.

    Field aliases are the keys of the persisted ``state_json`` document. Each
    auxiliary concern is a separate top-level key so a partial merge of one
    concern never overwrites another.
    """

    model_config = ConfigDict(populate_by_name=True)

    # Out-of-range values are repaired when a lesson is resumed
    current_step_index: int = Field(0, alias="currentStepIndex")
    current_step_block_id: str | None = Field(None, alias="currentStepBlockId")
    completed_block_ids: list[str] = Field(default_factory=list, alias="completedBlocks")

    # Role selection quiz
    role: str | None = None

    # Video progress, max percent watched per block
    video_progress: dict[str, float] = Field(default_factory=dict, alias="videoProgress")

    # Diagnostic table ("Point A")
    table_rows: list[dict[str, Any]] = Field(default_factory=list, alias="pointA_rows")
    table_completed: bool = Field(False, alias="pointA_completed")

    # Sequential form ("Point B")
    form_answers: dict[str, str] = Field(default_factory=dict, alias="pointB_answers")
    form_completed: bool = Field(False, alias="pointB_completed")
    form_summary: str | None = Field(None, alias="pointB_summary")

    # Stored in its own column, never inside the document
    completed_at: datetime | None = Field(None, exclude=True)

    @field_validator("form_answers", mode="before")
    @classmethod
    def stringify_answers(cls, v: Any) -> dict[str, str]:
        """Numeric form inputs are stored as text."""
        if not v:
            return {}
        return {str(key): "" if value is None else str(value) for key, value in v.items()}

    @field_validator("completed_block_ids", mode="before")
    @classmethod
    def dedupe_completed(cls, v: Any) -> list[str]:
        """Keep first-completion order, drop duplicates."""
        if not v:
            return []
        return list(dict.fromkeys(str(block_id) for block_id in v))

    @property
    def is_finished(self) -> bool:
        """Whether the learner finished the lesson."""
        return self.completed_at is not None

    def is_block_completed(self, block_id: str) -> bool:
        """Check whether a block has been marked completed."""
        return block_id in self.completed_block_ids

    def with_completed(self, block_id: str) -> Self:
        """Return a copy with ``block_id`` marked completed."""
        if self.is_block_completed(block_id):
            return self
        return self.model_copy(update={"completed_block_ids": [*self.completed_block_ids, block_id]})

    def without_completed(self, block_id: str) -> Self:
        """Return a copy with ``block_id`` removed from the completed set."""
        return self.model_copy(
            update={"completed_block_ids": [bid for bid in self.completed_block_ids if bid != block_id]}
        )

    def to_document(self) -> dict[str, Any]:
        """Serialize to the persisted ``state_json`` shape."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_document(cls, document: dict[str, Any] | None, completed_at: datetime | None = None) -> Self:
        """Build state from a persisted document, tolerating missing keys."""
        return cls.model_validate({**(document or {}), "completed_at": completed_at})

    def diff(self, other: "ProgressState") -> dict[str, Any]:
        """Top-level document keys whose values differ in ``other``."""
        mine = self.to_document()
        theirs = other.to_document()
        return {key: value for key, value in theirs.items() if mine.get(key) != value}


class ResetScope(BaseModel):
    """What an authoritative remote block reset clears.

    ``clear_response`` deletes the raw answer record of the block;
    ``state_patch`` is merged into the progress document in the same transaction.
    """

    clear_response: bool = True
    state_patch: dict[str, Any] = Field(default_factory=dict)


class LessonStateRecord(BaseModel):
    """A stored progress document, as listed for the admin overview."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    lesson_id: UUID
    state: ProgressState
    completed_at: datetime | None = None
    updated_at: datetime | None = None


class LearnerProgressRow(BaseModel):
    """One learner's row in the admin overview of a quest lesson."""

    user_id: UUID
    status: ProgressStatus = ProgressStatus.NOT_STARTED
    role: str | None = None
    point_a_completed: bool = False
    point_b_completed: bool = False
    completed_steps: int = 0
    completed_at: datetime | None = None
    updated_at: datetime | None = None


class LessonProgressOverview(BaseModel):
    """Admin overview of every learner's progress in a quest lesson."""

    lesson_id: UUID
    student_count: int
    completed_count: int
    point_a_count: int
    point_b_count: int
    learners: list[LearnerProgressRow]
