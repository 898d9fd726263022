"""Request and response models for the quest player API."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class StepMode(str, Enum):
    """How a rendered step may be used."""

    INTERACTIVE = "interactive"
    READ_ONLY = "read_only"


class IndicatorStatus(str, Enum):
    """Status of a step in the step indicator strip."""

    COMPLETED = "completed"
    CURRENT = "current"
    ACCESSIBLE = "accessible"
    LOCKED = "locked"


# === View models ===


class StepView(BaseModel):
    """A rendered step block together with the data recorded for it."""

    index: int
    block_id: str
    block_type: str
    content: dict[str, Any]
    mode: StepMode
    completed: bool
    gate_open: bool
    gate_message: str | None = None
    label: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class StepIndicator(BaseModel):
    """One entry of the step indicator strip."""

    index: int
    block_id: str
    block_type: str
    label: str | None = None
    status: IndicatorStatus
    can_jump: bool


class QuestView(BaseModel):
    """Everything a client needs to render a quest lesson."""

    lesson_id: UUID
    total_steps: int
    current_step_index: int
    current_block_id: str | None = None
    progress_percent: float
    is_last_step: bool
    is_finished: bool
    completed_at: datetime | None = None
    can_go_back: bool
    can_go_next: bool
    can_finish: bool
    steps: list[StepView]
    indicators: list[StepIndicator]


class TransitionResponse(BaseModel):
    """Outcome of a learner action plus the refreshed view.

    Closed gates are reported here with ``accepted`` False, never as errors.
    """

    accepted: bool
    message: str | None = None
    lesson_completed: bool = False
    view: QuestView


# === Request bodies ===


class GoToStepRequest(BaseModel):
    """Jump to a step by index."""

    index: int = Field(..., ge=0)


class QuizSubmission(BaseModel):
    """Survey answers: question id -> chosen option id."""

    answers: dict[str, str]


class RoleSubmission(BaseModel):
    """An already-derived role."""

    role: str = Field(..., min_length=1, max_length=200)


class VideoProgressReport(BaseModel):
    """Watched percentage reported by the video player."""

    model_config = ConfigDict(populate_by_name=True)

    percent: float = Field(..., ge=0, le=100, alias="watched_percent")


class TableRowsUpdate(BaseModel):
    """Full replacement of the diagnostic table rows."""

    rows: list[dict[str, Any]]


class FormAnswersUpdate(BaseModel):
    """Partial sequential-form answers: step id -> answer."""

    answers: dict[str, str]


class FormSummaryUpdate(BaseModel):
    """Generated sequential-form summary."""

    summary: str
