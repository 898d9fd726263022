from collections.abc import Iterable
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BlockType(str, Enum):
    """Block type tags the quest player knows about.

    The catalog may contain other tags; those are treated as pass-through steps.
    """

    # Gated, stateful steps
    QUIZ_SURVEY = "quiz_survey"
    ROLE_DESCRIPTION = "role_description"
    VIDEO_UNSKIPPABLE = "video_unskippable"
    VIDEO = "video"
    DIAGNOSTIC_TABLE = "diagnostic_table"
    SEQUENTIAL_FORM = "sequential_form"

    # Pass-through steps
    TEXT = "text"
    CALLOUT = "callout"
    ACCORDION = "accordion"
    TABS = "tabs"
    STEPS = "steps"
    TIMELINE = "timeline"

    # Decorative
    HEADING = "heading"
    DIVIDER = "divider"
    IMAGE = "image"


DECORATIVE_BLOCK_TYPES: frozenset[str] = frozenset(
    {BlockType.HEADING.value, BlockType.DIVIDER.value, BlockType.IMAGE.value}
)


class Block(BaseModel):
    """An authored content block as supplied by the catalog."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    block_type: str
    content: dict[str, Any] = Field(default_factory=dict)
    sort_order: int = 0

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        """Accept UUIDs from the database and keep ids as strings."""
        return str(v)

    @field_validator("content", mode="before")
    @classmethod
    def default_content(cls, v: Any) -> dict[str, Any]:
        """Treat a missing payload as empty."""
        return v or {}

    @property
    def is_step(self) -> bool:
        """Whether the block counts toward lesson progress."""
        return self.block_type not in DECORATIVE_BLOCK_TYPES


def select_step_blocks(blocks: Iterable[Block]) -> list[Block]:
    """Return the step blocks of a lesson in lesson order."""
    ordered = sorted(blocks, key=lambda b: b.sort_order)
    return [block for block in ordered if block.is_step]
