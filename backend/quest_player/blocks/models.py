"""Lesson block table, owned by the authoring side and only read by the player."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID

from quest_player.database.base import Base


class LessonBlock(Base):
    """One authored content block of a lesson."""

    __tablename__ = "lesson_blocks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lesson_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    block_type = Column(String(50), nullable=False)
    content = Column(JSON, nullable=False, default=dict)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )

    def __repr__(self) -> str:
        """Return string representation of the block."""
        return f"<LessonBlock(id={self.id}, lesson_id={self.lesson_id}, type={self.block_type})>"
