"""Database models for quest progress."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Column, DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID

from quest_player.database.base import Base


class LessonProgressState(Base):
    """Progress document of one learner in one quest lesson."""

    __tablename__ = "lesson_progress_state"
    __table_args__ = (UniqueConstraint("user_id", "lesson_id", name="uq_lesson_progress_state_user_lesson"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    lesson_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    state_json = Column(JSONB, nullable=False, default=dict)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )

    def __repr__(self) -> str:
        """Return string representation of the progress state."""
        return f"<LessonProgressState(user_id={self.user_id}, lesson_id={self.lesson_id})>"


class UserLessonProgress(Base):
    """Raw per-block answer record (quiz submissions and the like)."""

    __tablename__ = "user_lesson_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", "block_id", name="uq_user_lesson_progress_user_lesson_block"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    lesson_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    block_id = Column(String, nullable=False)
    response = Column(JSONB, nullable=False, default=dict)
    score = Column(Float, nullable=True)
    max_score = Column(Float, nullable=True)
    attempts = Column(Integer, nullable=False, default=1)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )
