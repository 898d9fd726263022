from quest_player.exceptions import DomainError, ResourceNotFoundError, ValidationError


class QuestError(DomainError):
    """Base exception class for quest player errors."""


class ProgressNotLoadedError(QuestError):
    """Raised when a transition is attempted before progress was loaded."""

    def __init__(self) -> None:
        super().__init__("Lesson progress has not been loaded")


class ProgressPersistenceError(QuestError):
    """Raised when a progress write was not confirmed; the transition is not committed."""


class BlockResetError(ProgressPersistenceError):
    """Raised when a block reset was not confirmed; local data is left untouched."""


class StepBlockNotFoundError(ResourceNotFoundError):
    """Raised when a block id is not one of the lesson's step blocks."""

    def __init__(self, block_id: str) -> None:
        super().__init__("Step block", block_id)


class WrongBlockTypeError(ValidationError):
    """Raised when a block-specific action targets a block of another type."""

    def __init__(self, block_id: str, actual: str, expected: tuple[str, ...]) -> None:
        self.block_id = block_id
        self.actual = actual
        self.expected = expected
        super().__init__(f"Block {block_id} is a {actual} block, expected one of: {', '.join(expected)}")


class BlockNotResettableError(ValidationError):
    """Raised when a reset is requested for a block type that keeps no resettable data."""

    def __init__(self, block_id: str, block_type: str) -> None:
        self.block_id = block_id
        self.block_type = block_type
        super().__init__(f"Block {block_id} of type {block_type} cannot be reset")
