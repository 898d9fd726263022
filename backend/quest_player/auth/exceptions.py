"""Authentication-specific exceptions."""

from fastapi import HTTPException, status


class AuthenticationError(HTTPException):
    """Base authentication error."""

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class MissingLearnerIdError(AuthenticationError):
    """No learner id was sent in multi-user mode."""

    def __init__(self) -> None:
        super().__init__(detail="Missing X-User-Id header")


class InvalidLearnerIdError(AuthenticationError):
    """The learner id header is not a UUID."""

    def __init__(self) -> None:
        super().__init__(detail="X-User-Id header must be a UUID")


class UnknownAuthProviderError(HTTPException):
    """Auth provider setting is not one of the supported values."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Authentication provider '{provider}' is not supported",
        )
