"""FastAPI dependencies resolving the learner of a request.

Single-user mode (``AUTH_PROVIDER=none``) always yields ``DEFAULT_USER_ID``.
In ``header`` mode an upstream gateway authenticates the learner and forwards
their id in the ``X-User-Id`` header.
"""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header

from quest_player.config import DEFAULT_USER_ID, get_settings

from .exceptions import InvalidLearnerIdError, MissingLearnerIdError, UnknownAuthProviderError


logger = logging.getLogger(__name__)

LEARNER_ID_HEADER = "X-User-Id"


async def get_learner_id(x_user_id: Annotated[str | None, Header()] = None) -> UUID:
    """Resolve the learner id for the current request."""
    settings = get_settings()

    if settings.AUTH_PROVIDER == "none":
        if settings.ENVIRONMENT == "production":
            logger.error("AUTH_PROVIDER='none' is not allowed in production!")
            msg = "Single-user mode (AUTH_PROVIDER='none') is not allowed in production"
            raise ValueError(msg)
        return DEFAULT_USER_ID

    if settings.AUTH_PROVIDER == "header":
        if not x_user_id:
            logger.warning(f"Request without {LEARNER_ID_HEADER} header in multi-user mode")
            raise MissingLearnerIdError
        try:
            return UUID(x_user_id)
        except ValueError:
            raise InvalidLearnerIdError from None

    logger.error(f"Unknown auth provider: {settings.AUTH_PROVIDER}")
    raise UnknownAuthProviderError(settings.AUTH_PROVIDER)


# Usage: async def my_route(learner_id: LearnerId) -> Response:
LearnerId = Annotated[UUID, Depends(get_learner_id)]
