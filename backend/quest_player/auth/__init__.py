from .dependencies import LEARNER_ID_HEADER, LearnerId, get_learner_id
from .exceptions import AuthenticationError


__all__ = ["LEARNER_ID_HEADER", "AuthenticationError", "LearnerId", "get_learner_id"]
