"""Per-(learner, lesson) transition locks.

Controllers are short-lived (one per request), so the lock that serializes a
lesson session's transitions has to outlive them.
"""

import asyncio
from uuid import UUID
from weakref import WeakValueDictionary


class SessionLocks:
    """Hands out one ``asyncio.Lock`` per learner and lesson while it is in use."""

    def __init__(self) -> None:
        self._locks: WeakValueDictionary[tuple[UUID, UUID], asyncio.Lock] = WeakValueDictionary()

    def get(self, learner_id: UUID, lesson_id: UUID) -> asyncio.Lock:
        """Return the lock for a lesson session, creating it if nobody holds one."""
        key = (learner_id, lesson_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock


session_locks = SessionLocks()
