import asyncio
from contextlib import asynccontextmanager




class EventLockRegistry:
    """Per-event asyncio locks.

    Counter and registration-status mutations for one event run under the
    event's lock; different events never wait on each other. A lock is
    dropped from the registry once nobody holds or waits for it.
    """

    def __init__(self):
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, event_id: int):
        lock = self._locks.get(event_id)
        if lock is None:
            lock = self._locks[event_id] = asyncio.Lock()
        self._users[event_id] = self._users.get(event_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[event_id] -= 1
            if self._users[event_id] == 0:
                del self._users[event_id]
                del self._locks[event_id]


event_locks = EventLockRegistry()
