import asyncio
import logging
from typing import Awaitable

from event_campus.utils.email import EmailSender




logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Fire-and-forget delivery of notification coroutines.

    Callers hand over an already created ``sender.send_*`` coroutine once
    their transaction has committed; the result and any exception are only
    logged.
    """

    def __init__(self, sender=None):
        self.sender = sender or EmailSender()
        self._tasks: set[asyncio.Task] = set()

    def set_sender(self, sender):
        self.sender = sender

    async def _run(self, notification: Awaitable[bool], label: str) -> bool:
        try:
            delivered = await notification
        except Exception:
            logger.exception("Notification '%s' failed", label)
            return False
        if not delivered:
            logger.warning("Notification '%s' was not delivered", label)
        return bool(delivered)

    def dispatch(self, notification: Awaitable[bool], label: str) -> asyncio.Task:
        task = asyncio.create_task(self._run(notification, label))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self):
        """Wait until every dispatched notification has finished"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


notifier = NotificationDispatcher()
