"""Notification emitter.

Notifications are fire-and-forget: they are queued while a transaction is open
and dispatched only after it commits. A failing sink is logged and never
affects other sinks or the already-committed state change.

Usage:
    emitter = NotificationEmitter()
    emitter.register(push_to_inbox)

    async with emitter.outbox() as outbox:
        ...
        outbox.add(Notification(...))
        await session.commit()
    # queued notifications dispatched here, only if the block did not raise
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncGenerator, Awaitable, Callable, Union
from uuid import UUID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """Message for one employee about one record."""

    employee_id: UUID
    type: str
    title: str
    message: str
    reference_type: str | None = None
    reference_id: UUID | None = None


NotificationSink = Callable[[Notification], Union[None, Awaitable[None]]]


@dataclass
class Outbox:
    """Notifications held until the surrounding transaction commits."""

    pending: list[Notification] = field(default_factory=list)

    def add(self, notification: Notification) -> None:
        self.pending.append(notification)

    def extend(self, notifications: list[Notification]) -> None:
        self.pending.extend(notifications)


class NotificationEmitter:
    """Dispatches notifications to registered sinks with error isolation."""

    def __init__(self) -> None:
        self._sinks: list[NotificationSink] = []

    def register(self, sink: NotificationSink) -> None:
        self._sinks.append(sink)

    def unregister(self, sink: NotificationSink) -> None:
        self._sinks = [s for s in self._sinks if s is not sink]

    async def emit(self, notification: Notification) -> list[Exception]:
        """Send to every sink; returns the exceptions raised by failing sinks."""
        errors: list[Exception] = []
        for sink in self._sinks:
            try:
                result = sink(notification)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.exception(
                    "Notification sink %s failed for %s to employee %s",
                    sink,
                    notification.type,
                    notification.employee_id,
                )
                errors.append(e)
        return errors

    async def emit_all(self, notifications: list[Notification]) -> list[Exception]:
        errors: list[Exception] = []
        for notification in notifications:
            errors.extend(await self.emit(notification))
        return errors

    @asynccontextmanager
    async def outbox(self) -> AsyncGenerator[Outbox, None]:
        """Collect notifications; dispatch them only if the block completes."""
        box = Outbox()
        yield box
        await self.emit_all(box.pending)


def log_sink(notification: Notification) -> None:
    """Default sink: write the notification to the application log."""
    logger.info(
        "notify employee=%s type=%s title=%s ref=%s:%s",
        notification.employee_id,
        notification.type,
        notification.title,
        notification.reference_type,
        notification.reference_id,
    )
