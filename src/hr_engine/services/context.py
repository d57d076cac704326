"""Collaborators shared by the services."""

from __future__ import annotations

from dataclasses import dataclass, field

from hr_engine.clock import Clock, SystemClock
from hr_engine.config import Settings, get_settings
from hr_engine.integrations.notifications import NotificationEmitter, log_sink
from hr_engine.integrations.object_store import LocalObjectStore, ObjectStore
from hr_engine.services.holiday_service import HolidayCache


@dataclass
class ServiceContext:
    """Everything a service needs besides its database session."""

    settings: Settings
    clock: Clock
    object_store: ObjectStore
    notifier: NotificationEmitter
    holidays: HolidayCache = field(default_factory=HolidayCache)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ServiceContext:
        settings = settings or get_settings()
        notifier = NotificationEmitter()
        notifier.register(log_sink)
        return cls(
            settings=settings,
            clock=SystemClock(settings.timezone),
            object_store=LocalObjectStore(settings.object_store_root),
            notifier=notifier,
        )
