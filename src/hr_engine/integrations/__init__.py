"""Adapters for external collaborators: object store and notification sink."""

from hr_engine.integrations.notifications import Notification, NotificationEmitter
from hr_engine.integrations.object_store import (
    InMemoryObjectStore,
    LocalObjectStore,
    ObjectStore,
    upload_with_deadline,
)

__all__ = [
    "InMemoryObjectStore",
    "LocalObjectStore",
    "Notification",
    "NotificationEmitter",
    "ObjectStore",
    "upload_with_deadline",
]
