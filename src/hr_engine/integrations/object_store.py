"""Object store for selfies, leave attachments and receipts."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from hr_engine.errors import ExternalUnavailable

logger = logging.getLogger(__name__)


@runtime_checkable
class ObjectStore(Protocol):
    """put(bytes, folder, key) -> url; get(url) -> bytes."""

    async def put(self, data: bytes, folder: str, key: str) -> str:
        ...

    async def get(self, url: str) -> bytes:
        ...


class InMemoryObjectStore:
    """Process-local store; used in development and tests."""

    def __init__(self) -> None:
        self._objects: dict[str, bytes] = {}

    async def put(self, data: bytes, folder: str, key: str) -> str:
        url = f"memory://{folder}/{key}"
        self._objects[url] = bytes(data)
        return url

    async def get(self, url: str) -> bytes:
        try:
            return self._objects[url]
        except KeyError:
            raise FileNotFoundError(url) from None

    def __contains__(self, url: object) -> bool:
        return url in self._objects

    def __len__(self) -> int:
        return len(self._objects)


class LocalObjectStore:
    """Filesystem-backed store rooted at a directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path(self, folder: str, key: str) -> Path:
        path = (self.root / folder / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Key escapes store root: {folder}/{key}")
        return path

    async def put(self, data: bytes, folder: str, key: str) -> str:
        path = self._path(folder, key)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await asyncio.to_thread(_write)
        return path.as_uri()

    async def get(self, url: str) -> bytes:
        prefix = "file://"
        path = Path(url[len(prefix):] if url.startswith(prefix) else url)
        return await asyncio.to_thread(path.read_bytes)


async def upload_with_deadline(
    store: ObjectStore,
    data: bytes,
    folder: str,
    key: str,
    timeout: float,
) -> str:
    """Upload with a finite deadline; any failure becomes ExternalUnavailable."""
    try:
        return await asyncio.wait_for(store.put(data, folder, key), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Object store upload timed out after %.1fs: %s/%s", timeout, folder, key)
        raise ExternalUnavailable(f"Upload to {folder} timed out") from None
    except OSError as exc:
        logger.exception("Object store upload failed: %s/%s", folder, key)
        raise ExternalUnavailable(f"Upload to {folder} failed: {exc}") from exc
