"""In-memory loader."""

from __future__ import annotations

import asyncio as _asyncio

import confstack.errors as errors


class BytesWatcher:
    """Signals each time the loader's bytes are replaced."""

    def __init__(self) -> None:
        self._changed = _asyncio.Event()
        self._closed = False

    def _notify(self) -> None:
        self._changed.set()

    async def watch(self) -> None:
        """
        Block until set() has been called since the previous watch.

        Raises:
            ClosedError: If the watcher is closed.
        """
        if self._closed:
            raise errors.ClosedError()
        await self._changed.wait()
        self._changed.clear()
        if self._closed:
            raise errors.ClosedError()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._changed.set()


class BytesLoader:
    """
    Loads configuration from bytes held in memory.

    The bytes may be replaced with set(), which wakes the loader's watcher.
    set() must be called from the thread running the event loop that is
    watching, if any.
    """

    def __init__(self, data: bytes | str = b"") -> None:
        self._data = _as_bytes(data)
        self._watcher: BytesWatcher | None = None

    def __repr__(self) -> str:
        return f"BytesLoader({len(self._data)} bytes)"

    def load(self) -> bytes:
        return self._data

    def set(self, data: bytes | str) -> None:
        """Replace the bytes returned by load()."""
        self._data = _as_bytes(data)
        if self._watcher is not None:
            self._watcher._notify()

    def watcher(self) -> BytesWatcher:
        if self._watcher is None:
            self._watcher = BytesWatcher()
        return self._watcher


def _as_bytes(data: bytes | str) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return data
