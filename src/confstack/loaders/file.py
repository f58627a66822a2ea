"""
File loader.

The file is re-read on each load(). When created with ``watch=True`` the
loader also provides a watcher that polls the file's stat signature
(modification time, size and inode) and signals when it changes.
"""

from __future__ import annotations

import asyncio as _asyncio
import logging as _logging
import os as _os
import pathlib as _pathlib
import typing as _typing

import confstack.constants as constants
import confstack.errors as errors

_logger = _logging.getLogger(__name__)

_Signature: _typing.TypeAlias = "tuple[int, int, int] | None"


def _signature(path: _pathlib.Path) -> _Signature:
    try:
        st = path.stat()
    except OSError:
        return None
    return (st.st_mtime_ns, st.st_size, st.st_ino)


class FileWatcher:
    """Polls a file for changes."""

    def __init__(self, path: _pathlib.Path, poll_interval: float) -> None:
        self._path = path
        self._poll_interval = poll_interval
        self._signature = _signature(path)
        self._closed = _asyncio.Event()

    @property
    def path(self) -> _pathlib.Path:
        return self._path

    async def watch(self) -> None:
        """
        Block until the file has changed since the previous watch.

        A file that is removed counts as a change, as does one that
        reappears, so the reload reports the failure or the new content.

        Raises:
            ClosedError: If the watcher is closed.
        """
        while True:
            if self._closed.is_set():
                raise errors.ClosedError()
            try:
                async with _asyncio.timeout(self._poll_interval):
                    await self._closed.wait()
            except TimeoutError:
                pass
            if self._closed.is_set():
                raise errors.ClosedError()
            signature = _signature(self._path)
            if signature != self._signature:
                _logger.debug("Detected change to %s", self._path)
                self._signature = signature
                return

    def close(self) -> None:
        self._closed.set()


class FileLoader:
    """
    Loads configuration from a file.

    Args:
        path: Path to the file.
        watch: Provide a watcher that polls the file for changes.
        poll_interval: Seconds between polls of the file.
    """

    def __init__(
        self,
        path: str | _os.PathLike[str],
        *,
        watch: bool = False,
        poll_interval: float = constants.DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._path = _pathlib.Path(path)
        self._watch = watch
        self._poll_interval = poll_interval
        self._watcher: FileWatcher | None = None

    @property
    def path(self) -> _pathlib.Path:
        return self._path

    def __repr__(self) -> str:
        return f"FileLoader({str(self._path)!r})"

    def load(self) -> bytes:
        """
        Read the file.

        Raises:
            LoadError: If the file cannot be read.
        """
        try:
            return self._path.read_bytes()
        except PermissionError as e:
            raise errors.LoadError(str(self._path), f"permission denied: {e}") from e
        except OSError as e:
            raise errors.LoadError(str(self._path), f"cannot read file: {e}") from e

    def watcher(self) -> FileWatcher | None:
        """Return the watcher for the file, or None if the loader is not watching."""
        if not self._watch:
            return None
        if self._watcher is None:
            self._watcher = FileWatcher(self._path, self._poll_interval)
        return self._watcher
