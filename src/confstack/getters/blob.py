"""
Getter over a blob of configuration in a known format.

A BlobGetter combines a Loader, which retrieves the raw blob, and a
Decoder, which converts the blob into a nested mapping:

    g = BlobGetter(FileLoader("app.yaml", watch=True), YamlDecoder())

The decoded mapping is the getter's snapshot. It is only ever replaced,
never modified, so get() always sees one complete snapshot.

If the loader is watchable then so is the getter. Its watcher reloads the
blob each time the loader signals a change, and stages the result for
commit unless it decodes to the same configuration as the current
snapshot.
"""

from __future__ import annotations

import logging as _logging
import typing as _typing

import confstack.constants as constants
import confstack.errors as errors
import confstack.tree as tree

_logger = _logging.getLogger(__name__)


@_typing.runtime_checkable
class Loader(_typing.Protocol):
    """Retrieves raw configuration from some source."""

    def load(self) -> bytes: ...


@_typing.runtime_checkable
class LoaderWatcher(_typing.Protocol):
    """Signals changes to a loader's underlying source."""

    async def watch(self) -> None:
        """
        Block until the source has changed since creation or the previous watch.

        Raises:
            ClosedError: If the watcher is closed.
            TemporaryError: If the watch failed but may be retried.
        """
        ...

    def close(self) -> None: ...


@_typing.runtime_checkable
class WatchableLoader(Loader, _typing.Protocol):
    """A Loader that can be watched for changes."""

    def watcher(self) -> LoaderWatcher | None: ...


@_typing.runtime_checkable
class Decoder(_typing.Protocol):
    """Converts a raw blob into a nested mapping."""

    def decode(self, data: bytes) -> dict[str, _typing.Any]: ...


def _load(loader: Loader, decoder: Decoder) -> dict[str, _typing.Any]:
    return decoder.decode(loader.load())


class BlobWatcher:
    """Watches a BlobGetter's loader, staging changed snapshots."""

    def __init__(self, blob: BlobGetter, watcher: LoaderWatcher) -> None:
        self._blob = blob
        self._watcher = watcher
        self._update: dict[str, _typing.Any] | None = None

    def __repr__(self) -> str:
        return f"BlobWatcher({self._blob!r})"

    async def watch(self) -> None:
        """
        Block until the loader reports a change that alters the configuration.

        Raises:
            TemporaryError: If the changed blob could not be loaded or decoded.
            ClosedError: If the watcher is closed.
        """
        while True:
            await self._watcher.watch()
            try:
                update = _load(self._blob.loader, self._blob.decoder)
            except Exception as e:
                raise errors.TemporaryError(e) from e
            if update == self._blob.snapshot:
                _logger.debug("Ignoring reload of %r with no change", self._blob)
                continue
            self._update = update
            return

    def commit_update(self) -> None:
        """Make the snapshot staged by the last watch() visible to get()."""
        if self._update is None:
            return
        self._blob._snapshot = self._update
        self._update = None

    def close(self) -> None:
        """
        Stop watching the loader.

        The getter remains readable, but will no longer be updated.
        """
        self._watcher.close()


class BlobGetter:
    """
    Provides configuration decoded from a blob.

    The blob is loaded and decoded at construction, and errors doing so are
    raised from the constructor.

    Args:
        loader: Retrieves the blob.
        decoder: Decodes the blob into a nested mapping.
        separator: Separator between tiers in keys.
    """

    def __init__(
        self,
        loader: Loader,
        decoder: Decoder,
        *,
        separator: str = constants.DEFAULT_SEPARATOR,
    ) -> None:
        self._loader = loader
        self._decoder = decoder
        self._separator = separator
        self._watcher: BlobWatcher | None = None
        loader_watcher = None
        watcher = getattr(loader, "watcher", None)
        if callable(watcher):
            # created before the initial load so no change is missed
            loader_watcher = watcher()
        try:
            self._snapshot: dict[str, _typing.Any] = _load(loader, decoder)
        except Exception:
            if loader_watcher is not None:
                loader_watcher.close()
            raise
        if loader_watcher is not None:
            self._watcher = BlobWatcher(self, loader_watcher)

    def __repr__(self) -> str:
        return f"BlobGetter({self._loader!r})"

    @property
    def loader(self) -> Loader:
        return self._loader

    @property
    def decoder(self) -> Decoder:
        return self._decoder

    @property
    def snapshot(self) -> dict[str, _typing.Any]:
        """The currently committed configuration."""
        return self._snapshot

    def get(self, key: str) -> tuple[_typing.Any, bool]:
        return tree.get(self._snapshot, key, self._separator)

    def watcher(self) -> BlobWatcher | None:
        """Return the watcher for the getter, or None if the loader is not watchable."""
        return self._watcher

    def close(self) -> None:
        """Stop watching the loader, if it is being watched."""
        if self._watcher is not None:
            self._watcher.close()
