"""
The Getter contract and its watchable extension.

A Getter answers "what is the value for this key, if any":

    value, found = getter.get("db.postgres.host")

Every configuration source, decorator and composition implements it.
get() must be safe to call from multiple threads, must not block on I/O,
and should report nodes (subtrees) as not found - only leaves are values.
A list of objects is reported as a list of None placeholders, so ``name[]``
and ``name[i].field`` are the way to walk into it.

A WatchableGetter additionally exposes a GetterWatcher, which follows a
two-phase update protocol:

1. ``await watcher.watch()`` blocks until a change has been detected and
   staged. The staged snapshot is not yet visible to get().
2. ``watcher.commit_update()`` atomically makes the staged snapshot visible.

watch() and commit_update() on one watcher must be called from a single
sequential caller. Concurrent get() calls are safe at any point.
"""

from __future__ import annotations

import typing as _typing


@_typing.runtime_checkable
class Getter(_typing.Protocol):
    """Minimal interface for a configuration source."""

    def get(self, key: str) -> tuple[_typing.Any, bool]:
        """Return (value, True) if the leaf key is found, else (None, False)."""
        ...


@_typing.runtime_checkable
class GetterWatcher(_typing.Protocol):
    """Watches a getter for changes, with a stage then commit update protocol."""

    async def watch(self) -> None:
        """
        Block until a change has been staged.

        Raises:
            ClosedError: If the watcher is closed, before or during the watch.
            TemporaryError: If the watch failed but may be retried.
            Exception: Any other error terminates the watch.
        """
        ...

    def commit_update(self) -> None:
        """Make the change staged by the last watch() visible to get()."""
        ...

    def close(self) -> None:
        """Release the watcher and any child watchers. Idempotent."""
        ...


@_typing.runtime_checkable
class WatchableGetter(Getter, _typing.Protocol):
    """A Getter whose underlying configuration may change."""

    def watcher(self) -> GetterWatcher | None:
        """Return the watcher for the getter, or None if it is not watchable."""
        ...


Decorator: _typing.TypeAlias = _typing.Callable[[Getter], Getter]
"""Takes a Getter and returns a decorated Getter."""


class GetterFunc:
    """Adapts a plain function to the Getter interface."""

    __slots__ = ("_func",)

    def __init__(self, func: _typing.Callable[[str], tuple[_typing.Any, bool]]) -> None:
        self._func = func

    def get(self, key: str) -> tuple[_typing.Any, bool]:
        return self._func(key)


def watcher_of(getter: Getter | None) -> GetterWatcher | None:
    """Return the watcher of a getter, or None if the getter is not watchable."""
    if getter is None:
        return None
    watcher = getattr(getter, "watcher", None)
    if not callable(watcher):
        return None
    return _typing.cast("GetterWatcher | None", watcher())


def decorate(getter: Getter, *decorators: Decorator | None) -> Getter:
    """
    Apply an ordered list of decorators to a getter.

    The first decorator in the list is the outermost, so it is the first
    to see the key on get(). Decorators are applied in reverse order to
    achieve this. None entries are ignored.

    Example:
        >>> g = decorate(source, with_alias(alias), with_prefix("app."))
        >>> # get("x") -> alias sees "x", then prefix turns it into "app.x"
    """
    for decorator in reversed(decorators):
        if decorator is not None:
            getter = decorator(getter)
    return getter
