"""
Getter decorators.

Each with_*() function returns a Decorator - a function that wraps a Getter
in another Getter - for use with getter.decorate():

    g = decorate(source, with_trace(log), with_prefix("app."))

Decorators only transform keys or values on the get() path. If the wrapped
getter is watchable then so is the decorated getter, and its watcher is the
wrapped getter's watcher, passed through unchanged. The exception is
with_update_handler(), which exists to intercept the update stream.

Aliasing decorators live in confstack.alias.
"""

from __future__ import annotations

import inspect as _inspect
import logging as _logging
import threading as _threading
import typing as _typing

import confstack.errors as errors
import confstack.getter as getter
import confstack.keys as keys
import confstack.overlay as overlay

_logger = _logging.getLogger(__name__)

TraceFunc: _typing.TypeAlias = _typing.Callable[[str, _typing.Any, bool], None]
"""Receives the key, value and found flag of every get."""

UpdateHandler: _typing.TypeAlias = _typing.Callable[
    [getter.GetterWatcher], "bool | _typing.Awaitable[bool]"
]
"""
Called, possibly as a coroutine, each time the wrapped watcher stages an update.

Return True to pass the update on to the caller, or False to drop it. A
dropped update is never committed unless the handler commits it itself.
"""


class Decorated:
    """
    Base class for getters that wrap another getter.

    Forwards watchability to the wrapped getter.
    """

    __slots__ = ("_getter",)

    def __init__(self, wrapped: getter.Getter) -> None:
        self._getter = wrapped

    @property
    def wrapped(self) -> getter.Getter:
        return self._getter

    def get(self, key: str) -> tuple[_typing.Any, bool]:
        return self._getter.get(key)

    def watcher(self) -> getter.GetterWatcher | None:
        return getter.watcher_of(self._getter)


class KeyReplacer(Decorated):
    """Applies a replacer to the key before passing it to the wrapped getter."""

    __slots__ = ("_replacer",)

    def __init__(self, wrapped: getter.Getter, replacer: keys.Replacer) -> None:
        super().__init__(wrapped)
        self._replacer = replacer

    def get(self, key: str) -> tuple[_typing.Any, bool]:
        return self._getter.get(self._replacer(key))


class Prefix(Decorated):
    """
    Prepends a prefix to the key before passing it to the wrapped getter.

    Used to root a view at a node of a larger tree: with prefix ``"db."``,
    ``get("host")`` reads ``"db.host"`` from the wrapped getter.
    """

    __slots__ = ("_prefix",)

    def __init__(self, wrapped: getter.Getter, prefix: str) -> None:
        super().__init__(wrapped)
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    def get(self, key: str) -> tuple[_typing.Any, bool]:
        return self._getter.get(self._prefix + key)


class Graft(Decorated):
    """
    Strips a required prefix from the key before passing it to the wrapped getter.

    Relocates a getter that only knows about a subtree into a larger tree:
    with prefix ``"db."``, ``get("db.host")`` reads ``"host"`` from the
    wrapped getter, and keys outside ``db.`` are not found.
    """

    __slots__ = ("_prefix",)

    def __init__(self, wrapped: getter.Getter, prefix: str) -> None:
        super().__init__(wrapped)
        self._prefix = prefix

    def get(self, key: str) -> tuple[_typing.Any, bool]:
        if not key.startswith(self._prefix):
            return None, False
        return self._getter.get(key[len(self._prefix) :])


class MustGet(Decorated):
    """Raises NotFoundError, rather than reporting a miss, for any key not found."""

    __slots__ = ()

    def get(self, key: str) -> tuple[_typing.Any, bool]:
        v, ok = self._getter.get(key)
        if not ok:
            raise errors.NotFoundError(key)
        return v, ok


class Trace(Decorated):
    """Calls a trace function with the result of every get."""

    __slots__ = ("_trace",)

    def __init__(self, wrapped: getter.Getter, trace: TraceFunc) -> None:
        super().__init__(wrapped)
        self._trace = trace

    def get(self, key: str) -> tuple[_typing.Any, bool]:
        v, ok = self._getter.get(key)
        self._trace(key, v, ok)
        return v, ok


class HandledWatcher:
    """Wraps a watcher, passing each staged update through an UpdateHandler."""

    def __init__(self, wrapped: getter.GetterWatcher, handler: UpdateHandler) -> None:
        self._watcher = wrapped
        self._handler = handler

    async def watch(self) -> None:
        while True:
            await self._watcher.watch()
            forward = self._handler(self._watcher)
            if _inspect.isawaitable(forward):
                forward = await forward
            if forward:
                return
            _logger.debug("Update dropped by handler %r", self._handler)

    def commit_update(self) -> None:
        self._watcher.commit_update()

    def close(self) -> None:
        self._watcher.close()


class UpdateHandled(Decorated):
    """Intercepts the watcher update stream of the wrapped getter."""

    __slots__ = ("_handler", "_watcher", "_lock")

    def __init__(self, wrapped: getter.Getter, handler: UpdateHandler) -> None:
        super().__init__(wrapped)
        self._handler = handler
        self._watcher: HandledWatcher | None = None
        self._lock = _threading.Lock()

    def watcher(self) -> getter.GetterWatcher | None:
        with self._lock:
            if self._watcher is None:
                inner = getter.watcher_of(self._getter)
                if inner is None:
                    return None
                self._watcher = HandledWatcher(inner, self._handler)
            return self._watcher


def with_key_replacer(replacer: keys.Replacer) -> getter.Decorator:
    """Decorator that maps keys from config space to the getter's space."""
    return lambda g: KeyReplacer(g, replacer)


def with_prefix(prefix: str) -> getter.Decorator:
    """Decorator that prepends prefix to every key."""
    return lambda g: Prefix(g, prefix)


def with_graft(prefix: str) -> getter.Decorator:
    """Decorator that grafts the getter's tree onto the node at prefix."""
    return lambda g: Graft(g, prefix)


def with_default(default: getter.Getter) -> getter.Decorator:
    """Decorator that falls back to default for keys the wrapped getter misses."""
    return lambda g: overlay.overlay(g, default)


def with_must_get() -> getter.Decorator:
    """Decorator that raises NotFoundError on a miss."""
    return MustGet


def with_trace(trace: TraceFunc) -> getter.Decorator:
    """Decorator that reports every get to trace, without altering the result."""
    return lambda g: Trace(g, trace)


def with_update_handler(handler: UpdateHandler) -> getter.Decorator:
    """Decorator that filters or transforms updates before they reach the caller."""
    return lambda g: UpdateHandled(g, handler)
