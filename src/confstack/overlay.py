"""
Overlay - an immutable, ordered composition of getters.

    g = overlay(flags, env, file_getter, defaults)

get() tries each getter in order and returns the first hit, so earlier
getters take priority over later ones. The composition is watchable if
any member is watchable.
"""

from __future__ import annotations

import threading as _threading
import typing as _typing

import confstack.getter as getter
import confstack.watch as watch


class Overlay:
    """
    Searches a fixed list of getters, in order, returning the first match.

    Use overlay() to construct, so nested overlays are flattened and a
    single getter is returned unwrapped.
    """

    __slots__ = ("_getters", "_watcher", "_watcher_built", "_lock")

    def __init__(self, getters: _typing.Iterable[getter.Getter]) -> None:
        self._getters: tuple[getter.Getter, ...] = tuple(getters)
        self._watcher: getter.GetterWatcher | None = None
        self._watcher_built = False
        self._lock = _threading.Lock()

    @property
    def getters(self) -> tuple[getter.Getter, ...]:
        return self._getters

    def __repr__(self) -> str:
        return f"Overlay({', '.join(repr(g) for g in self._getters)})"

    def get(self, key: str) -> tuple[_typing.Any, bool]:
        for g in self._getters:
            v, ok = g.get(key)
            if ok:
                return v, True
        return None, False

    def watcher(self) -> getter.GetterWatcher | None:
        """
        Return the watcher for the overlay.

        None if no member is watchable, the member's own watcher if exactly
        one member is watchable, else a StackWatcher over all of them.
        """
        with self._lock:
            if not self._watcher_built:
                self._watcher = watch.combine(
                    w for w in (getter.watcher_of(g) for g in self._getters) if w is not None
                )
                self._watcher_built = True
            return self._watcher


def overlay(*getters: getter.Getter | None) -> getter.Getter:
    """
    Combine getters into one, searched in the order provided.

    A single getter is returned as is. None entries are dropped and nested
    overlays are spliced into the new one.
    """
    if len(getters) == 1 and getters[0] is not None:
        return getters[0]
    flat: list[getter.Getter] = []
    for g in getters:
        if g is None:
            continue
        if isinstance(g, Overlay):
            flat.extend(g.getters)
            continue
        flat.append(g)
    return Overlay(flat)
