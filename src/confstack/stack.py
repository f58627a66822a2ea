"""
Stack - a mutable, ordered composition of getters.
"""

from __future__ import annotations

import threading as _threading
import typing as _typing

import confstack.getter as getter
import confstack.watch as watch


class Stack:
    """
    Searches a list of getters, in order, returning the first match.

    Getters can be added at either end at runtime:

        s = Stack(env, file_getter)
        s.insert(overrides)   # searched first
        s.append(defaults)    # searched last

    The lock covers the list of getters only. The list is replaced, never
    modified, so get() reads it without locking.

    The stack is watchable if any member is watchable when watcher() is
    first called. Watchable getters added after that are added to the
    same watcher.
    """

    def __init__(self, *getters: getter.Getter | None) -> None:
        self._lock = _threading.Lock()
        self._getters: tuple[getter.Getter, ...] = tuple(g for g in getters if g is not None)
        self._watcher: watch.StackWatcher | None = None

    @property
    def getters(self) -> tuple[getter.Getter, ...]:
        return self._getters

    def __repr__(self) -> str:
        return f"Stack({', '.join(repr(g) for g in self._getters)})"

    def __len__(self) -> int:
        return len(self._getters)

    def append(self, g: getter.Getter | None) -> None:
        """Add a getter to the end of the stack, searched after all existing getters."""
        if g is None:
            return
        with self._lock:
            self._getters = (*self._getters, g)
            stack_watcher = self._watcher
        self._add_watcher(stack_watcher, g)

    def insert(self, g: getter.Getter | None) -> None:
        """Add a getter to the front of the stack, searched before all existing getters."""
        if g is None:
            return
        with self._lock:
            self._getters = (g, *self._getters)
            stack_watcher = self._watcher
        self._add_watcher(stack_watcher, g)

    def get(self, key: str) -> tuple[_typing.Any, bool]:
        for g in self._getters:
            v, ok = g.get(key)
            if ok:
                return v, True
        return None, False

    def watcher(self) -> getter.GetterWatcher | None:
        with self._lock:
            if self._watcher is None:
                children = [getter.watcher_of(g) for g in self._getters]
                watchers = [w for w in children if w is not None]
                if not watchers:
                    return None
                self._watcher = watch.StackWatcher(watchers)
            return self._watcher

    @staticmethod
    def _add_watcher(stack_watcher: watch.StackWatcher | None, g: getter.Getter) -> None:
        if stack_watcher is None:
            return
        w = getter.watcher_of(g)
        if w is not None:
            stack_watcher.append(w)
