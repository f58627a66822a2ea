"""
In-memory getters.

DictGetter is a flat key/value map that can be updated at runtime;
MapGetter serves a nested mapping, such as one decoded from JSON or YAML.
"""

from __future__ import annotations

import collections.abc as _abc
import threading as _threading
import typing as _typing

import confstack.constants as constants
import confstack.tree as tree


class DictGetter:
    """
    A flat, mutable key/value map.

    Keys are matched exactly, so ``"db.host"`` is a key in its own right
    rather than a path. Safe to set and get from multiple threads.

    Example:
        >>> g = DictGetter({"db.host": "localhost"})
        >>> g.set("db.port", 5432)
        >>> g.get("db.port")
        (5432, True)
    """

    def __init__(self, values: _abc.Mapping[str, _typing.Any] | None = None) -> None:
        self._lock = _threading.Lock()
        self._values: dict[str, _typing.Any] = dict(values or {})

    def __repr__(self) -> str:
        return f"DictGetter({self._values!r})"

    def set(self, key: str, value: _typing.Any) -> None:
        with self._lock:
            self._values[key] = value

    def get(self, key: str) -> tuple[_typing.Any, bool]:
        with self._lock:
            if key in self._values:
                return self._values[key], True
        return None, False


class MapGetter:
    """
    An immutable getter over a nested mapping.

    Keys are resolved as paths through the mapping, with the same node,
    array element and array length rules as decoded blobs.

    Example:
        >>> g = MapGetter({"db": {"hosts": ["a", "b"]}})
        >>> g.get("db.hosts[1]")
        ('b', True)
        >>> g.get("db")
        (None, False)
    """

    def __init__(
        self,
        values: _abc.Mapping[str, _typing.Any],
        *,
        separator: str = constants.DEFAULT_SEPARATOR,
    ) -> None:
        self._values = values
        self._separator = separator

    def __repr__(self) -> str:
        return f"MapGetter({self._values!r})"

    def get(self, key: str) -> tuple[_typing.Any, bool]:
        return tree.get(self._values, key, self._separator)
