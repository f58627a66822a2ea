"""
Key lookup within a nested mapping.

Decoded configuration (JSON, YAML, ...) is a tree of mappings, lists and
scalars. get() resolves a separator-delimited key against such a tree:

- A full key hit is preferred over splitting, so flat keys containing the
  separator are still found.
- ``name[i]`` indexes into lists, ``name[i][j]`` into nested lists.
- ``name[]`` returns the length of a list.
- Nodes (mappings) are not leaves and are reported as not found.
- A list of mappings is returned as a list of None placeholders of the
  same length, so callers can learn its size without seeing the nodes.
"""

from __future__ import annotations

import collections.abc as _abc
import typing as _typing

import confstack.keys as keys

_Lookup: _typing.TypeAlias = _typing.Callable[[str], tuple[_typing.Any, bool]]


def get(node: _typing.Any, key: str, separator: str) -> tuple[_typing.Any, bool]:
    """
    Get the value of a key from a nested mapping.

    Args:
        node: The root of the tree. Anything other than a mapping misses.
        key: The key to resolve.
        separator: Separator between tiers in the key. An empty separator
            disables nested lookup.

    Returns:
        Tuple of (value, found).
    """
    if not isinstance(node, _abc.Mapping):
        return None, False
    return _get_from(_lookup(node), key, separator)


def _lookup(mapping: _abc.Mapping[_typing.Any, _typing.Any]) -> _Lookup:
    def lookup(k: str) -> tuple[_typing.Any, bool]:
        if k in mapping:
            return mapping[k], True
        return None, False

    return lookup


def _is_list(value: _typing.Any) -> bool:
    return isinstance(value, (list, tuple))


def _get_from(lookup: _Lookup, key: str, separator: str) -> tuple[_typing.Any, bool]:
    # full key match - also handles leaves
    v, ok = lookup(key)
    if ok:
        return _leaf(v)
    if separator:
        path = key.split(separator, 1)
    else:
        path = [key]
    length_requested = False
    if len(path) > 1:
        v, ok = lookup(path[0])
        if ok:
            return get(v, path[1], separator)
    else:
        name, length_requested = keys.is_array_len(path[0])
        path[0] = name
    name, indices = keys.parse_array_element(path[0])
    if length_requested or indices is not None:
        v, ok = lookup(name)
        if ok:
            return _array_element(v, path, separator, indices or [], length_requested)
    return None, False


def _array_element(
    v: _typing.Any,
    path: list[str],
    separator: str,
    indices: list[int],
    length_requested: bool,
) -> tuple[_typing.Any, bool]:
    for idx in indices:
        if not _is_list(v) or idx >= len(v):
            return None, False
        v = v[idx]
    if isinstance(v, _abc.Mapping):
        if len(path) > 1:
            return _get_from(_lookup(v), path[1], separator)
        return None, False
    if _is_list(v):
        if length_requested:
            return len(v), True
        if len(path) > 1:
            return None, False
        return _leaf(v)
    if length_requested or len(path) > 1:
        return None, False
    return v, True


def _leaf(v: _typing.Any) -> tuple[_typing.Any, bool]:
    if isinstance(v, _abc.Mapping):
        return None, False
    if _is_list(v) and v and isinstance(v[0], _abc.Mapping):
        return [None] * len(v), True
    return v, True
