"""
Key aliasing.

An Alias maps a new (canonical) key to one or more old or alternate keys,
so configuration written against old key names keeps working:

    alias = Alias()
    alias.append("db.host", "database_host")   # leaf alias
    alias.append("db", "database")             # node alias
    g = decorate(source, with_alias(alias))

Resolution order for a key:

1. The key itself. A direct hit always wins over any alias.
2. Leaf aliases registered for the exact key, in registration order.
3. Node aliases registered for the key's ancestors, longest ancestor first,
   with the ancestor part of the key replaced by the alias.

Aliases do not chain: an alias target is only looked up in the wrapped
getter, never through another alias. This prevents cycles.

RegexAlias matches keys against regular expressions instead, which makes
array-wide defaults possible, e.g. ``(.*)\\[\\d+\\](.*)`` -> ``$1[0]$2``
maps ``arr[5].field`` to ``arr[0].field``.
"""

from __future__ import annotations

import functools as _functools
import re as _re
import threading as _threading
import typing as _typing

import confstack.constants as constants
import confstack.decorators as decorators
import confstack.errors as errors
import confstack.getter as getter


class Alias:
    """
    A table of key aliases.

    Safe to mutate while it is being read. Lists are replaced rather than
    modified in place, so readers never need the lock.
    """

    def __init__(self, *, separator: str = constants.DEFAULT_SEPARATOR) -> None:
        self._lock = _threading.Lock()
        self._aliases: dict[str, list[str]] = {}
        self._separator = separator

    @property
    def separator(self) -> str:
        return self._separator

    def append(self, new: str, old: str) -> None:
        """Add an alias from new to old, searched after existing aliases for new."""
        with self._lock:
            self._aliases[new] = [*self._aliases.get(new, ()), old]

    def insert(self, new: str, old: str) -> None:
        """Add an alias from new to old, searched before existing aliases for new."""
        with self._lock:
            self._aliases[new] = [old, *self._aliases.get(new, ())]

    def aliases(self, new: str) -> list[str]:
        """Return the aliases registered for a key, in search order."""
        return list(self._aliases.get(new, ()))

    def get(self, g: getter.Getter, key: str) -> tuple[_typing.Any, bool]:
        """Get key from g, falling back to its aliases if the key is not found."""
        v, ok = g.get(key)
        if ok:
            return v, True
        v, ok = self._get_leaf(g, key)
        if ok:
            return v, True
        return self._get_node(g, key)

    def _get_leaf(self, g: getter.Getter, key: str) -> tuple[_typing.Any, bool]:
        for alias in self._aliases.get(key, ()):
            if alias == key:
                continue
            v, ok = g.get(alias)
            if ok:
                return v, True
        return None, False

    def _get_node(self, g: getter.Getter, key: str) -> tuple[_typing.Any, bool]:
        sep = self._separator
        path = key.split(sep)
        for plen in range(len(path) - 1, -1, -1):
            node = sep.join(path[:plen])
            aliases = self._aliases.get(node)
            if not aliases:
                continue
            idx = len(node) + len(sep) if node else 0
            for alias in aliases:
                prefix = alias + sep if alias else ""
                alias_key = prefix + key[idx:]
                if alias_key == key:
                    continue
                v, ok = g.get(alias_key)
                if ok:
                    return v, True
        return None, False


_TEMPLATE_RE = _re.compile(
    r"\$(?:\{(?P<braced>[A-Za-z0-9_]+)\}|(?P<name>[A-Za-z0-9_]+)|(?P<dollar>\$))"
    r"|\\(?:g<(?P<py_name>[A-Za-z0-9_]+)>|(?P<py_num>\d{1,2}))"
)

_Template: _typing.TypeAlias = tuple[str | int, ...]


def _group(pattern: _re.Pattern[str], name: str) -> int | None:
    if name.isdigit():
        index = int(name)
        return index if index <= pattern.groups else None
    return pattern.groupindex.get(name)


def _parse_template(pattern: _re.Pattern[str], old: str) -> _Template:
    """
    Split a replacement into literal text and group indices.

    References to groups the pattern does not have are dropped, so they
    expand to nothing. A ``$`` or ``\\`` that starts no reference is literal.
    """
    parts: list[str | int] = []
    pos = 0
    for m in _TEMPLATE_RE.finditer(old):
        parts.append(old[pos : m.start()])
        pos = m.end()
        if m.group("dollar"):
            parts.append("$")
            continue
        name = m.group("braced") or m.group("name") or m.group("py_name") or m.group("py_num")
        index = _group(pattern, name)
        if index is not None:
            parts.append(index)
    parts.append(old[pos:])
    return tuple(p for p in parts if p != "")


def _expand(template: _Template, m: _re.Match[str]) -> str:
    return "".join(p if isinstance(p, str) else (m.group(p) or "") for p in template)


class RegexAlias:
    """
    A list of aliases from key patterns to replacement keys.

    Patterns are tried in registration order. The replacement may refer to
    capture groups as ``$1``, ``${1}``, ``$name``, ``${name}``, ``\\1`` or
    ``\\g<name>``; ``$$`` is a literal ``$``. After a ``$``, the longest
    run of letters, digits and underscores is the group name,
    so ``$1x`` names group ``1x``: write ``${1}x`` instead. References to
    groups the pattern does not have, or that did not match, expand to
    nothing. Any other ``$`` or backslash is copied literally.
    """

    def __init__(self) -> None:
        self._lock = _threading.Lock()
        self._aliases: tuple[tuple[_re.Pattern[str], _Template], ...] = ()

    def append(self, new: str, old: str) -> None:
        """
        Add an alias from keys matching the pattern new to the replacement old.

        Raises:
            PatternError: If new is not a valid regular expression.
        """
        try:
            pattern = _re.compile(new)
        except _re.error as e:
            raise errors.PatternError(new, str(e)) from e
        template = _parse_template(pattern, old)
        with self._lock:
            self._aliases = (*self._aliases, (pattern, template))

    def get(self, g: getter.Getter, key: str) -> tuple[_typing.Any, bool]:
        """Get key from g, falling back to matching patterns if the key is not found."""
        v, ok = g.get(key)
        if ok:
            return v, True
        for pattern, template in self._aliases:
            if not pattern.search(key):
                continue
            alias_key = pattern.sub(_functools.partial(_expand, template), key)
            if alias_key == key:
                continue
            v, ok = g.get(alias_key)
            if ok:
                return v, True
        return None, False


class Aliased(decorators.Decorated):
    """Getter decorated with an Alias or RegexAlias."""

    __slots__ = ("_alias",)

    def __init__(self, wrapped: getter.Getter, alias: Alias | RegexAlias) -> None:
        super().__init__(wrapped)
        self._alias = alias

    def get(self, key: str) -> tuple[_typing.Any, bool]:
        return self._alias.get(self._getter, key)


def with_alias(alias: Alias) -> getter.Decorator:
    """Decorator that falls back to the aliases in alias when a key is not found."""
    return lambda g: Aliased(g, alias)


def with_regex_alias(alias: RegexAlias) -> getter.Decorator:
    """Decorator that falls back to the pattern aliases in alias when a key is not found."""
    return lambda g: Aliased(g, alias)
