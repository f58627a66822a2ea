"""
Key parsing and key replacement helpers.

Keys are separator-delimited paths such as ``db.postgres.host``. Array
elements are addressed as ``name[idx]`` (nested arrays as ``name[i][j]``)
and the length of an array as ``name[]``.

Replacers map a key from one space to another, e.g. from environment
variable names to config keys. They are plain ``str -> str`` callables and
can be chained with chain_replacer().
"""

from __future__ import annotations

import typing as _typing

import confstack.constants as constants

Replacer: _typing.TypeAlias = _typing.Callable[[str], str]


def is_array_len(key: str) -> tuple[str, bool]:
    """
    Check if a key requests the length of an array.

    Returns:
        Tuple of (array name, True) for ``name[]``, else (key, False).
    """
    if key.endswith("[]"):
        return key[:-2], True
    return key, False


def parse_array_element(key: str) -> tuple[str, list[int] | None]:
    """
    Split an array element key into the array name and its indices.

    Example:
        >>> parse_array_element("a[1][2]")
        ('a', [1, 2])

    Returns:
        Tuple of (name, indices). Indices is None if the key is not an
        array element reference, in which case name is the key unchanged.
    """
    if not key.endswith("]"):
        return key, None
    start = key.find("[")
    if start == -1:
        return key, None
    indices: list[int] = []
    for part in key[start + 1 : -1].split("]["):
        if not part.isdigit():
            return key, None
        indices.append(int(part))
    return key[:start], indices


def chain_replacer(*replacers: Replacer | None) -> Replacer:
    """Combine replacers, applying them in the order provided."""

    def replace(key: str) -> str:
        for replacer in replacers:
            if replacer is not None:
                key = replacer(key)
        return key

    return replace


def null_replacer() -> Replacer:
    """Return a replacer that leaves keys unchanged."""
    return lambda key: key


def prefix_replacer(prefix: str) -> Replacer:
    """Return a replacer that prepends a prefix."""
    return lambda key: prefix + key


def string_replacer(old: str, new: str) -> Replacer:
    """Return a replacer that replaces all occurrences of old with new."""
    return lambda key: key.replace(old, new)


def lower_case_replacer() -> Replacer:
    return lambda key: key.lower()


def upper_case_replacer() -> Replacer:
    return lambda key: key.upper()


def _camel_case(segment: str) -> str:
    if not segment:
        return segment
    return segment[0].upper() + segment[1:].lower()


def camel_case_replacer(separator: str = constants.DEFAULT_SEPARATOR) -> Replacer:
    """Return a replacer that CamelCases each tier of a key."""

    def replace(key: str) -> str:
        if not key:
            return ""
        return separator.join(_camel_case(p) for p in key.split(separator))

    return replace


def lower_camel_case_replacer(separator: str = constants.DEFAULT_SEPARATOR) -> Replacer:
    """
    Return a replacer that lowerCamelCases a key.

    The first tier is lower-cased and each following tier CamelCased,
    e.g. ``FOO.BAR_BAZ.QUX`` becomes ``foo.Bar_baz.Qux``.
    """

    def replace(key: str) -> str:
        if not key:
            return ""
        path = key.split(separator)
        path[0] = path[0].lower()
        path[1:] = [_camel_case(p) for p in path[1:]]
        return separator.join(path)

    return replace


def lower_first(name: str) -> str:
    """Lower-case the first character of a name, e.g. ``ConfigFile`` -> ``configFile``."""
    if not name:
        return name
    return name[0].lower() + name[1:]
