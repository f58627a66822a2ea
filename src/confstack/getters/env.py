"""
Environment variable getter.

Variables are mapped from environment space to config space by stripping
an optional prefix and applying a key replacer. By default ``_`` becomes
the separator and the name is lower-cased, so with prefix ``APP_`` the
variable ``APP_DB_HOST`` provides ``db.host``.

Values containing the list separator are split into lists, so
``APP_PATHS=/a:/b`` provides ``paths`` as ``["/a", "/b"]``.
"""

from __future__ import annotations

import collections.abc as _abc
import os as _os
import typing as _typing

import confstack.constants as constants
import confstack.keys as keys
import confstack.tree as tree

Splitter: _typing.TypeAlias = _typing.Callable[[str], _typing.Any]
"""Converts a string containing a list into a list, or returns the string unaltered."""


def list_splitter(separator: str = constants.DEFAULT_ENV_LIST_SEPARATOR) -> Splitter:
    """Return a splitter for lists separated by separator."""

    def split(value: str) -> _typing.Any:
        if separator and separator in value:
            return value.split(separator)
        return value

    return split


class EnvGetter:
    """
    Provides configuration from environment variables.

    The environment is read once, at construction, so the getter is
    effectively immutable.

    Args:
        prefix: Only variables starting with prefix are included. The prefix
            is stripped before mapping, so should include any separator.
        key_replacer: Maps the remainder of the variable name to a config key.
        splitter: Splits values into lists.
        environ: The environment to read. Defaults to os.environ.
    """

    def __init__(
        self,
        prefix: str = "",
        *,
        key_replacer: keys.Replacer | None = None,
        splitter: Splitter | None = None,
        environ: _abc.Mapping[str, str] | None = None,
    ) -> None:
        self._prefix = prefix
        if key_replacer is None:
            key_replacer = keys.chain_replacer(
                keys.string_replacer("_", constants.DEFAULT_SEPARATOR),
                keys.lower_case_replacer(),
            )
        if splitter is None:
            splitter = list_splitter()
        if environ is None:
            environ = _os.environ
        self._values: dict[str, _typing.Any] = {}
        for name, value in environ.items():
            if not name.startswith(prefix):
                continue
            self._values[key_replacer(name[len(prefix) :])] = splitter(value)

    @property
    def prefix(self) -> str:
        return self._prefix

    def keys(self) -> list[str]:
        """Return the config keys provided by the environment."""
        return sorted(self._values)

    def get(self, key: str) -> tuple[_typing.Any, bool]:
        return tree.get(self._values, key, "")
