"""
Value wrapper returned by Config.get().

A Value holds one raw value, as returned by a getter, and converts it on
request. Conversions never raise by default: on failure the error is passed
to the Value's error handler, if any, and the zero value of the requested
type is returned. The handler decides the policy:

- None / ignore_errors: swallow the error, return the zero value
- a logging handler: record the error, return the zero value
- raise_errors: raise the error (for config the program cannot run without)
"""

from __future__ import annotations

import datetime as _datetime
import typing as _typing

import confstack.convert as convert
import confstack.errors as errors

ErrorHandler: _typing.TypeAlias = _typing.Callable[[Exception], "Exception | None"]
"""Handles an error. Returns the error to report, or None to swallow it."""

_T = _typing.TypeVar("_T")


def ignore_errors(error: Exception) -> None:
    """Error handler that swallows all errors."""
    return None


def raise_errors(error: Exception) -> _typing.NoReturn:
    """Error handler that raises every error it is given."""
    raise error


_ZERO_TIME = _datetime.datetime.min


class Value:
    """
    An immutable raw configuration value with typed accessors.

    Example:
        >>> Value("42").as_int()
        42
        >>> Value("bogus").as_int()
        0
        >>> Value("bogus", error_handler=raise_errors).as_int()
        Traceback (most recent call last):
        ...
        confstack.errors.ParseError: cannot parse 'bogus' as int
    """

    __slots__ = ("_raw", "_error_handler")

    def __init__(
        self,
        raw: _typing.Any = None,
        *,
        error_handler: ErrorHandler | None = None,
    ) -> None:
        self._raw = raw
        self._error_handler = error_handler

    @property
    def raw(self) -> _typing.Any:
        """The raw, unconverted value."""
        return self._raw

    @property
    def error_handler(self) -> ErrorHandler | None:
        return self._error_handler

    def __repr__(self) -> str:
        return f"Value({self._raw!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Value):
            return bool(self._raw == other._raw)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(repr(self._raw))

    def _convert(
        self,
        converter: _typing.Callable[[_typing.Any], _T],
        zero: _T,
    ) -> _T:
        try:
            return converter(self._raw)
        except errors.ConversionError as e:
            if self._error_handler is not None:
                self._error_handler(e)
            return zero

    def as_bool(self) -> bool:
        """Convert to a bool. Returns False if conversion is not possible."""
        return self._convert(convert.to_bool, False)

    def as_int(self) -> int:
        """Convert to a signed 64-bit int. Returns 0 if conversion is not possible."""
        return self._convert(convert.to_int, 0)

    def as_uint(self) -> int:
        """Convert to an unsigned 64-bit int. Returns 0 if conversion is not possible."""
        return self._convert(convert.to_uint, 0)

    def as_float(self) -> float:
        """Convert to a float. Returns 0.0 if conversion is not possible."""
        return self._convert(convert.to_float, 0.0)

    def as_str(self) -> str:
        """Convert to a str. Returns an empty string if conversion is not possible."""
        return self._convert(convert.to_str, "")

    def as_duration(self) -> _datetime.timedelta:
        """Convert to a timedelta. Returns a zero timedelta if conversion is not possible."""
        return self._convert(convert.to_duration, _datetime.timedelta(0))

    def as_time(self) -> _datetime.datetime:
        """Convert to a datetime. Returns datetime.min if conversion is not possible."""
        return self._convert(convert.to_time, _ZERO_TIME)

    def as_list(self) -> list[_typing.Any] | None:
        """Convert to a list. Returns None if conversion is not possible."""
        return self._convert(convert.to_list, None)

    def as_int_list(self) -> list[int] | None:
        return self._convert(convert.to_int_list, None)

    def as_uint_list(self) -> list[int] | None:
        return self._convert(convert.to_uint_list, None)

    def as_str_list(self) -> list[str] | None:
        return self._convert(convert.to_str_list, None)
