"""
Type conversions from raw configuration values to requested types.

Decoders and getters return loosely typed values: numbers may arrive as
strings, lists as single scalars, booleans as integers. The conversions
here are deliberately permissive:

- string to numeric, and numeric to string
- string to bool, and bool to string (``"true"``/``"false"``)
- numeric to bool, and bool to numeric
- float to int (truncating)
- a scalar to a one-element list

Integers are widened to the 64-bit range and range checked against it;
narrower range checks are left to the caller.

Every conversion raises a ConversionError subclass on failure:
TypeMismatchError when no conversion exists for the value's type,
ParseError when a string cannot be parsed, RangeError when the result
does not fit.
"""

from __future__ import annotations

import collections.abc as _abc
import datetime as _datetime
import enum as _enum
import math as _math
import re as _re
import types as _types
import typing as _typing

import confstack.constants as constants
import confstack.errors as errors

_TRUE_STRINGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_STRINGS = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_INT_RE = _re.compile(r"^[+-]?[0-9]+$")
_UINT_RE = _re.compile(r"^[0-9]+$")

# Microseconds per unit - timedelta resolution truncates nanoseconds.
_DURATION_UNITS: dict[str, float] = {
    "ns": 0.001,
    "us": 1.0,
    "µs": 1.0,  # micro sign
    "μs": 1.0,  # greek mu
    "ms": 1_000.0,
    "s": 1_000_000.0,
    "m": 60_000_000.0,
    "h": 3_600_000_000.0,
}
_DURATION_PART = r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)"
_DURATION_RE = _re.compile(rf"^[+-]?(?:{_DURATION_PART})+$")
_DURATION_PART_RE = _re.compile(_DURATION_PART)

_SCALARS = (str, bytes, bool, int, float)


def _check_int64(result: int, value: _typing.Any) -> int:
    if result < constants.INT64_MIN or result > constants.INT64_MAX:
        raise errors.RangeError(value, "int")
    return result


def _check_uint64(result: int, value: _typing.Any) -> int:
    if result > constants.UINT64_MAX:
        raise errors.RangeError(value, "uint")
    return result


def to_bool(value: _typing.Any) -> bool:
    """Convert a value to a bool."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        if value in _TRUE_STRINGS:
            return True
        if value in _FALSE_STRINGS:
            return False
        raise errors.ParseError(value, "bool")
    if value is None:
        return False
    raise errors.TypeMismatchError(value, "bool")


def to_int(value: _typing.Any) -> int:
    """Convert a value to an integer within the signed 64-bit range."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return _check_int64(value, value)
    if isinstance(value, str):
        if not _INT_RE.match(value):
            raise errors.ParseError(value, "int")
        return _check_int64(int(value), value)
    if isinstance(value, float):
        if not _math.isfinite(value):
            raise errors.RangeError(value, "int")
        return _check_int64(int(value), value)
    if value is None:
        return 0
    raise errors.TypeMismatchError(value, "int")


def to_uint(value: _typing.Any) -> int:
    """Convert a value to a non-negative integer within the unsigned 64-bit range."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        if value < 0:
            raise errors.TypeMismatchError(value, "uint")
        return _check_uint64(value, value)
    if isinstance(value, str):
        if not _UINT_RE.match(value):
            raise errors.ParseError(value, "uint")
        return _check_uint64(int(value), value)
    if isinstance(value, float):
        if _math.isnan(value) or value < 0:
            raise errors.TypeMismatchError(value, "uint")
        if _math.isinf(value):
            raise errors.RangeError(value, "uint")
        return _check_uint64(int(value), value)
    if value is None:
        return 0
    raise errors.TypeMismatchError(value, "uint")


def to_float(value: _typing.Any) -> float:
    """Convert a value to a float."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, float):
        return value
    if isinstance(value, int):
        try:
            return float(value)
        except OverflowError:
            raise errors.RangeError(value, "float") from None
    if isinstance(value, str):
        if value != value.strip():
            raise errors.ParseError(value, "float")
        try:
            return float(value)
        except ValueError:
            raise errors.ParseError(value, "float") from None
    if value is None:
        return 0.0
    raise errors.TypeMismatchError(value, "float")


def to_str(value: _typing.Any) -> str:
    """
    Convert a value to a string.

    A list of strings is joined with ``","``, undoing the split performed by
    getters that cannot tell a list from a string containing commas.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            raise errors.ParseError(value, "str") from None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return ",".join(value)
    if value is None:
        return ""
    raise errors.TypeMismatchError(value, "str")


def parse_duration(text: str) -> _datetime.timedelta:
    """
    Parse a duration string such as ``"300ms"``, ``"-1.5h"`` or ``"2h45m"``.

    Valid units are ``ns``, ``us`` (or ``µs``), ``ms``, ``s``, ``m``, ``h``.
    Nanoseconds are truncated to the microsecond resolution of timedelta.

    Raises:
        ParseError: If the string is not a valid duration.
        RangeError: If the duration is too large for a timedelta.
    """
    if text in ("0", "+0", "-0"):
        return _datetime.timedelta(0)
    if not _DURATION_RE.match(text):
        raise errors.ParseError(text, "duration")
    micros = 0.0
    for number, unit in _DURATION_PART_RE.findall(text):
        micros += float(number) * _DURATION_UNITS[unit]
    if text.startswith("-"):
        micros = -micros
    try:
        return _datetime.timedelta(microseconds=int(micros))
    except OverflowError:
        raise errors.RangeError(text, "duration") from None


def to_duration(value: _typing.Any) -> _datetime.timedelta:
    """Convert a duration string to a timedelta."""
    if isinstance(value, _datetime.timedelta):
        return value
    if isinstance(value, bytes):
        value = to_str(value)
    if isinstance(value, str):
        return parse_duration(value)
    raise errors.TypeMismatchError(value, "duration")


def to_time(value: _typing.Any) -> _datetime.datetime:
    """Convert an RFC 3339 string, e.g. ``2006-01-02T15:04:05Z``, to a datetime."""
    if isinstance(value, _datetime.datetime):
        return value
    if isinstance(value, bytes):
        value = to_str(value)
    if isinstance(value, str):
        text = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
        try:
            return _datetime.datetime.fromisoformat(text)
        except ValueError:
            raise errors.ParseError(value, "time") from None
    raise errors.TypeMismatchError(value, "time")


def to_list(value: _typing.Any) -> list[_typing.Any]:
    """
    Convert a value to a list.

    A scalar becomes a one-element list, as some getters cannot distinguish
    a single element list from a literal. Empty strings are not promoted.
    """
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, _SCALARS) and value != "":
        return [value]
    raise errors.TypeMismatchError(value, "list")


def _to_typed_list(
    value: _typing.Any,
    element: _typing.Callable[[_typing.Any], _typing.Any],
    target: str,
) -> list[_typing.Any]:
    if isinstance(value, (list, tuple)):
        return [element(v) for v in value]
    if isinstance(value, _SCALARS) and value != "":
        return [element(value)]
    raise errors.TypeMismatchError(value, target)


def to_int_list(value: _typing.Any) -> list[int]:
    return _to_typed_list(value, to_int, "list[int]")


def to_uint_list(value: _typing.Any) -> list[int]:
    return _to_typed_list(value, to_uint, "list[uint]")


def to_str_list(value: _typing.Any) -> list[str]:
    return _to_typed_list(value, to_str, "list[str]")


_CONVERTERS: dict[type, _typing.Callable[[_typing.Any], _typing.Any]] = {
    bool: to_bool,
    int: to_int,
    float: to_float,
    str: to_str,
    _datetime.timedelta: to_duration,
    _datetime.datetime: to_time,
}


def convert(value: _typing.Any, target: _typing.Any) -> _typing.Any:
    """
    Convert a value to the type described by a type annotation.

    Supports the scalar types handled above, ``list``/``list[T]``,
    ``tuple[T, ...]``, ``dict``, ``Optional[T]``, enums, and ``Any``.

    Raises:
        ConversionError: If the value cannot be converted.
    """
    if target is _typing.Any or target is object:
        return value
    origin = _typing.get_origin(target)
    if origin is _typing.Union or origin is _types.UnionType:
        args = [a for a in _typing.get_args(target) if a is not type(None)]
        if value is None and len(args) < len(_typing.get_args(target)):
            return None
        if len(args) == 1:
            return convert(value, args[0])
        for arg in args:
            try:
                return convert(value, arg)
            except errors.ConversionError:
                continue
        raise errors.TypeMismatchError(value, str(target))
    if origin in (list, _abc.Sequence, _abc.MutableSequence):
        (element,) = _typing.get_args(target) or (_typing.Any,)
        return _to_typed_list(value, lambda v: convert(v, element), str(target))
    if origin is tuple:
        args = _typing.get_args(target)
        element = args[0] if args else _typing.Any
        return tuple(_to_typed_list(value, lambda v: convert(v, element), str(target)))
    if origin in (dict, _abc.Mapping) or target in (dict, _abc.Mapping):
        if isinstance(value, _abc.Mapping):
            return dict(value)
        raise errors.TypeMismatchError(value, "dict")
    if target is list:
        return to_list(value)
    if target is tuple:
        return tuple(to_list(value))
    converter = _CONVERTERS.get(target)
    if converter is not None:
        return converter(value)
    if isinstance(target, type) and issubclass(target, _enum.Enum):
        try:
            return target(value)
        except ValueError:
            raise errors.ParseError(value, target.__name__) from None
    if isinstance(target, type) and isinstance(value, target):
        return value
    raise errors.TypeMismatchError(value, getattr(target, "__name__", str(target)))
