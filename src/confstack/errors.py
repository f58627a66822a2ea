"""
Exception hierarchy for confstack.

All errors raised by the library derive from ConfigError:

- NotFoundError: a key could not be resolved by any getter in the chain
- ConversionError: a value was found but could not be coerced
  (TypeMismatchError, ParseError, RangeError)
- UnmarshalError: a conversion failed while populating an object
- TemporaryError: wraps a recoverable watch failure
- UnwatchableError: watch requested on a source with no watchable member
- InvalidStructError: unmarshal destination is not a dataclass/model instance
- ClosedError / CanceledError: a watch ended by close or cancellation
- PatternError: a regex alias pattern does not compile
- LoadError: a source could not be loaded or decoded
"""

from __future__ import annotations

import typing as _typing


class ConfigError(Exception):
    """Base class for all confstack errors."""


class NotFoundError(ConfigError):
    """The key could not be found in the config tree."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"config: key '{key}' not found")

    def __eq__(self, other: object) -> bool:
        if isinstance(other, NotFoundError):
            return self.key == other.key
        return NotImplemented

    def __hash__(self) -> int:
        return hash((NotFoundError, self.key))


class ConversionError(ConfigError):
    """A value could not be converted to the requested type.

    Attributes:
        value: The raw value being converted.
        target: Name of the type it could not be converted into.
    """

    def __init__(self, value: _typing.Any, target: str, message: str | None = None) -> None:
        self.value = value
        self.target = target
        if message is None:
            message = (
                f"cannot convert {value!r} ({type(value).__name__}) to {target}"
            )
        super().__init__(message)


class TypeMismatchError(ConversionError, TypeError):
    """The value's type has no conversion to the requested type."""


class ParseError(ConversionError, ValueError):
    """A string value could not be parsed as the requested type."""

    def __init__(self, value: _typing.Any, target: str) -> None:
        super().__init__(value, target, f"cannot parse {value!r} as {target}")


class RangeError(ConversionError, OverflowError):
    """The value does not fit in the requested type without loss."""

    def __init__(self, value: _typing.Any, target: str) -> None:
        super().__init__(value, target, f"overflow converting {value!r} to {target}")


class UnmarshalError(ConfigError):
    """A conversion failed while unmarshalling into an object or map.

    Attributes:
        key: Fully qualified key at which the failure occurred.
        error: The underlying conversion or nested unmarshal error.
    """

    def __init__(self, key: str, error: Exception) -> None:
        self.key = key
        self.error = error
        super().__init__(f"config: cannot unmarshal {key} - {error}")


class TemporaryError(ConfigError):
    """Marks an underlying error as transient.

    The watch that raised it may be retried by watching again.
    """

    temporary = True

    def __init__(self, error: Exception) -> None:
        self.error = error
        super().__init__(str(error))


def with_temporary(error: Exception) -> TemporaryError:
    """Wrap an error so it reports as temporary."""
    if isinstance(error, TemporaryError):
        return error
    wrapped = TemporaryError(error)
    wrapped.__cause__ = error
    return wrapped


def is_temporary(error: BaseException) -> bool:
    """Check whether an error supports being temporary and reports true."""
    temporary = getattr(error, "temporary", None)
    if callable(temporary):
        temporary = temporary()
    return temporary is True


class UnwatchableError(ConfigError):
    """Watch was requested on a getter with no watchable member."""

    def __init__(self, message: str = "config: getter is not watchable") -> None:
        super().__init__(message)


class InvalidStructError(ConfigError, TypeError):
    """Unmarshal was given something other than a dataclass or model instance."""

    def __init__(self, obj: _typing.Any) -> None:
        self.obj = obj
        super().__init__(
            "unmarshal: provided obj is not a dataclass or pydantic model instance, "
            f"got {type(obj).__name__}"
        )


class ClosedError(ConfigError):
    """The watcher, or the config it belongs to, has been closed."""

    def __init__(self, message: str = "config: watcher closed") -> None:
        super().__init__(message)


class CanceledError(ConfigError):
    """The watch was cancelled by its done signal."""

    def __init__(self, message: str = "config: watch canceled") -> None:
        super().__init__(message)


class PatternError(ConfigError, ValueError):
    """An alias pattern failed to compile."""

    def __init__(self, pattern: str, message: str) -> None:
        self.pattern = pattern
        super().__init__(f"config: invalid alias pattern {pattern!r}: {message}")


class LoadError(ConfigError):
    """A source could not be loaded or decoded."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(f"Error loading {source}: {message}")
