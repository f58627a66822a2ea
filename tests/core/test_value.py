"""Tests for confstack.value - typed accessors and error handling policy."""

import datetime as _datetime

import pytest as _pytest

import confstack.errors as errors
import confstack.value as value


class TestAccessors:
    """Typed accessors convert the raw value."""

    def test_numeric(self) -> None:
        """Numeric accessors parse strings."""
        v = value.Value("42")
        assert v.as_int() == 42
        assert v.as_uint() == 42
        assert v.as_float() == 42.0

    def test_str_and_bool(self) -> None:
        """String and bool accessors use the permissive conversions."""
        assert value.Value(7).as_str() == "7"
        assert value.Value("t").as_bool() is True

    def test_duration_and_time(self) -> None:
        """Duration and time accessors parse strings."""
        assert value.Value("1m").as_duration() == _datetime.timedelta(minutes=1)
        assert value.Value("2024-05-01T00:00:00+00:00").as_time().year == 2024

    def test_lists(self) -> None:
        """List accessors promote scalars and convert elements."""
        assert value.Value("a").as_list() == ["a"]
        assert value.Value(["1", "2"]).as_int_list() == [1, 2]
        assert value.Value([1, 2]).as_uint_list() == [1, 2]
        assert value.Value([1, "b"]).as_str_list() == ["1", "b"]

    def test_raw(self) -> None:
        """The raw value is available unconverted."""
        raw = ["x", 1]
        assert value.Value(raw).raw is raw


class TestZeroValues:
    """Failed conversions return the zero value of the requested type."""

    def test_zero_values_without_handler(self) -> None:
        """With no handler, errors are swallowed."""
        v = value.Value({"not": "scalar"})
        assert v.as_int() == 0
        assert v.as_uint() == 0
        assert v.as_float() == 0.0
        assert v.as_bool() is False
        assert v.as_str() == ""
        assert v.as_duration() == _datetime.timedelta(0)
        assert v.as_time() == _datetime.datetime.min
        assert v.as_list() is None
        assert v.as_int_list() is None

    def test_empty_value(self) -> None:
        """An empty Value converts to zero values without error."""
        v = value.Value(error_handler=value.raise_errors)
        assert v.raw is None
        assert v.as_int() == 0
        assert v.as_str() == ""


class TestErrorHandlers:
    """The error handler decides what happens to conversion errors."""

    def test_handler_receives_error(self) -> None:
        """A handler sees each error, and the zero value is still returned."""
        seen: list[Exception] = []

        def record(e: Exception) -> None:
            seen.append(e)

        v = value.Value("bogus", error_handler=record)
        assert v.as_int() == 0
        assert len(seen) == 1
        assert isinstance(seen[0], errors.ParseError)

    def test_raise_errors(self) -> None:
        """raise_errors makes conversion failures raise."""
        v = value.Value("bogus", error_handler=value.raise_errors)
        with _pytest.raises(errors.ParseError):
            v.as_int()

    def test_ignore_errors(self) -> None:
        """ignore_errors swallows everything."""
        assert value.ignore_errors(ValueError("x")) is None
        assert value.Value("bogus", error_handler=value.ignore_errors).as_bool() is False

    def test_handler_not_called_on_success(self) -> None:
        """Successful conversions do not call the handler."""
        v = value.Value("1", error_handler=value.raise_errors)
        assert v.as_int() == 1

    def test_other_errors_not_handled(self) -> None:
        """Only conversion errors go to the handler. Anything else propagates."""
        seen: list[Exception] = []

        class Broken(int):
            def __lt__(self, other: object) -> bool:
                raise RuntimeError("broken comparison")

        v = value.Value(Broken(1), error_handler=seen.append)
        with _pytest.raises(RuntimeError, match="broken comparison"):
            v.as_int()
        assert seen == []


class TestEquality:
    """Values compare by raw value."""

    def test_equal(self) -> None:
        """Values with equal raw values are equal, whatever their handlers."""
        assert value.Value(1) == value.Value(1, error_handler=value.raise_errors)
        assert value.Value(1) != value.Value("1")

    def test_repr(self) -> None:
        """The repr shows the raw value."""
        assert repr(value.Value("x")) == "Value('x')"
