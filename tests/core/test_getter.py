"""Tests for confstack.getter - the Getter contract and decorate()."""

import typing as _typing

import confstack.decorators as decorators
import confstack.getter as getter


def _getter_of(values: dict[str, _typing.Any]) -> getter.GetterFunc:
    def get(key: str) -> tuple[_typing.Any, bool]:
        if key in values:
            return values[key], True
        return None, False

    return getter.GetterFunc(get)


class TestGetterFunc:
    """Tests for adapting functions to Getters."""

    def test_get_calls_function(self) -> None:
        """get() is forwarded to the function."""
        g = _getter_of({"a": 1})
        assert g.get("a") == (1, True)
        assert g.get("b") == (None, False)

    def test_is_getter(self) -> None:
        """A GetterFunc satisfies the Getter protocol, but is not watchable."""
        g = _getter_of({})
        assert isinstance(g, getter.Getter)
        assert not isinstance(g, getter.WatchableGetter)


class TestWatcherOf:
    """Tests for watcher_of."""

    def test_none(self) -> None:
        """No getter, no watcher."""
        assert getter.watcher_of(None) is None

    def test_unwatchable(self, mock_getter: _typing.Any) -> None:
        """Getters without a watcher method are not watchable."""
        assert getter.watcher_of(mock_getter()) is None

    def test_watchable(self, watched_getter: _typing.Any) -> None:
        """The getter's watcher is returned."""
        g = watched_getter()
        assert getter.watcher_of(g) is g.mock_watcher

    def test_watcher_may_decline(self, mock_getter: _typing.Any) -> None:
        """A watcher() method may return None."""
        g = mock_getter()
        g.watcher = lambda: None
        assert getter.watcher_of(g) is None


class TestDecorate:
    """Tests for decorate()."""

    def test_no_decorators(self, mock_getter: _typing.Any) -> None:
        """With no decorators the getter is returned unchanged."""
        g = mock_getter()
        assert getter.decorate(g) is g

    def test_first_decorator_is_outermost(self, mock_getter: _typing.Any) -> None:
        """The first decorator sees the key first."""
        g = mock_getter({"a.b.x": 1})
        d = getter.decorate(g, decorators.with_prefix("a."), decorators.with_prefix("b."))
        assert d.get("x") == (1, True)
        assert g.requested == ["a.b.x"]

        g = mock_getter({"b.a.x": 1})
        d = getter.decorate(
            g,
            decorators.with_key_replacer(lambda k: k.upper()),
            decorators.with_prefix("b.a."),
        )
        assert d.get("x") == (None, False)
        assert g.requested == ["b.a.X"]

    def test_none_skipped(self, mock_getter: _typing.Any) -> None:
        """None entries are ignored."""
        g = mock_getter({"p.x": 1})
        d = getter.decorate(g, None, decorators.with_prefix("p."), None)
        assert d.get("x") == (1, True)
