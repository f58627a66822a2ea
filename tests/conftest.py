"""
Shared pytest fixtures for confstack tests.

This file is automatically loaded by pytest. Fixtures defined here are
available to all test files without explicit imports.
"""

import asyncio as _asyncio
import os as _os
import typing as _typing
import unittest.mock as _mock

import pytest as _pytest

import confstack.constants as constants
import confstack.errors as errors

# =============================================================================
# Mock Getters and Watchers
# =============================================================================


class MockGetter:
    """Flat getter over a dict, recording every key requested."""

    def __init__(self, values: dict[str, _typing.Any] | None = None) -> None:
        self.values: dict[str, _typing.Any] = dict(values or {})
        self.requested: list[str] = []

    def __repr__(self) -> str:
        return f"MockGetter({self.values!r})"

    def get(self, key: str) -> tuple[_typing.Any, bool]:
        self.requested.append(key)
        if key in self.values:
            return self.values[key], True
        return None, False


class MockWatcher:
    """
    GetterWatcher driven by the test.

    Each call to update() releases one pending watch(), either successfully
    or by raising the given error. If the watcher belongs to a
    MockWatchedGetter, commit_update() applies the getter's staged values.
    """

    def __init__(self, getter: "MockWatchedGetter | None" = None) -> None:
        self._getter = getter
        self._updates: _asyncio.Queue[Exception | None] = _asyncio.Queue()
        self.watch_calls = 0
        self.commits = 0
        self.closed = False

    def update(self, error: Exception | None = None) -> None:
        self._updates.put_nowait(error)

    async def watch(self) -> None:
        self.watch_calls += 1
        if self.closed:
            raise errors.ClosedError()
        error = await self._updates.get()
        if error is not None:
            raise error

    def commit_update(self) -> None:
        self.commits += 1
        if self._getter is not None:
            self._getter.commit()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._updates.put_nowait(errors.ClosedError())


class MockWatchedGetter(MockGetter):
    """MockGetter with a MockWatcher and a two-phase update."""

    def __init__(self, values: dict[str, _typing.Any] | None = None) -> None:
        super().__init__(values)
        self.mock_watcher = MockWatcher(self)
        self._staged: dict[str, _typing.Any] | None = None

    def watcher(self) -> MockWatcher:
        return self.mock_watcher

    def stage(self, values: dict[str, _typing.Any]) -> None:
        """Stage new values and signal the watcher."""
        self._staged = dict(values)
        self.mock_watcher.update()

    def commit(self) -> None:
        if self._staged is not None:
            self.values = self._staged
            self._staged = None


# =============================================================================
# Fixtures
# =============================================================================


@_pytest.fixture
def clean_env() -> dict[str, str]:
    """
    Return environment dict with confstack keys removed.

    Use with mock.patch.dict to isolate tests from the actual environment.
    """
    return {k: v for k, v in _os.environ.items() if not k.startswith(constants.ENV_PREFIX)}


@_pytest.fixture
def isolated_env(clean_env: dict[str, str]) -> _typing.Any:
    """
    Context manager that isolates tests from CONFSTACK_* environment variables.

    Usage:
        def test_something(isolated_env):
            with isolated_env:
                ...
    """
    return _mock.patch.dict(_os.environ, clean_env, clear=True)


@_pytest.fixture
def mock_getter() -> _typing.Callable[..., MockGetter]:
    """Factory for MockGetters."""
    return MockGetter


@_pytest.fixture
def mock_watcher() -> _typing.Callable[..., MockWatcher]:
    """Factory for MockWatchers not bound to a getter."""
    return MockWatcher


@_pytest.fixture
def watched_getter() -> _typing.Callable[..., MockWatchedGetter]:
    """Factory for MockWatchedGetters."""
    return MockWatchedGetter


async def settle(rounds: int = 5) -> None:
    """Let pending tasks run."""
    for _ in range(rounds):
        await _asyncio.sleep(0)


@_pytest.fixture
def run_pending() -> _typing.Callable[..., _typing.Awaitable[None]]:
    """Coroutine function that yields to the event loop until pending tasks have run."""
    return settle
