"""
Fan-in watcher over the watchers of a Stack or Overlay.

Each watchable member of a composition has its own GetterWatcher, and
each stages and commits its own snapshot. StackWatcher merges them into a
single watcher:

- watch() runs one watch loop task per child. A loop that sees its child
  stage an update reports the child on a shared queue and stops, so each
  child has at most one update in flight.
- watch() returns as soon as any child reports, remembering which.
- commit_update() commits only that child, and its loop is restarted by
  the next watch().
- close() cancels every loop task and closes every child; aclose() also
  waits for the cancelled tasks to finish.

Temporary child errors are retried by the child's loop. Any other child
error drops that child from the fan-in; once no children remain, watch()
raises the last such error.
"""

from __future__ import annotations

import asyncio as _asyncio
import logging as _logging
import threading as _threading
import typing as _typing

import confstack.errors as errors
import confstack.getter as getter

_logger = _logging.getLogger(__name__)


class _Rescan:
    """Queue item that wakes watch() to pick up newly added children."""


_RESCAN = _Rescan()


class _Closed:
    """Queue item that wakes watch() after close()."""


_CLOSED = _Closed()


class _Report(_typing.NamedTuple):
    index: int
    error: Exception | None


_QueueItem: _typing.TypeAlias = "_Report | _Rescan | _Closed"


class StackWatcher:
    """
    Merges the update streams of several child watchers.

    Children may be added at any time with append(), from any thread. As
    with any GetterWatcher, watch() and commit_update() must be called from
    a single sequential caller.
    """

    def __init__(self, watchers: _typing.Iterable[getter.GetterWatcher] = ()) -> None:
        self._lock = _threading.Lock()
        self._children: list[getter.GetterWatcher | None] = list(watchers)
        self._tasks: dict[int, _asyncio.Task[None]] = {}
        self._cancelled: list[_asyncio.Task[None]] = []
        self._queue: _asyncio.Queue[_QueueItem] = _asyncio.Queue()
        self._loop: _asyncio.AbstractEventLoop | None = None
        self._pending: int | None = None
        self._error: Exception | None = None
        self._closed = False

    @property
    def children(self) -> list[getter.GetterWatcher]:
        """The child watchers still being watched."""
        return [w for w in self._children if w is not None]

    @property
    def closed(self) -> bool:
        return self._closed

    def append(self, watcher: getter.GetterWatcher) -> None:
        """Add a child watcher. It is watched from the next watch() on."""
        with self._lock:
            if self._closed:
                closed = True
            else:
                closed = False
                self._children.append(watcher)
        if closed:
            watcher.close()
            return
        self._wake(_RESCAN)

    async def watch(self) -> None:
        """
        Block until any child has staged an update.

        Raises:
            ClosedError: If the watcher is closed.
            UnwatchableError: If there are no children left to watch.
            Exception: The last permanent child error, once every child has
                been dropped.
        """
        self._loop = _asyncio.get_running_loop()
        while True:
            if self._closed:
                raise errors.ClosedError()
            self._spawn()
            if not self._tasks:
                if self._error is not None:
                    raise self._error
                raise errors.UnwatchableError("config: no watchable children")
            item = await self._queue.get()
            if self._closed or item is _CLOSED:
                raise errors.ClosedError()
            if not isinstance(item, _Report):
                continue
            self._tasks.pop(item.index, None)
            if item.error is None:
                self._pending = item.index
                return
            self._drop(item.index, item.error)

    def commit_update(self) -> None:
        """Commit the update staged by the child reported by the last watch()."""
        index = self._pending
        if index is None:
            return
        self._pending = None
        child = self._children[index]
        if child is not None:
            child.commit_update()

    def close(self) -> None:
        """Stop all watch loops and close all children. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            children = self.children
        self._run_in_loop(self._cancel_tasks)
        for child in children:
            child.close()
        self._wake(_CLOSED)

    async def aclose(self) -> None:
        """Close, then wait for the watch loops, and those of any child StackWatchers, to end."""
        self.close()
        tasks = self._cancelled
        self._cancelled = []
        if tasks:
            await _asyncio.gather(*tasks, return_exceptions=True)
        for child in self.children:
            await aclose(child)

    def _spawn(self) -> None:
        with self._lock:
            children = list(enumerate(self._children))
        for index, child in children:
            if child is None or index in self._tasks:
                continue
            self._tasks[index] = _asyncio.create_task(
                self._watch_child(index, child),
                name=f"confstack-watch-{index}",
            )

    def _drop(self, index: int, error: Exception) -> None:
        child = self._children[index]
        self._children[index] = None
        self._error = error
        if isinstance(error, errors.ClosedError):
            _logger.debug("Child watcher %r closed", child)
        else:
            _logger.warning("Dropping child watcher %r after error: %s", child, error)

    async def _watch_child(self, index: int, child: getter.GetterWatcher) -> None:
        while True:
            try:
                await child.watch()
            except _asyncio.CancelledError:
                raise
            except Exception as e:
                if errors.is_temporary(e) and not self._closed:
                    _logger.debug("Temporary error watching %r: %s", child, e)
                    continue
                self._queue.put_nowait(_Report(index, e))
                return
            self._queue.put_nowait(_Report(index, None))
            return

    def _cancel_tasks(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        self._cancelled.extend(tasks)

    def _run_in_loop(self, func: _typing.Callable[[], None]) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            func()
            return
        try:
            running = _asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            func()
        else:
            loop.call_soon_threadsafe(func)

    def _wake(self, item: _QueueItem) -> None:
        self._run_in_loop(lambda: self._queue.put_nowait(item))


def combine(watchers: _typing.Iterable[getter.GetterWatcher]) -> getter.GetterWatcher | None:
    """
    Combine child watchers into one.

    Returns None for no watchers, the watcher itself for one, else a
    StackWatcher over all of them.
    """
    children = list(watchers)
    if not children:
        return None
    if len(children) == 1:
        return children[0]
    return StackWatcher(children)


async def aclose(w: getter.GetterWatcher) -> None:
    """Close w, and wait for its background tasks to end if it has any."""
    close = getattr(w, "aclose", None)
    if close is None:
        w.close()
        return
    await close()
