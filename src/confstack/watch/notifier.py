"""
Broadcast signalling of an anonymous event.
"""

from __future__ import annotations

import asyncio as _asyncio


class Notifier:
    """
    Many-to-many broadcast of "something changed".

    Any number of sources may call notify() and any number of sinks may
    wait on the event returned by notified(). Each notify() sets the current
    event and replaces it with a fresh one, so a sink that captured the
    event before a notification sees it, even if it was not waiting yet:

        event = notifier.notified()
        ...
        await event.wait()   # returns once notify() has been called since
    """

    def __init__(self) -> None:
        self._event = _asyncio.Event()

    def notified(self) -> _asyncio.Event:
        """Return the event that is set by the next notify()."""
        return self._event

    def notify(self) -> None:
        """Wake every sink waiting on the current event."""
        event = self._event
        self._event = _asyncio.Event()
        event.set()


async def wait_any(*events: _asyncio.Event | None) -> None:
    """
    Block until any of the events is set.

    None entries are ignored. Returns immediately if any event is already
    set.
    """
    pending = [e for e in events if e is not None]
    if any(e.is_set() for e in pending):
        return
    tasks = [_asyncio.ensure_future(e.wait()) for e in pending]
    try:
        await _asyncio.wait(tasks, return_when=_asyncio.FIRST_COMPLETED)
    finally:
        for task in tasks:
            task.cancel()
