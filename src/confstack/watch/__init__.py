"""
Change notification for getters.

StackWatcher fans the update streams of several GetterWatchers into one,
and Notifier broadcasts committed changes to any number of waiters.
"""

from confstack.watch.notifier import Notifier, wait_any
from confstack.watch.stack_watcher import StackWatcher, aclose, combine

__all__ = ["Notifier", "StackWatcher", "aclose", "combine", "wait_any"]
