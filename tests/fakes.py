"""
Test doubles for the document cache.

- ManualDelayedActions: scheduler whose actions fire only when a test calls fire()
- FakeWatchTask: watch task whose signals are emitted directly by the test
- FileProbe: shared-read probe that can simulate a locked file
"""

import os

from PyQt6.QtCore import QObject, pyqtSignal


class ManualDelayedActions:
    """Delayed action scheduler driven by the test."""

    def __init__(self):
        self.pending = {}
        self.history = []

    def start_delayed_action(self, name, callback, delay_ms):
        self.pending[name] = (callback, delay_ms)
        self.history.append((name, delay_ms))

    def cancel_delayed_action(self, name):
        return self.pending.pop(name, None) is not None

    def is_pending(self, name):
        return name in self.pending

    def delay_of(self, name):
        return self.pending[name][1]

    def fire(self, name):
        """Run a pending action synchronously."""
        callback, _ = self.pending.pop(name)
        callback()


class FakeWatchTask(QObject):
    """Watch task that records start/stop calls instead of touching the OS."""

    file_changed = pyqtSignal(str)
    file_renamed = pyqtSignal(str, str)

    def __init__(self):
        super().__init__()
        self.watch_path = None
        self.start_count = 0
        self.stop_count = 0

    @property
    def is_watching(self):
        return self.watch_path is not None

    def start_watching(self, folder_path):
        self.watch_path = folder_path
        self.start_count += 1
        return True

    def stop_watching(self):
        self.watch_path = None
        self.stop_count += 1


class FileProbe:
    """Shared-read probe; set ``locked`` to simulate another writer."""

    def __init__(self):
        self.locked = False
        self.calls = 0

    def __call__(self, path):
        self.calls += 1
        return not self.locked


def touch_newer(path, last_modified, seconds=10):
    """Move the file's modification time past ``last_modified``."""
    stamp = last_modified + seconds
    os.utime(path, (stamp, stamp))
