"""Test configuration for pytest.

Ensure the repository root is on sys.path so tests can import the
`comporg_explorer` package without needing PYTHONPATH set externally.
"""
import os
import sys

import pytest

# Compute project root: two directories above this file (comporg_explorer/tests -> comporg_explorer -> project root)
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


class FakeScheduler:
    """Stand-in for Tk's after/after_cancel: callbacks only run on fire()."""

    def __init__(self):
        self.pending = {}
        self.cancelled = []
        self._next_id = 0

    def after(self, delay_ms, callback):
        self._next_id += 1
        self.pending[self._next_id] = (delay_ms, callback)
        return self._next_id

    def after_cancel(self, handle):
        self.cancelled.append(handle)
        self.pending.pop(handle, None)

    def fire(self):
        handle = min(self.pending)
        _, callback = self.pending.pop(handle)
        callback()


@pytest.fixture
def scheduler():
    return FakeScheduler()
