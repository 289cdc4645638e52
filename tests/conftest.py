"""
Test Configuration
==================

Pytest fixtures shared by the bitpak tests.
"""

import itertools

import pytest

from bitpak.frame import pack


class ManualScheduler:
    """Collects scheduled ticks so tests can run them one at a time."""

    def __init__(self):
        self.pending = []
        self.cancelled = []
        self._handles = itertools.count(1)

    def schedule(self, callback):
        handle = next(self._handles)
        self.pending.append((handle, callback))
        return handle

    def cancel(self, handle):
        for entry in self.pending:
            if entry[0] == handle:
                self.pending.remove(entry)
                self.cancelled.append(handle)
                return

    def run_next(self):
        _, callback = self.pending.pop(0)
        callback()


class FakeClock:
    """A clock whose time is set by the test."""

    def __init__(self, t=0.0):
        self.t = t
        self.starts = 0
        self.paused = False

    def start(self):
        self.starts += 1
        self.paused = False

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False

    def current_time_seconds(self):
        return self.t


@pytest.fixture
def scenario_frames():
    """Three 2x2 frames: [1,0,0,1], [1,1,0,1], [0,1,0,1]."""
    return [
        pack([1, 0, 0, 1], 2, 2),
        pack([1, 1, 0, 1], 2, 2),
        pack([0, 1, 0, 1], 2, 2),
    ]


@pytest.fixture
def scenario_stream():
    """The encoded form of scenario_frames at 30 fps."""
    return bytes([
        2, 0, 2, 0, 0xB8, 0x0B, 3, 0, 0, 0,  # w=2 h=2 fps_x100=3000 count=3
        0b10010000,  # frame 0
        0b01000000,  # frame 1 XOR frame 0
        0b10000000,  # frame 2 XOR frame 1
    ])


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clock():
    return FakeClock()
