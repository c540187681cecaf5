"""
Shared fixtures: FIFO-backed fake ring devices, a manual event loop and a fake clock.
"""

import errno
import os

import pytest
from evdev import ecodes

from scroll_ring.device.reader import pack_event


def touch_records(*ys, sec=1000, release=True):
    """Records for one touch: BTN_TOUCH press, an ABS_Y sample per y, release."""
    records = [pack_event(sec, 0, ecodes.EV_KEY, ecodes.BTN_TOUCH, 1),
               pack_event(sec, 0, ecodes.EV_SYN, ecodes.SYN_REPORT, 0)]
    for i, y in enumerate(ys):
        usec = (i + 1) * 10000
        records.append(pack_event(sec, usec, ecodes.EV_ABS, ecodes.ABS_Y, y))
        records.append(pack_event(sec, usec, ecodes.EV_SYN, ecodes.SYN_REPORT, 0))
    if release:
        records.append(pack_event(sec, 900000, ecodes.EV_KEY, ecodes.BTN_TOUCH, 0))
        records.append(pack_event(sec, 900000, ecodes.EV_SYN, ecodes.SYN_REPORT, 0))
    return records


class RingFifo:
    """A named pipe standing in for /dev/input/eventN."""

    def __init__(self, path):
        self.path = str(path)
        os.mkfifo(self.path)
        self.write_fd = None

    def connect(self):
        """Open the writing end. The reader must already have the FIFO open."""
        if self.write_fd is None:
            self.write_fd = os.open(self.path, os.O_WRONLY | os.O_NONBLOCK)

    def write(self, *records):
        self.connect()
        os.write(self.write_fd, b"".join(records))

    def write_touch(self, *ys, **kwargs):
        self.write(*touch_records(*ys, **kwargs))

    def close(self):
        if self.write_fd is not None:
            os.close(self.write_fd)
            self.write_fd = None


@pytest.fixture
def make_fifo(tmp_path):
    fifos = []

    def factory(name="event0"):
        fifo = RingFifo(tmp_path / name)
        fifos.append(fifo)
        return fifo

    yield factory
    for fifo in fifos:
        fifo.close()


@pytest.fixture
def fifo(make_fifo):
    return make_fifo()


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class FakeHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """Enough of an asyncio loop for PollTask: call_later plus manual time."""

    def __init__(self):
        self.time = 0.0
        self.handles = []

    def call_later(self, delay, callback):
        handle = FakeHandle(self.time + delay, callback)
        self.handles.append(handle)
        return handle

    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds):
        """Move time forward, running every callback that falls due."""
        target = self.time + seconds
        while True:
            due = [h for h in self.pending() if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.handles.remove(handle)
            self.time = handle.when
            handle.callback()
        self.time = target


@pytest.fixture
def loop():
    return FakeLoop()


def scripted_reads(reader, monkeypatch, items):
    """Make reader reads return each item in turn (bytes or an errno to raise),
    then EAGAIN forever."""
    items = list(items)

    def read_record():
        if not items:
            raise OSError(errno.EAGAIN, os.strerror(errno.EAGAIN))
        item = items.pop(0)
        if isinstance(item, int):
            raise OSError(item, os.strerror(item))
        return item

    monkeypatch.setattr(reader, "_read_record", read_record)


class RecordingBus:
    def __init__(self):
        self.sent = []

    def send_event(self, name, args=None):
        self.sent.append((name, args))


@pytest.fixture
def bus():
    return RecordingBus()


class MemorySettings:
    """In-memory settings store that counts flushes."""

    def __init__(self, initial=None):
        self.values = dict(initial or {})
        self.flushes = 0

    def read_setting(self, key, default=None):
        return self.values.get(key, default)

    def save_setting(self, key, value):
        self.values[key] = value

    def flush(self):
        self.flushes += 1


@pytest.fixture
def settings():
    return MemorySettings()
