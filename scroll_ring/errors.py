"""
Error types raised by scrolling ring readers and the device registry.
"""

import os
from typing import List, Optional


class ScrollRingError(Exception):
    """Base class for scrolling ring errors."""


class DeviceOpenFailed(ScrollRingError):
    """Opening a device node failed (missing device, permissions, ...)."""

    def __init__(self, errno: int, path: Optional[str] = None):
        self.errno = errno
        self.path = path
        super().__init__(f"Failed to open {path}: {os.strerror(errno)} (errno {errno})")


class ReaderError(ScrollRingError):
    """A read on an open device failed.

    ``events`` holds whatever records were read before the failure; they have
    already been fed through the gesture logic.
    """

    def __init__(self, errno: int, path: Optional[str] = None, events: Optional[List] = None):
        self.errno = errno
        self.path = path
        self.events = events or []
        super().__init__(f"Read failed on {path}: {os.strerror(errno)} (errno {errno})")


class DeviceRemoved(ReaderError):
    """The device went away mid-read. The reader has already closed itself."""


class ReadError(ReaderError):
    """Unexpected read error. The reader stays open."""
