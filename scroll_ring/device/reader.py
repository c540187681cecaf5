"""
Raw input reader for Bluetooth scrolling rings.

Scrolling rings do not send key codes for swipes. They report touches as:
- EV_KEY BTN_TOUCH (330) for touch start/end
- EV_ABS ABS_Y (1) for the vertical position while touching

The reader pulls ``struct input_event`` records straight off the device node
without blocking and feeds them through a SwipeDetector.
"""

import errno
import logging
import os
import select
import struct
import time
from typing import Callable, List, Optional

from evdev import InputEvent, KeyEvent, ecodes

from ..config.settings import RegistryConfig
from ..errors import DeviceOpenFailed, DeviceRemoved, ReadError
from ..gestures.gesture_detector import GestureOutcome, ScrollDecision, SwipeDetector

logger = logging.getLogger(__name__)

# struct input_event: timeval (two native longs), __u16 type, __u16 code, __s32 value
EVENT_FORMAT = "llHHi"
EVENT_SIZE = struct.calcsize(EVENT_FORMAT)

RawEvent = InputEvent

KeyCallback = Callable[[InputEvent, Optional[str]], None]
ScrollCallback = Callable[[ScrollDecision], None]


def parse_event(data: bytes) -> InputEvent:
    """Decode one input_event record."""
    sec, usec, etype, code, value = struct.unpack(EVENT_FORMAT, data)
    return InputEvent(sec, usec, etype, code, value)


def pack_event(sec: int, usec: int, etype: int, code: int, value: int) -> bytes:
    """Encode one input_event record in native layout."""
    return struct.pack(EVENT_FORMAT, sec, usec, etype, code, value)


class ScrollingRingReader:
    """Reads one scrolling ring and turns its touches into scroll decisions."""

    def __init__(self, config: Optional[RegistryConfig] = None, identity: Optional[str] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.identity = identity
        self.fd = None
        self.device_path = None
        self.detector = SwipeDetector((config or RegistryConfig()).copy(), clock)

        self.key_callbacks: List[KeyCallback] = []
        self.scroll_callbacks: List[ScrollCallback] = []

    @property
    def is_open(self) -> bool:
        return self.fd is not None

    # Live tuning; applies from the next touch end

    @property
    def threshold(self) -> int:
        return self.detector.config.threshold

    @threshold.setter
    def threshold(self, value: int):
        self.detector.config.threshold = int(value)

    @property
    def debounce_interval(self) -> float:
        return self.detector.config.debounce_interval

    @debounce_interval.setter
    def debounce_interval(self, value: float):
        self.detector.config.debounce_interval = float(value)

    @property
    def invert(self) -> bool:
        return self.detector.config.invert

    @invert.setter
    def invert(self, value: bool):
        self.detector.config.invert = bool(value)

    def open(self, device_path: str):
        """Open the device node for non-blocking reads.

        Raises:
            DeviceOpenFailed: the node is missing or not readable
        """
        if self.is_open:
            logger.warning(f"Already open on {self.device_path}, closing first")
            self.close()

        try:
            fd = os.open(device_path, os.O_RDONLY | os.O_NONBLOCK | os.O_CLOEXEC)
        except OSError as e:
            logger.warning(f"Failed to open {device_path}, errno: {e.errno}")
            raise DeviceOpenFailed(e.errno, device_path) from e

        self.fd = fd
        self.device_path = device_path
        self.detector.reset()
        logger.info(f"Opened {device_path}")

    def close(self):
        """Release the device. Safe to call more than once."""
        if not self.is_open:
            return

        try:
            os.close(self.fd)
        except OSError as e:
            logger.debug(f"Error closing {self.device_path}: {e}")
        logger.info(f"Closed {self.device_path}")

        self.fd = None
        self.device_path = None
        self.detector.reset()

    def register_key_callback(self, callback: KeyCallback):
        self.key_callbacks.append(callback)

    def register_scroll_callback(self, callback: ScrollCallback):
        self.scroll_callbacks.append(callback)

    def clear_callbacks(self):
        self.key_callbacks = []
        self.scroll_callbacks = []

    def poll(self, timeout: float = 0) -> List[InputEvent]:
        """Read every record currently buffered for the device.

        Args:
            timeout: Seconds to wait for the device to become readable

        Returns:
            The records read, in order (possibly empty)

        Raises:
            DeviceRemoved: the device disappeared; the reader is now closed
            ReadError: any other read failure; the reader stays open
        """
        if not self.is_open:
            return []

        if timeout and timeout > 0:
            readable, _, _ = select.select([self.fd], [], [], timeout)
            if not readable:
                return []

        events = []
        while self.is_open:
            try:
                data = self._read_record()
            except OSError as e:
                if e.errno in (errno.EAGAIN, errno.EWOULDBLOCK):
                    break
                if e.errno == errno.EINTR:
                    continue
                path = self.device_path
                if e.errno == errno.ENODEV:
                    logger.warning(f"Device removed: {path}")
                    self.close()
                    raise DeviceRemoved(e.errno, path, events) from e
                logger.warning(f"Read error on {path}, errno: {e.errno}")
                raise ReadError(e.errno, path, events) from e

            if not data:
                break
            if len(data) != EVENT_SIZE:
                # Devices write whole records; drop the fragment
                logger.debug(f"Short read of {len(data)} bytes discarded")
                continue

            event = parse_event(data)
            events.append(event)
            self._process_event(event)

        return events

    def _read_record(self) -> bytes:
        return os.read(self.fd, EVENT_SIZE)

    def _process_event(self, event: InputEvent):
        if event.type == ecodes.EV_KEY:
            if event.code == ecodes.BTN_TOUCH:
                if event.value == KeyEvent.key_down:
                    self.detector.touch_start()
                else:
                    self._on_touch_end(event)

            if event.value == KeyEvent.key_down:
                for callback in self.key_callbacks:
                    try:
                        callback(event, self.device_path)
                    except Exception:
                        logger.exception("Key callback error")

        elif event.type == ecodes.EV_ABS and event.code == ecodes.ABS_Y:
            self.detector.track_y(event.value)

    def _on_touch_end(self, event: InputEvent):
        outcome, direction, delta = self.detector.touch_end()
        if outcome is not GestureOutcome.SCROLLED:
            return

        decision = ScrollDecision(
            direction=direction,
            device_identity=self.identity,
            timestamp=self.detector.state.last_scroll_time,
            source_path=self.device_path,
            delta=delta,
            event_time=event.timestamp(),
        )
        logger.info(f"SCROLL {direction.value} delta={delta} on {self.device_path}")

        for callback in self.scroll_callbacks:
            try:
                callback(decision)
            except Exception:
                logger.exception("Scroll callback error")
