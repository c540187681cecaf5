"""
Registry of open scrolling ring readers.

Owns one reader per device identity (Bluetooth address), polls them all on a
single periodic task and fans lifecycle, key and scroll notifications out to
subscribers.
"""

import asyncio
import errno
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from evdev import InputEvent

from ..config.settings import RegistryConfig, RingConfig
from ..device.reader import ScrollingRingReader
from ..errors import DeviceOpenFailed, DeviceRemoved, ReaderError
from ..gestures.gesture_detector import ScrollDecision
from .scheduler import PollTask

logger = logging.getLogger(__name__)

DeviceCallback = Callable[[str, Optional[str]], None]
RegistryKeyCallback = Callable[[str, InputEvent], None]
RegistryScrollCallback = Callable[[ScrollDecision], None]


@dataclass
class ReaderInfo:
    """An open reader and the device it belongs to."""
    reader: ScrollingRingReader
    device_address: str
    device_path: str
    device_name: Optional[str] = None


def _notify(callbacks: List[Callable], label: str, *args):
    for callback in callbacks:
        try:
            callback(*args)
        except Exception:
            logger.exception(f"{label} callback error")


class DeviceRegistry:
    """Manages the set of open scrolling ring readers and their poll task."""

    def __init__(self, config: Optional[RegistryConfig] = None,
                 poll_interval: float = RingConfig.POLL_INTERVAL,
                 loop: Optional[asyncio.AbstractEventLoop] = None,
                 reader_factory: Callable[..., ScrollingRingReader] = ScrollingRingReader):
        self.config = (config or RegistryConfig()).copy()
        self.poll_interval = poll_interval
        self.reader_factory = reader_factory
        self.ring_readers: Dict[str, ReaderInfo] = {}

        self.scroll_callbacks: List[RegistryScrollCallback] = []
        self.key_callbacks: List[RegistryKeyCallback] = []
        self.device_open_callbacks: List[DeviceCallback] = []
        self.device_close_callbacks: List[DeviceCallback] = []

        self.poll_task = PollTask(poll_interval, self._tick, loop=loop, name="ScrollRingPoll")
        self._pending: List[ScrollDecision] = []

    # Subscribers

    def register_scroll_callback(self, callback: RegistryScrollCallback):
        self.scroll_callbacks.append(callback)

    def register_key_callback(self, callback: RegistryKeyCallback):
        self.key_callbacks.append(callback)

    def register_device_open_callback(self, callback: DeviceCallback):
        self.device_open_callbacks.append(callback)

    def register_device_close_callback(self, callback: DeviceCallback):
        self.device_close_callbacks.append(callback)

    def clear_callbacks(self):
        self.scroll_callbacks = []
        self.key_callbacks = []
        self.device_open_callbacks = []
        self.device_close_callbacks = []

    # Device lifecycle

    def open_device(self, identity: str, path: Optional[str],
                    name: Optional[str] = None) -> ScrollingRingReader:
        """Open a reader for ``identity`` at ``path`` and start polling.

        An identity that already has an open reader keeps it.

        Raises:
            DeviceOpenFailed: the device node could not be opened
            RuntimeError: no event loop was given and none is running
        """
        existing = self.ring_readers.get(identity)
        if existing is not None and existing.reader.is_open:
            logger.debug(f"Reader for {identity} already open at {existing.device_path}")
            return existing.reader

        if not path:
            logger.warning(f"No device path for {identity}")
            raise DeviceOpenFailed(errno.ENOENT, path)

        # Fail before the reader exists, so no fd is left without a poll task
        self.poll_task.ensure_loop()

        logger.info(f"Opening scrolling ring {name or identity} at {path}")
        reader = self.reader_factory(self.config, identity=identity)
        reader.open(path)

        reader.register_scroll_callback(self._collect)
        reader.register_key_callback(
            lambda event, _path: _notify(self.key_callbacks, "Key", identity, event))

        self.ring_readers[identity] = ReaderInfo(reader, identity, path, name)
        _notify(self.device_open_callbacks, "Device open", identity, path)

        self.start_polling()
        return reader

    def close_device(self, identity: str):
        """Close and forget the reader for ``identity``, if any."""
        reader_info = self.ring_readers.pop(identity, None)
        if reader_info is None:
            logger.debug(f"No reader for {identity}")
            return

        logger.info(f"Closing scrolling ring for {identity}")
        reader_info.reader.close()
        _notify(self.device_close_callbacks, "Device close", identity, reader_info.device_path)

        if not self.has_readers():
            self.stop_polling()

    def close_all(self):
        self.stop_polling()
        readers, self.ring_readers = self.ring_readers, {}
        for identity, reader_info in readers.items():
            logger.info(f"Closing reader for {identity}")
            reader_info.reader.close()
            _notify(self.device_close_callbacks, "Device close", identity, reader_info.device_path)

    # Queries

    def has_readers(self) -> bool:
        return any(info.reader.is_open for info in self.ring_readers.values())

    def get_reader(self, identity: str) -> Optional[ScrollingRingReader]:
        reader_info = self.ring_readers.get(identity)
        return reader_info.reader if reader_info else None

    def identities(self) -> List[str]:
        return list(self.ring_readers)

    @property
    def is_polling(self) -> bool:
        return self.poll_task.is_running

    # Polling

    def start_polling(self):
        if self.poll_task.start():
            logger.info(f"Polling {len(self.ring_readers)} scrolling ring reader(s)")

    def stop_polling(self):
        self.poll_task.stop()

    def poll_all(self, timeout: float = 0) -> List[ScrollDecision]:
        """Poll every open reader once and deliver the resulting scrolls."""
        removed = []
        for identity, reader_info in list(self.ring_readers.items()):
            try:
                reader_info.reader.poll(timeout)
            except DeviceRemoved:
                logger.warning(f"Scrolling ring {identity} removed")
            except ReaderError as e:
                logger.warning(f"Read error on {identity}: {e}")

            if not reader_info.reader.is_open:
                removed.append(identity)

        for identity in removed:
            reader_info = self.ring_readers.pop(identity, None)
            if reader_info is not None:
                _notify(self.device_close_callbacks, "Device close",
                        identity, reader_info.device_path)

        decisions, self._pending = self._pending, []
        for decision in decisions:
            _notify(self.scroll_callbacks, "Scroll", decision)
        return decisions

    def _collect(self, decision: ScrollDecision):
        self._pending.append(decision)

    def _tick(self) -> bool:
        if self.has_readers():
            self.poll_all(0)
        if not self.has_readers():
            logger.info("Stopped polling (no readers)")
            return False
        return True

    # Configuration

    def update_configuration(self, threshold: Optional[int] = None,
                             debounce_interval: Optional[float] = None,
                             invert: Optional[bool] = None):
        """Change the defaults for new readers and push them to open ones."""
        if threshold is not None:
            threshold = RingConfig.clamp_threshold(threshold)
            self.config.threshold = threshold
        if debounce_interval is not None:
            self.config.debounce_interval = float(debounce_interval)
        if invert is not None:
            self.config.invert = bool(invert)

        for reader_info in self.ring_readers.values():
            reader = reader_info.reader
            if threshold is not None:
                reader.threshold = threshold
            if debounce_interval is not None:
                reader.debounce_interval = debounce_interval
            if invert is not None:
                reader.invert = invert
