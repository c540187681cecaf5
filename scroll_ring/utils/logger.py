"""
Console and debug-file logging for scroll gestures.
"""

import datetime
import logging
from typing import Optional

from ..gestures.gesture_detector import ScrollDecision, ScrollDirection

logger = logging.getLogger(__name__)


class ScrollLogger:
    """Prints scrolls and device changes, optionally mirroring them to a debug file."""

    def __init__(self, debug_file: Optional[str] = None):
        self.debug_file = None
        if debug_file:
            try:
                self.debug_file = open(debug_file, 'w')
                self.debug_file.write(f"Debug logging started at {datetime.datetime.now()}\n")
                self.debug_file.flush()
            except OSError as e:
                logger.warning(f"Could not open debug file: {e}")

    @staticmethod
    def _timestamp() -> str:
        return datetime.datetime.now().strftime("%H:%M:%S.%f")[:-3]

    def _write_debug(self, message: str):
        if not self.debug_file:
            return
        try:
            self.debug_file.write(message + "\n")
            self.debug_file.flush()
        except OSError as e:
            logger.warning(f"Debug file write failed, disabling: {e}")
            self.debug_file = None

    def log_scroll(self, decision: ScrollDecision):
        """Log a scroll decision."""
        timestamp = self._timestamp()
        arrow = "⬆️" if decision.direction is ScrollDirection.UP else "⬇️"
        print(f"[{timestamp}] {arrow} SCROLL {decision.direction.value.upper()}: "
              f"{decision.device_identity} [delta {decision.delta}]")
        self._write_debug(f"[{timestamp}] {decision}")

    def log_device_opened(self, address: str, device_path: Optional[str]):
        timestamp = self._timestamp()
        print(f"[{timestamp}] 💍 Ring connected: {address} at {device_path}")
        self._write_debug(f"[{timestamp}] opened {address} {device_path}")

    def log_device_closed(self, address: str, device_path: Optional[str]):
        timestamp = self._timestamp()
        print(f"[{timestamp}] 🔌 Ring disconnected: {address} ({device_path})")
        self._write_debug(f"[{timestamp}] closed {address} {device_path}")

    def close(self):
        """Close the debug file."""
        if self.debug_file:
            self.debug_file.close()
            self.debug_file = None
