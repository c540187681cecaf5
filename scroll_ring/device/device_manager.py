"""
Device management for scrolling ring discovery.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

import evdev

from ..config.settings import RingConfig

logger = logging.getLogger(__name__)

_RING_NAME_PATTERN = re.compile(r"scroll|ring|page.*turn")


@dataclass
class RingDeviceInfo:
    """A connected input device that looks like a scrolling ring."""
    address: str
    name: str
    path: str


class DeviceManager:
    """Finds scrolling rings among the connected input devices."""

    def __init__(self, known_names: Optional[Iterable[str]] = None,
                 marked_addresses: Optional[Iterable[str]] = None):
        if known_names is None:
            known_names = RingConfig.KNOWN_SCROLLING_RING_NAMES
        self.known_scrolling_ring_names = list(known_names)
        self.marked_addresses = set(marked_addresses or ())

    def is_scrolling_ring_device(self, device_name: Optional[str]) -> bool:
        """Check if a device name looks like a scrolling ring."""
        if not device_name:
            return False

        lower_name = device_name.lower()
        for known_name in self.known_scrolling_ring_names:
            if known_name.lower() in lower_name:
                return True

        return _RING_NAME_PATTERN.search(lower_name) is not None

    def add_known_name(self, device_name: str):
        if device_name not in self.known_scrolling_ring_names:
            self.known_scrolling_ring_names.append(device_name)

    def mark_device(self, address: str):
        """Treat the device with this address as a ring regardless of its name."""
        self.marked_addresses.add(address)

    def unmark_device(self, address: str):
        self.marked_addresses.discard(address)

    def is_marked(self, address: str) -> bool:
        return address in self.marked_addresses

    @staticmethod
    def device_address(device: evdev.InputDevice) -> str:
        """Stable identity for a device: Bluetooth address, else phys, else path."""
        return device.uniq or device.phys or device.path

    def find_devices(self) -> List[RingDeviceInfo]:
        """Find every connected scrolling ring."""
        rings = []
        for path in evdev.list_devices():
            try:
                device = evdev.InputDevice(path)
            except OSError as e:
                logger.debug(f"Skipping {path}: {e}")
                continue

            try:
                address = self.device_address(device)
                # Touchpads report the same touch axes, so only name or mark counts
                if self.is_marked(address) or self.is_scrolling_ring_device(device.name):
                    rings.append(RingDeviceInfo(address, device.name, path))
                    logger.info(f"Found scrolling ring: {device.name} ({address}) at {path}")
            finally:
                device.close()

        if not rings:
            logger.debug("No scrolling ring devices found")
        return rings

    def find_device_path(self, address: str) -> Optional[str]:
        """Current device node for a ring, which can change across reconnects."""
        for ring in self.find_devices():
            if ring.address == address:
                return ring.path
        return None
