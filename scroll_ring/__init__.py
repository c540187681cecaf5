"""
Scrolling Ring Listener Package
Turns Bluetooth scrolling ring touches into bound scroll actions.
"""

from .core.listener import RingListener
from .core.registry import DeviceRegistry
from .device.device_manager import DeviceManager
from .device.reader import ScrollingRingReader
from .gestures.gesture_detector import ScrollDecision, ScrollDirection
from .bindings.bindings import BindingTable, ScrollDispatcher

__version__ = "1.0.0"
__all__ = [
    "RingListener",
    "DeviceRegistry",
    "DeviceManager",
    "ScrollingRingReader",
    "ScrollDecision",
    "ScrollDirection",
    "BindingTable",
    "ScrollDispatcher",
]
