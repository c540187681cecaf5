"""
Main scrolling ring listener that coordinates discovery, polling and dispatch.
"""

import asyncio
import logging
from typing import Optional

from ..bindings.bindings import BindingTable, ScrollDispatcher, apply_settings
from ..bindings.event_bus import EventBus
from ..config.settings import RegistryConfig, RingConfig
from ..device.device_manager import DeviceManager
from ..errors import DeviceOpenFailed
from ..persistence import SettingsStore
from ..utils.logger import ScrollLogger
from .registry import DeviceRegistry
from .scheduler import PollTask

logger = logging.getLogger(__name__)


class RingListener:
    """Main listener: finds rings, keeps them open and dispatches their scrolls."""

    def __init__(self, settings: Optional[SettingsStore], event_bus: EventBus,
                 device_manager: Optional[DeviceManager] = None,
                 loop: Optional[asyncio.AbstractEventLoop] = None,
                 debug_file: Optional[str] = None,
                 rescan_interval: float = RingConfig.RESCAN_INTERVAL):
        self.settings = settings
        self.device_manager = device_manager or DeviceManager()
        self.registry = DeviceRegistry(RegistryConfig(), loop=loop)
        self.bindings = BindingTable(settings)
        self.dispatcher = ScrollDispatcher(self.bindings, event_bus)
        self.logger = ScrollLogger(debug_file)

        self.rescan_task = PollTask(rescan_interval, self.refresh_devices, loop=loop, name="ScrollRingRescan")
        self.running = False

    def start(self) -> bool:
        """Start the listener. Must be called from the event loop."""
        if self.running:
            return False

        self.bindings.load()
        apply_settings(self.registry, self.settings)

        self.dispatcher.attach(self.registry)
        self.registry.register_scroll_callback(self.logger.log_scroll)
        self.registry.register_device_open_callback(self.logger.log_device_opened)
        self.registry.register_device_close_callback(self.logger.log_device_closed)

        self.running = True
        self.refresh_devices()
        self._print_startup_info()
        if not self.registry.has_readers():
            print("🔍 No scrolling ring connected yet, waiting...")

        self.rescan_task.start()
        return True

    def stop(self):
        """Stop the listener and close every ring."""
        if not self.running:
            return
        self.running = False
        self.rescan_task.stop()
        self.registry.close_all()
        self.registry.clear_callbacks()
        self.logger.close()

    def refresh_devices(self) -> bool:
        """Open any connected ring that has no reader yet."""
        if not self.running:
            return False

        for ring in self.device_manager.find_devices():
            if self.registry.get_reader(ring.address) is not None:
                continue
            try:
                self.registry.open_device(ring.address, ring.path, ring.name)
            except DeviceOpenFailed as e:
                logger.warning(f"Could not open {ring.name} ({ring.address}): {e}")
        return True

    def _print_startup_info(self):
        config = self.registry.config
        print(f"📏 Scroll threshold: {config.threshold}")
        print(f"⏱️ Debounce interval: {config.debounce_interval}s")
        print(f"🔃 Inverted: {'yes' if config.invert else 'no'}")
        for address in self.registry.identities():
            bound = self.bindings.get_device_bindings(address)
            if not bound:
                print(f"⚠️ {address}: no bindings configured")
                continue
            for direction, action_id in bound.items():
                action = self.dispatcher.get_action_by_id(action_id)
                title = action.title if action else f"unknown action {action_id}"
                print(f"🎯 {address}: {direction.binding_key} → {title}")
