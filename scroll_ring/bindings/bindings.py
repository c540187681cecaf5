"""
Scroll gesture bindings.

Maps (device address, scroll direction) to an action id, persists the map
through a settings store and fires the bound action when a scroll arrives.
"""

import logging
from typing import Dict, Iterable, Optional

from ..config.settings import RingConfig
from ..core.registry import DeviceRegistry
from ..gestures.gesture_detector import ScrollDecision, ScrollDirection
from ..persistence import SettingsStore
from .actions import ACTIONS, ActionDefinition, get_action_by_id
from .event_bus import EventBus

logger = logging.getLogger(__name__)

DeviceBindings = Dict[ScrollDirection, str]


class BindingTable:
    """Per-device scroll bindings, saved on every change."""

    def __init__(self, settings: Optional[SettingsStore] = None):
        self.settings = settings
        self.device_bindings: Dict[str, DeviceBindings] = {}

    def load(self):
        """Load bindings from the settings store."""
        if self.settings is None:
            logger.warning("No settings provided, cannot load bindings")
            return

        stored = self.settings.read_setting(RingConfig.BINDINGS_KEY) or {}
        self.device_bindings = {}
        for address, entries in stored.items():
            if entries is None:
                entries = {}
            if not isinstance(entries, dict):
                logger.warning(f"Ignoring malformed bindings for {address}: {entries!r}")
                continue
            bindings = {}
            for key, action_id in entries.items():
                try:
                    direction = ScrollDirection.from_binding_key(key)
                except ValueError:
                    logger.warning(f"Ignoring unknown binding {key!r} for {address}")
                    continue
                if action_id:
                    bindings[direction] = action_id
            self.device_bindings[address] = bindings

        logger.info(f"Loaded bindings for {len(self.device_bindings)} devices")

    def save(self):
        """Write bindings to the settings store and flush it."""
        if self.settings is None:
            logger.warning("No settings provided, cannot save bindings")
            return

        self.settings.save_setting(RingConfig.BINDINGS_KEY, self.to_settings())
        try:
            self.settings.flush()
        except OSError as e:
            logger.error(f"Failed to save bindings: {e}")
            return
        logger.debug("Saved bindings to persistent storage")

    def to_settings(self) -> Dict[str, Dict[str, str]]:
        return {
            address: {direction.binding_key: action_id for direction, action_id in bindings.items()}
            for address, bindings in self.device_bindings.items()
        }

    def set_binding(self, address: str, direction: ScrollDirection, action_id: str):
        self.device_bindings.setdefault(address, {})[direction] = action_id
        self.save()
        logger.debug(f"Set {direction.binding_key} -> {action_id} for device {address}")

    def remove_binding(self, address: str, direction: ScrollDirection):
        bindings = self.device_bindings.get(address)
        if bindings is None:
            return

        bindings.pop(direction, None)
        self.save()
        logger.debug(f"Removed {direction.binding_key} binding for device {address}")

    def clear_device_bindings(self, address: str):
        if self.device_bindings.pop(address, None) is not None:
            self.save()
            logger.debug(f"Cleared all bindings for {address}")

    def get_device_bindings(self, address: str) -> DeviceBindings:
        return dict(self.device_bindings.get(address, {}))

    def resolve(self, address: str, direction: ScrollDirection) -> Optional[str]:
        return self.device_bindings.get(address, {}).get(direction)


class ScrollDispatcher:
    """Fires the action bound to each scroll decision."""

    def __init__(self, table: BindingTable, event_bus: EventBus,
                 catalog: Iterable[ActionDefinition] = ACTIONS):
        self.table = table
        self.event_bus = event_bus
        self.catalog = tuple(catalog)
        self.device_path_to_address: Dict[str, str] = {}

    def attach(self, registry: DeviceRegistry):
        """Subscribe to scrolls and device lifecycle on ``registry``."""
        registry.register_scroll_callback(self.dispatch)
        registry.register_device_open_callback(
            lambda address, path: self.set_device_path_mapping(path, address))
        registry.register_device_close_callback(
            lambda address, path: self.remove_device_path_mapping(path))
        logger.info("Scroll dispatcher attached to device registry")

    def set_device_path_mapping(self, device_path: Optional[str], address: Optional[str]):
        if device_path and address:
            self.device_path_to_address[device_path] = address
            logger.debug(f"Mapped {device_path} to {address}")

    def remove_device_path_mapping(self, device_path: Optional[str]):
        if device_path and self.device_path_to_address.pop(device_path, None) is not None:
            logger.debug(f"Removed mapping for {device_path}")

    def identity_for_path(self, device_path: Optional[str]) -> Optional[str]:
        return self.device_path_to_address.get(device_path) if device_path else None

    def get_action_by_id(self, action_id: str) -> Optional[ActionDefinition]:
        return get_action_by_id(action_id, self.catalog)

    def dispatch(self, decision: ScrollDecision) -> Optional[ActionDefinition]:
        """Fire the action bound to a scroll. Misses are logged, never raised."""
        address = decision.device_identity or self.identity_for_path(decision.source_path)
        if address is None:
            logger.warning(f"Scroll from unknown device at {decision.source_path}")
            return None

        action_id = self.table.resolve(address, decision.direction)
        if action_id is None:
            logger.warning(f"No binding for {decision.direction.binding_key} on device: {address}")
            return None

        action = self.get_action_by_id(action_id)
        if action is None:
            logger.warning(f"Unknown action: {action_id}")
            return None

        logger.info(f"Triggering action {action_id} event={action.event}")
        if action.args:
            self.event_bus.send_event(action.event, dict(action.args))
        else:
            self.event_bus.send_event(action.event)
        return action


# Scroll tuning, persisted alongside the bindings

def _save(settings: Optional[SettingsStore], values: Dict[str, object]):
    if settings is None:
        return
    for key, value in values.items():
        settings.save_setting(key, value)
    try:
        settings.flush()
    except OSError as e:
        logger.error(f"Failed to save scroll settings: {e}")


def apply_settings(registry: DeviceRegistry, settings: Optional[SettingsStore]):
    """Push saved scroll tuning into the registry."""
    if settings is None:
        return

    threshold = settings.read_setting(RingConfig.THRESHOLD_KEY)
    debounce = settings.read_setting(RingConfig.DEBOUNCE_KEY)
    invert = settings.read_setting(RingConfig.INVERT_KEY)

    if threshold is None and debounce is None and invert is None:
        return

    registry.update_configuration(threshold=threshold, debounce_interval=debounce, invert=invert)
    logger.info("Applied saved scroll settings")


def toggle_invert(registry: DeviceRegistry, settings: Optional[SettingsStore] = None) -> bool:
    invert = not registry.config.invert
    registry.update_configuration(invert=invert)
    _save(settings, {RingConfig.INVERT_KEY: invert})
    logger.info(f"Scroll direction {'inverted' if invert else 'normal'}")
    return invert


def increase_sensitivity(registry: DeviceRegistry, settings: Optional[SettingsStore] = None) -> int:
    """Lower the threshold by one step."""
    threshold = max(RingConfig.MIN_THRESHOLD, registry.config.threshold - RingConfig.THRESHOLD_STEP)
    registry.update_configuration(threshold=threshold)
    _save(settings, {RingConfig.THRESHOLD_KEY: threshold})
    logger.info(f"Sensitivity increased (threshold: {threshold})")
    return threshold


def decrease_sensitivity(registry: DeviceRegistry, settings: Optional[SettingsStore] = None) -> int:
    """Raise the threshold by one step."""
    threshold = min(RingConfig.MAX_THRESHOLD, registry.config.threshold + RingConfig.THRESHOLD_STEP)
    registry.update_configuration(threshold=threshold)
    _save(settings, {RingConfig.THRESHOLD_KEY: threshold})
    logger.info(f"Sensitivity decreased (threshold: {threshold})")
    return threshold


def reset_to_defaults(registry: DeviceRegistry, settings: Optional[SettingsStore] = None):
    registry.update_configuration(
        threshold=RingConfig.DEFAULT_THRESHOLD,
        debounce_interval=RingConfig.DEFAULT_DEBOUNCE_INTERVAL,
        invert=RingConfig.DEFAULT_INVERT,
    )
    _save(settings, {
        RingConfig.THRESHOLD_KEY: RingConfig.DEFAULT_THRESHOLD,
        RingConfig.DEBOUNCE_KEY: RingConfig.DEFAULT_DEBOUNCE_INTERVAL,
        RingConfig.INVERT_KEY: RingConfig.DEFAULT_INVERT,
    })
    logger.info("Scroll settings reset to defaults")
