"""
Event buses that bound actions are fired through.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from evdev import UInput, ecodes

from .actions import ACTIONS, ActionDefinition

logger = logging.getLogger(__name__)

EventHandler = Callable[[Optional[Dict[str, Any]]], None]


class EventBus(Protocol):
    """Anything that can receive a named event with an optional payload."""

    def send_event(self, name: str, args: Optional[Dict[str, Any]] = None) -> None:
        ...


class CallbackEventBus:
    """Synchronous in-process bus: named events go to subscribed handlers."""

    def __init__(self):
        self.handlers: Dict[str, List[EventHandler]] = defaultdict(list)

    def subscribe(self, name: str, handler: EventHandler):
        self.handlers[name].append(handler)

    def unsubscribe(self, name: str, handler: EventHandler):
        if handler in self.handlers.get(name, []):
            self.handlers[name].remove(handler)

    def send_event(self, name: str, args: Optional[Dict[str, Any]] = None) -> None:
        handlers = self.handlers.get(name)
        if not handlers:
            logger.debug(f"No handlers for event {name}")
            return

        for handler in list(handlers):
            try:
                handler(args)
            except Exception:
                logger.exception(f"Handler for event {name} failed")


class UInputEventBus:
    """Turns events named after evdev keys into key taps on a virtual keyboard."""

    DEVICE_NAME = "scroll-ring-keys"

    def __init__(self, actions: Iterable[ActionDefinition] = ACTIONS, uinput: Optional[UInput] = None):
        self.key_codes = {}
        for action in actions:
            code = ecodes.ecodes.get(action.event)
            if code is None:
                logger.warning(f"Action {action.id}: {action.event} is not a key name")
                continue
            self.key_codes[action.event] = code

        if uinput is None:
            uinput = UInput({ecodes.EV_KEY: sorted(set(self.key_codes.values()))},
                            name=self.DEVICE_NAME)
        self.uinput = uinput

    def send_event(self, name: str, args: Optional[Dict[str, Any]] = None) -> None:
        code = self.key_codes.get(name)
        if code is None:
            logger.warning(f"Unknown key event: {name}")
            return

        repeat = int((args or {}).get("repeat", 1))
        for _ in range(max(repeat, 1)):
            self.uinput.write(ecodes.EV_KEY, code, 1)
            self.uinput.write(ecodes.EV_KEY, code, 0)
            self.uinput.syn()
        logger.debug(f"Sent {name} x{repeat}")

    def close(self):
        self.uinput.close()
