"""
Actions that scroll gestures can be bound to.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional


@dataclass(frozen=True)
class ActionDefinition:
    """A bindable action: the event name sent to the event bus plus static args."""
    id: str
    title: str
    event: str
    args: Optional[Dict[str, Any]] = field(default=None, hash=False, compare=False)


# Event names are evdev key names, so UInputEventBus can fire them directly
ACTIONS = (
    ActionDefinition("next_page", "Next page", "KEY_PAGEDOWN"),
    ActionDefinition("prev_page", "Previous page", "KEY_PAGEUP"),
    ActionDefinition("skip_forward", "Skip 5 pages forward", "KEY_PAGEDOWN", {"repeat": 5}),
    ActionDefinition("skip_back", "Skip 5 pages back", "KEY_PAGEUP", {"repeat": 5}),
    ActionDefinition("line_down", "Scroll down one line", "KEY_DOWN"),
    ActionDefinition("line_up", "Scroll up one line", "KEY_UP"),
    ActionDefinition("next_item", "Next item", "KEY_RIGHT"),
    ActionDefinition("prev_item", "Previous item", "KEY_LEFT"),
    ActionDefinition("go_top", "Go to start", "KEY_HOME"),
    ActionDefinition("go_bottom", "Go to end", "KEY_END"),
    ActionDefinition("volume_up", "Volume up", "KEY_VOLUMEUP"),
    ActionDefinition("volume_down", "Volume down", "KEY_VOLUMEDOWN"),
    ActionDefinition("next_track", "Next track", "KEY_NEXTSONG"),
    ActionDefinition("prev_track", "Previous track", "KEY_PREVIOUSSONG"),
    ActionDefinition("play_pause", "Play / pause", "KEY_PLAYPAUSE"),
)


def get_action_by_id(action_id: str,
                     catalog: Iterable[ActionDefinition] = ACTIONS) -> Optional[ActionDefinition]:
    for action in catalog:
        if action.id == action_id:
            return action
    return None
