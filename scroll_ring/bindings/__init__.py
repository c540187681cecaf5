"""
Scroll bindings: which action each ring direction fires, and how it is fired.
"""

from .actions import ACTIONS, ActionDefinition, get_action_by_id
from .bindings import BindingTable, ScrollDispatcher
from .event_bus import CallbackEventBus, EventBus, UInputEventBus

__all__ = [
    'ACTIONS',
    'ActionDefinition',
    'get_action_by_id',
    'BindingTable',
    'ScrollDispatcher',
    'CallbackEventBus',
    'EventBus',
    'UInputEventBus',
]
