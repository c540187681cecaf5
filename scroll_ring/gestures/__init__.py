"""
Scroll gesture detection.

Turns a touch (press, vertical samples, release) into an up/down scroll
decision.
"""

from .gesture_detector import (
    GestureOutcome,
    GestureState,
    ScrollDecision,
    ScrollDirection,
    SwipeDetector,
)

__all__ = [
    'GestureOutcome',
    'GestureState',
    'ScrollDecision',
    'ScrollDirection',
    'SwipeDetector',
]
