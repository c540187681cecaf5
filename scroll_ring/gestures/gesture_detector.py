"""
Scroll gesture detection for scrolling rings.

A ring reports a touch as a BTN_TOUCH press, a run of ABS_Y samples and a
BTN_TOUCH release. The swipe direction comes from comparing the first Y
sample of the touch with the last one:

- last Y > first Y -> scroll up
- last Y < first Y -> scroll down
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from ..config.settings import RegistryConfig

logger = logging.getLogger(__name__)


class ScrollDirection(Enum):
    """Direction of a scroll gesture."""
    UP = "up"
    DOWN = "down"

    @property
    def binding_key(self) -> str:
        """Key used for this direction in persisted bindings."""
        return f"scroll_{self.value}"

    @classmethod
    def from_binding_key(cls, key: str) -> "ScrollDirection":
        for direction in cls:
            if direction.binding_key == key:
                return direction
        raise ValueError(f"Unknown binding key: {key!r}")


class GestureOutcome(Enum):
    """Result of evaluating a finished touch."""
    SCROLLED = "scrolled"
    INCOMPLETE = "incomplete"
    THRESHOLD_NOT_MET = "threshold_not_met"
    DEBOUNCED = "debounced"


@dataclass(frozen=True)
class ScrollDecision:
    """A qualifying swipe, ready to be dispatched."""
    direction: ScrollDirection
    device_identity: Optional[str]
    timestamp: float
    source_path: Optional[str]
    delta: int = 0
    # Kernel timestamp of the release record
    event_time: Optional[float] = None


@dataclass
class GestureState:
    """Per-reader touch tracking."""
    in_touch: bool = False
    first_y: Optional[int] = None
    last_y: Optional[int] = None
    last_scroll_time: Optional[float] = None

    def reset(self):
        """Clear touch tracking. The debounce reference survives."""
        self.in_touch = False
        self.first_y = None
        self.last_y = None


class SwipeDetector:
    """Single-axis, single-stroke swipe detector."""

    def __init__(self, config: RegistryConfig, clock: Callable[[], float] = time.monotonic):
        self.config = config
        self.clock = clock
        self.state = GestureState()

    def touch_start(self):
        logger.debug("Touch start")
        self.state.in_touch = True
        self.state.first_y = None
        self.state.last_y = None

    def track_y(self, value: int):
        """Record an ABS_Y sample. Ignored outside of a touch."""
        if not self.state.in_touch:
            return

        if self.state.first_y is None:
            self.state.first_y = value
            logger.debug(f"First Y={value}")
        else:
            self.state.last_y = value

    def touch_end(self) -> Tuple[GestureOutcome, Optional[ScrollDirection], int]:
        """Evaluate the finished touch and reset tracking.

        Returns the outcome, the direction (only for SCROLLED) and the delta.
        """
        try:
            return self._evaluate()
        finally:
            self.state.reset()

    def _evaluate(self) -> Tuple[GestureOutcome, Optional[ScrollDirection], int]:
        state = self.state
        logger.debug(f"Touch end, first_y={state.first_y} last_y={state.last_y}")

        if state.first_y is None or state.last_y is None:
            logger.debug("Missing Y values, no scroll")
            return GestureOutcome.INCOMPLETE, None, 0

        delta = state.last_y - state.first_y
        threshold = self.config.threshold

        # |delta| == threshold still scrolls
        if abs(delta) < threshold:
            logger.debug(f"Delta {delta} below threshold {threshold}, no scroll")
            return GestureOutcome.THRESHOLD_NOT_MET, None, delta

        now = self.clock()
        if (state.last_scroll_time is not None
                and now - state.last_scroll_time < self.config.debounce_interval):
            logger.debug(f"Debounced ({now - state.last_scroll_time:.3f}s since last scroll)")
            return GestureOutcome.DEBOUNCED, None, delta

        if delta > 0:
            direction = ScrollDirection.DOWN if self.config.invert else ScrollDirection.UP
        else:
            direction = ScrollDirection.UP if self.config.invert else ScrollDirection.DOWN

        state.last_scroll_time = now
        return GestureOutcome.SCROLLED, direction, delta

    def reset(self):
        """Forget the current touch and the debounce reference."""
        self.state = GestureState()
