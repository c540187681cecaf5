"""
Configuration settings for the scrolling ring listener.
"""

from dataclasses import dataclass, replace


class RingConfig:
    """Configuration constants for scroll gesture recognition."""

    # Minimum |last_y - first_y| for a touch to count as a scroll
    DEFAULT_THRESHOLD = 300
    MIN_THRESHOLD = 100
    MAX_THRESHOLD = 800
    THRESHOLD_STEP = 50

    # Timing configurations (in seconds)
    DEFAULT_DEBOUNCE_INTERVAL = 0.15
    POLL_INTERVAL = 0.05
    RESCAN_INTERVAL = 5.0

    DEFAULT_INVERT = False

    # Persisted setting keys
    BINDINGS_KEY = "scrolling_ring_bindings"
    THRESHOLD_KEY = "scrolling_ring_threshold"
    DEBOUNCE_KEY = "scrolling_ring_debounce"
    INVERT_KEY = "scrolling_ring_invert"

    # Device names that are always treated as scrolling rings
    KNOWN_SCROLLING_RING_NAMES = (
        "Scrolling Ring",
        "Wireless Scrolling Ring",
        "BT Ring",
        "Page Turner Ring",
    )

    @classmethod
    def clamp_threshold(cls, threshold: int) -> int:
        return max(cls.MIN_THRESHOLD, min(cls.MAX_THRESHOLD, int(threshold)))


@dataclass
class RegistryConfig:
    """Scroll tuning handed to each reader when it is opened."""

    threshold: int = RingConfig.DEFAULT_THRESHOLD
    debounce_interval: float = RingConfig.DEFAULT_DEBOUNCE_INTERVAL
    invert: bool = RingConfig.DEFAULT_INVERT

    def __post_init__(self):
        self.threshold = RingConfig.clamp_threshold(self.threshold)
        self.debounce_interval = float(self.debounce_interval)
        self.invert = bool(self.invert)

    def copy(self) -> "RegistryConfig":
        """Return an independent copy for a new reader."""
        return replace(self)
