"""
Settings persistence.

Stores scrolling ring settings (bindings and scroll tuning) in a JSON file.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

logger = logging.getLogger(__name__)


class SettingsStore(Protocol):
    """Key/value settings with explicit flush."""

    def read_setting(self, key: str, default: Any = None) -> Any:
        ...

    def save_setting(self, key: str, value: Any) -> None:
        ...

    def flush(self) -> None:
        ...


class JsonSettingsStore:
    """
    Settings store backed by a JSON file.

    Writes are kept in memory until ``flush`` is called.
    """

    DEFAULT_FILENAME = "scroll_ring_settings.json"

    def __init__(self, settings_file: Optional[Union[str, Path]] = None):
        """
        Initialize the store.

        Args:
            settings_file: JSON file to use. Defaults to the user's config directory.
        """
        if settings_file is None:
            settings_file = Path.home() / ".config" / "scroll-ring" / self.DEFAULT_FILENAME

        self.settings_file = Path(settings_file)
        self._settings: Dict[str, Any] = {}
        self.load()

    def load(self) -> bool:
        """
        Load settings from file.

        Returns:
            True if settings were loaded, False if using defaults
        """
        if not self.settings_file.exists():
            logger.info(f"No settings file found at {self.settings_file}, using defaults")
            return False

        try:
            with open(self.settings_file, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load settings: {e}")
            return False

        if not isinstance(data, dict):
            logger.error(f"Ignoring settings file {self.settings_file}: not a JSON object")
            return False

        self._settings = data
        logger.info(f"Loaded settings from {self.settings_file}")
        return True

    def read_setting(self, key: str, default: Any = None) -> Any:
        return self._settings.get(key, default)

    def save_setting(self, key: str, value: Any) -> None:
        self._settings[key] = value

    def flush(self) -> None:
        """Write settings to disk."""
        self.settings_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.settings_file, 'w') as f:
            json.dump(self._settings, f, indent=2, sort_keys=True)
        logger.debug(f"Saved settings to {self.settings_file}")
