from PySide6.QtCore import QSettings
from typing import Any, Optional


class SettingsManager:
    """Manager for persistent application settings using QSettings."""

    # Default values for all settings
    DEFAULTS = {
        # Quality search defaults
        "convert/initial_quality": 0.8,
        "convert/quality_step": 0.1,
        "convert/min_quality": 0.1,

        # UI defaults
        "last_directory": "",
        "window_geometry": None,
        "window_state": None,
    }

    def __init__(self, settings: Optional[QSettings] = None):
        self.settings = settings if settings is not None else QSettings()

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """Get a setting value."""
        if default is None:
            default = self.DEFAULTS.get(key)

        value = self.settings.value(key, default)

        # Handle bool conversion
        if isinstance(default, bool):
            return value in (True, 'true', '1', 1)

        # Handle numeric conversion (INI backends store everything as text)
        if isinstance(default, (int, float)) and isinstance(value, str):
            try:
                return type(default)(value)
            except (ValueError, TypeError):
                return default

        return value

    def set(self, key: str, value: Any):
        """Set a setting value."""
        self.settings.setValue(key, value)

    def reset(self):
        """Reset all settings to defaults."""
        self.settings.clear()

    def get_all_convert_settings(self) -> dict:
        """Get the quality search settings as a dictionary."""
        return {
            "initial_quality": self.get("convert/initial_quality"),
            "quality_step": self.get("convert/quality_step"),
            "min_quality": self.get("convert/min_quality"),
        }
