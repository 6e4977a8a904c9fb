"""Config – 12-factor settings and loaders."""

from mp_bus.config.settings import BusSettings, EnvSettingsLoader, Settings, SettingsLoader
from mp_bus.config.validation import ConfigError, InvalidSettingValueError

__all__ = [
    "BusSettings",
    "ConfigError",
    "EnvSettingsLoader",
    "InvalidSettingValueError",
    "Settings",
    "SettingsLoader",
]
