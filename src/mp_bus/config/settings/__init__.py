"""Config settings – 12-factor env-based configuration."""
from mp_bus.config.settings.base import BusSettings, Settings
from mp_bus.config.settings.loaders import EnvSettingsLoader, SettingsLoader

__all__ = ["BusSettings", "EnvSettingsLoader", "Settings", "SettingsLoader"]
