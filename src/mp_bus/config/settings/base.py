"""Config settings – Settings base class and BusSettings."""
from __future__ import annotations

import dataclasses
import logging

from mp_bus.config.validation import InvalidSettingValueError

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclasses.dataclass
class Settings:
    """Base class for 12-factor settings."""

    _prefix: dataclasses.ClassVar[str] = ""

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        """Override to add cross-field validation."""


@dataclasses.dataclass
class BusSettings(Settings):
    """Process-level knobs for the bus runtime.

    Read from ``MP_BUS_LOG_LEVEL`` and ``MP_BUS_JSON_LOGS`` by
    :class:`~mp_bus.config.settings.loaders.EnvSettingsLoader`.
    """

    _prefix: dataclasses.ClassVar[str] = "MP_BUS"

    log_level: str = "INFO"
    json_logs: bool = True

    def _validate(self) -> None:
        self.log_level = self.log_level.upper()
        if self.log_level not in _LOG_LEVELS:
            raise InvalidSettingValueError("log_level", self.log_level, allowed=_LOG_LEVELS)

    @property
    def level(self) -> int:
        """Numeric :mod:`logging` level for :attr:`log_level`."""
        return logging.getLevelNamesMapping()[self.log_level]


__all__ = ["BusSettings", "Settings"]
