"""Config validation – errors raised while building bus settings."""
from __future__ import annotations

from collections.abc import Iterable

from mp_bus.kernel.errors import BaseError


class ConfigError(BaseError):
    """Settings could not be loaded (bad environment, bad field types)."""
    default_code = "config_error"


class InvalidSettingValueError(ConfigError):
    """One setting holds a value outside the accepted set.

    The accepted values, when known, are listed in ``detail["allowed"]``.
    """
    default_code = "invalid_setting_value"

    def __init__(self, setting_name: str, value: object, *, allowed: Iterable[str] | None = None) -> None:
        choices = sorted(allowed) if allowed is not None else None
        message = f"{setting_name}={value!r} is not valid"
        if choices:
            message += f"; expected one of {', '.join(choices)}"
        super().__init__(message, detail={"setting": setting_name, "allowed": choices})
        self.setting_name = setting_name
        self.value = value


__all__ = ["ConfigError", "InvalidSettingValueError"]
