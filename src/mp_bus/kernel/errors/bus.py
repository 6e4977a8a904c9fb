"""Bus errors – caller mistakes detected by the dispatch engine."""

from __future__ import annotations

from typing import Any

from mp_bus.kernel.errors.base import BaseError


class BusError(BaseError):
    """Raised by the event bus itself (never by a handler)."""

    default_code = "bus_error"


class InvalidArgumentError(BusError):
    """A subscribe/response/unsubscribe call received an unusable argument.

    ``argument`` names the offending parameter.
    """

    default_code = "invalid_argument"

    def __init__(
        self,
        message: str,
        *,
        argument: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.argument = argument

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        if self.argument is not None:
            base["argument"] = self.argument
        return base


__all__ = ["BusError", "InvalidArgumentError"]
