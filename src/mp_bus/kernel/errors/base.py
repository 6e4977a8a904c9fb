"""Kernel errors – BaseError, root of every error mp-bus raises itself.

Exceptions raised by handlers and responders are never wrapped in these
classes; a ``BaseError`` always means the bus (or its configuration) was
used incorrectly.
"""

from __future__ import annotations

import json
from typing import Any, ClassVar


class BaseError(Exception):
    """Error with a stable ``code`` slug and structured context.

    Args:
        message: Human-readable description.
        code: Overrides the class's ``default_code``.
        detail: Extra structured context, copied on construction.
        cause: Underlying exception, also chained as ``__cause__``.
    """

    default_code: ClassVar[str] = "base_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        detail: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if code is not None else self.default_code
        self.detail: dict[str, Any] = dict(detail) if detail else {}
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict form, suitable as structlog event fields."""
        payload: dict[str, Any] = {"code": self.code, "message": self.message, "detail": self.detail}
        if self.cause is not None:
            payload["cause"] = repr(self.cause)
        return payload

    def __str__(self) -> str:
        # One line of JSON so the error survives plain-text log sinks intact.
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


__all__ = ["BaseError"]
