"""Observability – structured logging helpers."""
from mp_bus.observability.logging.factory import JsonLoggerFactory, configure_logging
from mp_bus.observability.logging.processors import get_logger

__all__ = [
    "JsonLoggerFactory",
    "configure_logging",
    "get_logger",
]
