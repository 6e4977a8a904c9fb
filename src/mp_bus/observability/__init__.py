"""Observability – logging for the bus runtime."""
