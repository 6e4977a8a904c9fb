"""Shared pytest configuration."""

pytest_plugins = ["mp_bus.testing.fixtures"]
