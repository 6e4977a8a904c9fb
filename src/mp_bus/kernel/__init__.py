"""Kernel – error hierarchy shared by every mp_bus layer."""
