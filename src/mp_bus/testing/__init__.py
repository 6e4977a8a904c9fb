"""Testing support – recorders and pytest fixtures.

Import in your ``conftest.py``::

    pytest_plugins = ["mp_bus.testing.fixtures"]
"""

from mp_bus.testing.recorder import CallRecorder

__all__ = ["CallRecorder"]
