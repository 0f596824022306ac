import pytest

from signalkit import _tracking


@pytest.fixture(autouse=True)
def _reset_deferred():
    """Deferred tasks and scheduler are module state; start each test clean."""
    _tracking._pending.clear()
    _tracking.set_scheduler(None)
    yield
    _tracking._pending.clear()
    _tracking.set_scheduler(None)
