"""Shared fixtures: every test gets a fresh default runtime on a ManualQueue."""

import pytest

from reactref import ManualQueue, Runtime, use_runtime


@pytest.fixture
def queue():
    """Deterministic flush queue; call queue.flush() to let deferred work run."""
    return ManualQueue()


@pytest.fixture(autouse=True)
def rt(queue):
    """The default runtime for the test, flushing through `queue`."""
    runtime = Runtime(queue=queue, name="test")
    with use_runtime(runtime):
        yield runtime
