import pytest

from guestbook.core.manager import LifecycleManager
from guestbook.core.settings import get_settings
from guestbook.transport.inmemory import InMemoryRemoteLog


class StepClock:
    """Deterministic clock: every call returns the previous value + step."""

    def __init__(self, start: float, step: float = 1.0) -> None:
        self.value = start - step
        self.step = step

    def __call__(self) -> float:
        self.value += self.step
        return self.value


@pytest.fixture
def local_clock():
    return StepClock(10_000.0)


@pytest.fixture
def server_clock():
    return StepClock(100.0)


@pytest.fixture
def remote(server_clock):
    return InMemoryRemoteLog(clock=server_clock)


@pytest.fixture
def manager(remote, local_clock):
    return LifecycleManager(remote, clock=local_clock)


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
