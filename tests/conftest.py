import pytest

from refi_agent.api import limiter


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    limiter.reset()
    yield
