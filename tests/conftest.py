from unittest.mock import MagicMock

import pytest

from provisioner.providers.librato_provider.librato_client import (
    LibratoApiException,
    LibratoDecodeException,
    decode,
)
from provisioner.providers.librato_provider.librato_models import Alert


class FakeClock:
    """Monotonic clock that only moves when something sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def librato_client():
    """A LibratoClient double, every service method is a MagicMock."""
    return MagicMock()


def not_found():
    return LibratoApiException("404 not found", status_code=404)


def server_error():
    return LibratoApiException("500 boom", status_code=500)


def malformed():
    """The error the client raises for a response body that doesn't fit."""
    with pytest.raises(LibratoDecodeException) as e:
        decode(Alert, {"name": "cpu-high", "services": [{"title": "no id"}]})
    return e.value
