from __future__ import annotations

import pytest

from velib.bus import LocalBus, Signal
from velib.settings import LocalSettings


@pytest.fixture
def bus() -> LocalBus:
    return LocalBus()


@pytest.fixture
def settings(bus: LocalBus) -> LocalSettings:
    return LocalSettings(bus)


@pytest.fixture
def signals(bus: LocalBus) -> list[Signal]:
    received: list[Signal] = []
    bus.subscribe(received.append)
    return received
