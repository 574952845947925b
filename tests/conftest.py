"""Shared fixtures for the prize wheel tests."""

import random
from dataclasses import replace

import pytest

from prize_wheel.inventory import DEFAULT_PRIZES, InventoryStore
from prize_wheel.media import MediaRegistry
from prize_wheel.spin import SpinMachine
from prize_wheel.storage import MemoryStore
from prize_wheel.timers import ManualTimer


class EventRecorder:
    """Collects (event, payload) pairs emitted by the spin machine."""

    def __init__(self):
        self.events = []

    def __call__(self, event, payload):
        self.events.append((event, payload))

    def names(self):
        return [name for name, _ in self.events]

    def payloads(self, name):
        return [payload for event, payload in self.events if event == name]


def with_remaining(*counts):
    """Default table with the given remaining counts, in wheel order."""
    return [replace(p, remaining=min(c, p.total)) for p, c in zip(DEFAULT_PRIZES, counts)]


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def inventory(store):
    return InventoryStore(store)


@pytest.fixture
def media(store):
    return MediaRegistry(store)


@pytest.fixture
def timer():
    return ManualTimer()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def machine(inventory, media, timer, recorder):
    return SpinMachine(inventory, media, timer, emit=recorder, rng=random.Random(1234))
