"""Common test fixtures."""

import pytest

from geoplacement.config.placement_config import CreditPolicy
from geoplacement.models.base import Location
from geoplacement.storage.events import EventDispatcher
from geoplacement.storage.node_registry import NodeRegistry
from geoplacement.storage.selector import NodeSelector


class FakeClock:
    """Manually advanced clock returning whole seconds."""

    def __init__(self, start=1_700_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class EventRecorder:
    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    def of_type(self, event_type):
        return [event for event in self.events if isinstance(event, event_type)]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def credit_policy():
    return CreditPolicy(50)


@pytest.fixture
def dispatcher(recorder):
    events = EventDispatcher()
    events.subscribe(recorder, name='recorder')
    return events


@pytest.fixture
def registry(credit_policy, dispatcher, clock):
    return NodeRegistry(credit_policy, dispatcher, clock)


@pytest.fixture
def selector(credit_policy):
    return NodeSelector(credit_policy)


@pytest.fixture
def origin():
    return Location(0, 0)
