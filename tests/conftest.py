"""Shared fixtures for typeproxy tests."""

import pytest

import typeproxy
from typeproxy.relay import Relay, RelayConfig
from typeproxy.testing import RecordingSink

from sample_contracts import StateWithAsyncMethods, StateWithMethods, StateWithWatch


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def relay():
    r = Relay(RelayConfig(thread_name="typeproxy-test-relay"))
    yield r
    r.close()


@pytest.fixture
def factory(relay):
    return typeproxy.ProxyFactory(relay=relay)


@pytest.fixture
def watched_state(factory, sink):
    state = factory.create(StateWithWatch)
    state.dispatch_sink = sink
    return state


@pytest.fixture
def method_state(factory, sink):
    state = factory.create(StateWithMethods)
    state.dispatch_sink = sink
    return state


@pytest.fixture
def async_state(factory, sink):
    state = factory.create(StateWithAsyncMethods)
    state.dispatch_sink = sink
    return state
