"""
Shared pytest fixtures and factories for treewatch tests.

The factories keep test setup consistent: a small form-like state tree, a store
built around it, and a recorder that logs every callback invocation.
"""

import pytest

from treewatch import Store, StoreOptions


def create_form_state():
    """Creates the state tree most tests start from

    Returns:
        dict: name, a list of items and a nested profile
    """
    return {
        "name": "a",
        "items": [{"id": 1, "v": "x"}],
        "profile": {"address": {"city": "Oslo", "zip": "0150"}, "age": 30},
    }


def create_call_recorder():
    """Provides a callable that remembers every snapshot it was called with

    Returns:
        Recorder: callable with ``calls`` list and ``count`` property
    """

    class Recorder:
        def __init__(self):
            self.calls = []

        def __call__(self, snapshot):
            self.calls.append(snapshot)

        @property
        def count(self):
            return len(self.calls)

        @property
        def last(self):
            return self.calls[-1]

    return Recorder()


@pytest.fixture
def form_state():
    """Fresh plain-data form state."""
    return create_form_state()


@pytest.fixture
def store(form_state):
    """Store over the default form state."""
    return Store(form_state)


@pytest.fixture
def recorder():
    """A fresh call recorder."""
    return create_call_recorder()


@pytest.fixture
def make_recorder():
    """Factory for tests that need several independent recorders."""
    return create_call_recorder


@pytest.fixture
def strict_store(form_state):
    """Store with a tight cascade cap, for listener loop tests."""
    return Store(form_state, options=StoreOptions(max_cascade_passes=5))
