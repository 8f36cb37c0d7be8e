"""
Shared fixtures for the unlock engine tests.
"""

import pytest

from voiceeye.clients.enrollment_store import InMemoryEnrollmentStore
from voiceeye.config import Settings

from tests.fakes import FakeDevice, RecordingSink, make_frame


@pytest.fixture
def config():
    """Settings with defaults, independent of the environment."""
    return Settings(_env_file=None)


@pytest.fixture
def store():
    return InMemoryEnrollmentStore()


@pytest.fixture
def frame():
    return make_frame()


@pytest.fixture
def device():
    return FakeDevice()


@pytest.fixture
def sink():
    return RecordingSink()
