"""
Pytest configuration and shared fixtures.
"""

import pytest

from report_server.backend import MockReportBackend
from report_server.config import Settings
from report_server.dispatcher import ToolDispatcher
from report_server.registry import ToolRegistry
from report_server.session import SessionState

from .helpers import FakeChannel


@pytest.fixture
def registry():
    return ToolRegistry()


@pytest.fixture
def backend():
    return MockReportBackend()


@pytest.fixture
def dispatcher(registry, backend):
    return ToolDispatcher(registry, backend)


@pytest.fixture
def state():
    return SessionState()


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def settings():
    """Settings with timers slow enough to stay out of the way unless a test speeds them up."""
    return Settings(subscription_interval=60.0, log_message_interval=60.0, tool_call_timeout=5.0)
