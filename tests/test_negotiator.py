"""Roots capability negotiation tests."""

from types import SimpleNamespace

from report_server.negotiator import CapabilityNegotiator
from report_server.session import SERVER_LOGGER, SessionState

from .helpers import FakeChannel

ROOTS = [
    {"uri": "file:///work/finance", "name": "finance"},
    {"uri": "file:///work/sales", "name": "sales"},
    {"uri": "file:///work/hr", "name": "hr"},
]


async def test_roots_absent():
    channel = FakeChannel(supports_roots=False)
    state = SessionState()
    await CapabilityNegotiator(channel, state).negotiate()
    assert state.supports_roots is False
    assert channel.list_roots_calls == 0
    assert channel.log_messages == [
        {"level": "info", "data": "Client does not support MCP roots protocol", "logger": SERVER_LOGGER}
    ]


async def test_roots_present():
    channel = FakeChannel(supports_roots=True, roots=ROOTS)
    state = SessionState()
    await CapabilityNegotiator(channel, state).negotiate()
    assert state.supports_roots is True
    assert state.roots == ROOTS
    assert channel.list_roots_calls == 1
    [entry] = channel.log_messages
    assert entry["level"] == "info"
    assert "3 root(s)" in entry["data"]


async def test_roots_response_object():
    channel = FakeChannel(supports_roots=True)
    channel.roots_response = SimpleNamespace(roots=("a", "b"))
    state = SessionState()
    await CapabilityNegotiator(channel, state).negotiate()
    assert state.roots == ["a", "b"]


async def test_negotiates_only_once():
    channel = FakeChannel(supports_roots=True, roots=ROOTS)
    negotiator = CapabilityNegotiator(channel, SessionState())
    await negotiator.negotiate()
    await negotiator.negotiate()
    assert channel.list_roots_calls == 1


async def test_request_failure_is_logged_and_keeps_roots():
    channel = FakeChannel(supports_roots=True)
    channel.list_roots_error = TimeoutError("client did not answer")
    state = SessionState(roots=["previous"])
    await CapabilityNegotiator(channel, state).negotiate()
    assert state.supports_roots is True
    assert state.roots == ["previous"]
    [entry] = channel.log_messages
    assert entry["level"] == "error"
    assert "client did not answer" in entry["data"]


async def test_malformed_response_is_logged_and_keeps_roots():
    channel = FakeChannel(supports_roots=True)
    channel.roots_response = {"unexpected": True}
    state = SessionState(roots=["previous"])
    await CapabilityNegotiator(channel, state).negotiate()
    assert state.roots == ["previous"]
    assert channel.log_messages[0]["level"] == "error"


async def test_roots_changed_refetches_once():
    channel = FakeChannel(supports_roots=True, roots=ROOTS[:1])
    state = SessionState()
    negotiator = CapabilityNegotiator(channel, state)
    await negotiator.negotiate()

    channel.roots_response = {"roots": ROOTS}
    await negotiator.on_roots_list_changed()
    assert channel.list_roots_calls == 2
    assert state.roots == ROOTS
    assert state.supports_roots is True
    assert channel.log_messages[-1]["data"] == "Roots updated: 3 root(s) received from client"


async def test_roots_changed_does_not_touch_supports_roots():
    channel = FakeChannel(supports_roots=False, roots=ROOTS)
    state = SessionState()
    negotiator = CapabilityNegotiator(channel, state)
    await negotiator.negotiate()
    await negotiator.on_roots_list_changed()
    assert state.supports_roots is False
    assert state.roots == ROOTS


async def test_roots_changed_failure_is_swallowed():
    channel = FakeChannel(supports_roots=True, roots=ROOTS)
    state = SessionState()
    negotiator = CapabilityNegotiator(channel, state)
    await negotiator.negotiate()
    channel.list_roots_error = ConnectionError("gone")
    await negotiator.on_roots_list_changed()
    assert state.roots == ROOTS
    assert channel.log_messages[-1]["level"] == "error"


async def test_log_send_failure_is_not_fatal():
    channel = FakeChannel(supports_roots=False)
    channel.send_log_error = RuntimeError("closed")
    state = SessionState()
    await CapabilityNegotiator(channel, state).negotiate()
    assert state.supports_roots is False
