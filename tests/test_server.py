"""End-to-end tests over an in-memory MCP client/server session."""

import asyncio
import json

import mcp.types as types
import pytest
from mcp.shared.exceptions import McpError
from mcp.shared.memory import create_connected_server_and_client_session
from pydantic import AnyUrl, FileUrl

from report_server.backend import MockReportBackend
from report_server.config import Settings
from report_server.errors import NOT_FOUND
from report_server.server import create_server

from .helpers import FixedChoice, wait_until


@pytest.fixture
def server(settings):
    return create_server(settings, backend=MockReportBackend())


def only_session(server):
    [report_session] = server.sessions.values()
    return report_session


def roots_callback(roots, calls):
    async def list_roots(context):
        calls.append(1)
        return types.ListRootsResult(roots=roots)

    return list_roots


async def test_list_tools(server):
    async with create_connected_server_and_client_session(server) as client:
        result = await client.list_tools()
    assert [t.name for t in result.tools] == ["search", "fetch"]
    search = result.tools[0]
    assert search.inputSchema["required"] == ["query"]
    assert search.outputSchema["type"] == "object"
    assert result.tools[1].outputSchema["type"] == "object"


async def test_call_search(server):
    async with create_connected_server_and_client_session(server) as client:
        result = await client.call_tool("search", {"query": "anything"})
    assert not result.isError
    assert result.structuredContent == {"results": [{"id": "-202", "name": "Balance Sheet Report"}]}
    assert json.loads(result.content[0].text) == result.structuredContent


async def test_call_fetch(server):
    async with create_connected_server_and_client_session(server) as client:
        result = await client.call_tool("fetch", {"id": "-202"})
        assert result.structuredContent["title"] == "Balance Sheet Report"

        with pytest.raises(McpError) as exc:
            await client.call_tool("fetch", {"id": "X"})
    assert exc.value.error.code == NOT_FOUND


async def test_unknown_tool_rejected(server):
    async with create_connected_server_and_client_session(server) as client:
        with pytest.raises(McpError) as exc:
            await client.call_tool("bogus-tool", {})
    assert exc.value.error.code == types.INVALID_PARAMS
    assert "bogus-tool" in exc.value.error.message


async def test_invalid_arguments_rejected_with_field_detail(server):
    async with create_connected_server_and_client_session(server) as client:
        with pytest.raises(McpError) as exc:
            await client.call_tool("search", {"query": 5})
    assert exc.value.error.code == types.INVALID_PARAMS
    assert exc.value.error.data["errors"][0]["field"] == "query"


async def test_capabilities_advertised(server):
    capabilities = server.create_initialization_options().capabilities
    assert capabilities.tools is not None
    assert capabilities.logging is not None
    assert capabilities.resources.subscribe is True


async def test_negotiation_without_roots(server):
    messages = []

    async def on_log(params):
        messages.append(params)

    async with create_connected_server_and_client_session(server, logging_callback=on_log) as client:
        await wait_until(lambda: any("does not support" in str(m.data) for m in messages))
        state = only_session(server).state
        assert state.supports_roots is False
        assert state.roots == []
        await client.send_ping()


async def test_negotiation_with_roots_and_change(server):
    calls = []
    messages = []
    roots = [types.Root(uri=FileUrl("file:///work/finance"), name="finance")]

    async def on_log(params):
        messages.append(params)

    callback = roots_callback(roots, calls)
    async with create_connected_server_and_client_session(
        server, list_roots_callback=callback, logging_callback=on_log
    ) as client:
        await wait_until(lambda: any("Initial roots received: 1 root(s)" in str(m.data) for m in messages))
        state = only_session(server).state
        assert state.supports_roots is True
        assert len(state.roots) == 1
        assert calls == [1]

        roots.append(types.Root(uri=FileUrl("file:///work/sales"), name="sales"))
        await client.send_roots_list_changed()
        await wait_until(lambda: any("Roots updated: 2 root(s)" in str(m.data) for m in messages))
        assert len(state.roots) == 2
        assert len(calls) == 2
        assert state.supports_roots is True


async def test_subscription_updates_and_teardown():
    settings = Settings(subscription_interval=0.02, log_message_interval=60.0)
    server = create_server(settings, backend=MockReportBackend())
    updates = []

    async def on_message(message):
        if isinstance(message, types.ServerNotification) and isinstance(
            message.root, types.ResourceUpdatedNotification
        ):
            updates.append(str(message.root.params.uri))

    async with create_connected_server_and_client_session(server, message_handler=on_message) as client:
        await client.subscribe_resource(AnyUrl("report://reports/-202"))
        await wait_until(lambda: len(updates) >= 2)
        assert set(updates) == {"report://reports/-202"}

        await client.unsubscribe_resource(AnyUrl("report://reports/-202"))
        assert only_session(server).state.subscriptions == set()
        notifier = only_session(server).notifier

    assert server.sessions == {}
    assert not notifier.active


async def test_periodic_log_messages_and_set_level():
    settings = Settings(subscription_interval=60.0, log_message_interval=0.02)
    server = create_server(settings, backend=MockReportBackend(), rng=FixedChoice(4))
    messages = []

    async def on_log(params):
        messages.append(params)

    async with create_connected_server_and_client_session(server, logging_callback=on_log) as client:
        await wait_until(lambda: any(m.level == "error" for m in messages))
        assert any(m.data == "Error-level message" for m in messages)

        await client.set_logging_level("emergency")
        assert only_session(server).state.log_level == "emergency"


async def test_unanswered_roots_request_times_out(caplog):
    settings = Settings(subscription_interval=60.0, log_message_interval=0.02, roots_timeout=0.1)
    server = create_server(settings, backend=MockReportBackend())

    async def never_answers(context):
        await asyncio.sleep(3600)

    async with create_connected_server_and_client_session(server, list_roots_callback=never_answers):
        await wait_until(lambda: server.sessions and only_session(server).notifier.active)
        await wait_until(lambda: "Failed to request initial roots" in caplog.text)
        state = only_session(server).state
        assert state.supports_roots is True
        assert state.roots == []
        assert only_session(server).notifier.active
    assert "did not answer roots/list within 0.1s" in caplog.text
    assert server.sessions == {}
