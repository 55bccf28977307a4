# -*- coding: utf-8 -*-
"""
MCP binding: exposes the tool dispatcher and the session lifecycle over the
`mcp` SDK's low-level server.

Lifecycle of one client session:
1) `initialize` handshake (handled by the SDK).
2) `notifications/initialized` -> the notifier starts, then roots negotiation
   (bounded by ROOTS_TIMEOUT).
3) `tools/list` / `tools/call` served by the registry and the dispatcher.
   `resources/subscribe` / `resources/unsubscribe` edit the subscription set,
   `logging/setLevel` sets the minimum level of server log messages.
4) `notifications/roots/list_changed` -> roots are fetched again.
5) Transport closes -> timers cancelled, session state dropped.
"""

import asyncio
import logging
import random
from contextvars import ContextVar
from typing import Any, Dict, List, Optional

import mcp.types as types
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.session import ServerSession
from mcp.server.stdio import stdio_server
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER
from mcp.shared.exceptions import McpError
from pydantic import AnyUrl

from .backend import ReportBackend, build_backend
from .config import Settings
from .dispatcher import ToolDispatcher
from .errors import BackendFailure, ToolError
from .negotiator import CapabilityNegotiator
from .notifier import SessionNotifier
from .registry import ToolRegistry
from .session import SessionState

logger = logging.getLogger(__name__)

# Sessions opened by the `run()` call currently on the stack, closed when it returns.
_run_sessions: ContextVar[Optional[List[ServerSession]]] = ContextVar(
    "report_server_run_sessions", default=None
)


class McpSessionChannel:
    """SessionChannel backed by an SDK `ServerSession`."""

    def __init__(self, session: ServerSession, roots_timeout: float = 10.0):
        self.session = session
        self.roots_timeout = roots_timeout

    def client_supports_roots(self) -> bool:
        params = self.session.client_params
        return params is not None and params.capabilities.roots is not None

    async def list_roots(self) -> types.ListRootsResult:
        try:
            return await asyncio.wait_for(self.session.list_roots(), timeout=self.roots_timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(f"client did not answer roots/list within {self.roots_timeout}s") from None

    async def send_resource_updated(self, uri: str) -> None:
        await self.session.send_resource_updated(AnyUrl(uri))

    async def send_log_message(self, level: str, data: Any, logger: Optional[str] = None) -> None:
        await self.session.send_log_message(level=level, data=data, logger=logger)


class ReportSession:
    """State, negotiator and notifier of one connected client."""

    def __init__(self, channel: McpSessionChannel, settings: Settings, rng: Optional[random.Random] = None):
        self.channel = channel
        self.state = SessionState()
        self.negotiator = CapabilityNegotiator(channel, self.state)
        self.notifier = SessionNotifier(
            channel,
            self.state,
            subscription_interval=settings.subscription_interval,
            log_interval=settings.log_message_interval,
            rng=rng,
        )

    async def on_initialized(self, session_id: Optional[str] = None) -> None:
        params = self.channel.session.client_params
        self.state.client_capabilities = params.capabilities if params is not None else None
        # timers run regardless of how the roots exchange goes
        self.notifier.start(session_id)
        await self.negotiator.negotiate()

    def close(self) -> None:
        self.notifier.stop()
        self.state.subscriptions.clear()
        self.state.roots.clear()


class ReportMcpServer(Server):
    def __init__(
        self,
        dispatcher: ToolDispatcher,
        settings: Settings,
        rng: Optional[random.Random] = None,
    ):
        super().__init__(
            settings.server_name,
            version=settings.server_version,
            instructions=settings.load_instructions(),
        )
        self.dispatcher = dispatcher
        self.settings = settings
        self.rng = rng
        self.sessions: Dict[ServerSession, ReportSession] = {}

        self.request_handlers[types.ListToolsRequest] = self._handle_list_tools
        self.request_handlers[types.CallToolRequest] = self._handle_call_tool
        self.request_handlers[types.ListResourcesRequest] = self._handle_list_resources
        self.request_handlers[types.SubscribeRequest] = self._handle_subscribe
        self.request_handlers[types.UnsubscribeRequest] = self._handle_unsubscribe
        self.request_handlers[types.SetLevelRequest] = self._handle_set_level

    # -------------------------------------------------------------------------
    # Session bookkeeping
    # -------------------------------------------------------------------------
    def session_for(self, session: ServerSession) -> ReportSession:
        report_session = self.sessions.get(session)
        if report_session is None:
            report_session = ReportSession(
                McpSessionChannel(session, self.settings.roots_timeout), self.settings, self.rng
            )
            self.sessions[session] = report_session
        return report_session

    def close_session(self, session: ServerSession) -> None:
        report_session = self.sessions.pop(session, None)
        if report_session is not None:
            report_session.close()
            logger.info("Session closed, notification timers cancelled")

    def _current(self) -> ReportSession:
        """Session of the request being handled; records the HTTP session id on first sight."""
        report_session = self.session_for(self.request_context.session)
        if report_session.state.session_id is None:
            headers = getattr(self.request_context.request, "headers", None)
            if headers is not None and headers.get(MCP_SESSION_ID_HEADER):
                report_session.state.session_id = headers[MCP_SESSION_ID_HEADER]
        return report_session

    async def run(self, read_stream, write_stream, initialization_options, *args, **kwargs):
        opened: List[ServerSession] = []
        token = _run_sessions.set(opened)
        try:
            await super().run(read_stream, write_stream, initialization_options, *args, **kwargs)
        finally:
            _run_sessions.reset(token)
            for session in opened:
                self.close_session(session)

    async def _handle_message(self, message, session, lifespan_context, raise_exceptions=False):
        opened = _run_sessions.get()
        if opened is not None and session not in opened:
            opened.append(session)

        if isinstance(message, types.ClientNotification):
            notification = message.root
            if isinstance(notification, types.InitializedNotification):
                await self.session_for(session).on_initialized()
            elif isinstance(notification, types.RootsListChangedNotification):
                await self.session_for(session).negotiator.on_roots_list_changed()

        await super()._handle_message(message, session, lifespan_context, raise_exceptions)

    def get_capabilities(self, notification_options, experimental_capabilities):
        capabilities = super().get_capabilities(notification_options, experimental_capabilities)
        capabilities.resources = types.ResourcesCapability(subscribe=True, listChanged=False)
        return capabilities

    # -------------------------------------------------------------------------
    # Request handlers
    # -------------------------------------------------------------------------
    async def _handle_list_tools(self, req: types.ListToolsRequest) -> types.ServerResult:
        self._current()
        tools = [
            types.Tool(
                name=descriptor.name,
                description=descriptor.description,
                inputSchema=descriptor.input_schema,
                outputSchema=descriptor.output_schema,
            )
            for descriptor in self.dispatcher.registry.list_tools()
        ]
        return types.ServerResult(types.ListToolsResult(tools=tools))

    async def _handle_call_tool(self, req: types.CallToolRequest) -> types.ServerResult:
        self._current()
        name = req.params.name
        try:
            response = await asyncio.wait_for(
                self.dispatcher.call(name, req.params.arguments),
                timeout=self.settings.tool_call_timeout,
            )
        except asyncio.TimeoutError as e:
            err = BackendFailure(f"Tool '{name}' timed out after {self.settings.tool_call_timeout}s")
            raise McpError(err.to_error_data()) from e
        except ToolError as e:
            raise McpError(e.to_error_data()) from e

        return types.ServerResult(
            types.CallToolResult(
                content=[types.TextContent(type="text", text=block.text) for block in response.content],
                structuredContent=response.structured_content,
            )
        )

    async def _handle_list_resources(self, req: types.ListResourcesRequest) -> types.ServerResult:
        return types.ServerResult(types.ListResourcesResult(resources=[]))

    async def _handle_subscribe(self, req: types.SubscribeRequest) -> types.ServerResult:
        uri = str(req.params.uri)
        self._current().state.subscribe(uri)
        logger.debug("Subscribed to %s", uri)
        return types.ServerResult(types.EmptyResult())

    async def _handle_unsubscribe(self, req: types.UnsubscribeRequest) -> types.ServerResult:
        uri = str(req.params.uri)
        self._current().state.unsubscribe(uri)
        logger.debug("Unsubscribed from %s", uri)
        return types.ServerResult(types.EmptyResult())

    async def _handle_set_level(self, req: types.SetLevelRequest) -> types.ServerResult:
        self._current().state.log_level = req.params.level
        logger.debug("Client log level set to %s", req.params.level)
        return types.ServerResult(types.EmptyResult())


# -----------------------------------------------------------------------------
# Construction / stdio entrypoint
# -----------------------------------------------------------------------------
def create_server(
    settings: Optional[Settings] = None,
    backend: Optional[ReportBackend] = None,
    rng: Optional[random.Random] = None,
) -> ReportMcpServer:
    settings = settings or Settings.from_env()
    registry = ToolRegistry()
    dispatcher = ToolDispatcher(registry, backend or build_backend(settings))
    return ReportMcpServer(dispatcher, settings, rng=rng)


async def run_stdio(server: ReportMcpServer) -> None:
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(notification_options=NotificationOptions()),
        )
