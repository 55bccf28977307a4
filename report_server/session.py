"""Per-session state and the channel used to talk back to the client."""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, Set

# RFC 5424 severities as used by MCP logging, lowest first.
LOG_LEVELS = ("debug", "info", "notice", "warning", "error", "critical", "alert", "emergency")

# Logger name attached to the server's own client-facing log entries.
SERVER_LOGGER = "report-server"


class SessionChannel(Protocol):
    """What the session lifecycle needs from the underlying protocol session."""

    def client_supports_roots(self) -> bool: ...

    async def list_roots(self) -> Any: ...

    async def send_resource_updated(self, uri: str) -> None: ...

    async def send_log_message(self, level: str, data: Any, logger: Optional[str] = None) -> None: ...


@dataclass
class SessionState:
    session_id: Optional[str] = None
    subscriptions: Set[str] = field(default_factory=set)
    active_timers: Set[Any] = field(default_factory=set)
    client_capabilities: Optional[Any] = None
    roots: List[Any] = field(default_factory=list)
    supports_roots: bool = False
    log_level: Optional[str] = None
    negotiated: bool = False

    def subscribe(self, uri: str) -> None:
        self.subscriptions.add(uri)

    def unsubscribe(self, uri: str) -> None:
        self.subscriptions.discard(uri)

    def should_send(self, level: str) -> bool:
        """False when the client asked (logging/setLevel) for a higher minimum level."""
        if self.log_level is None:
            return True
        return LOG_LEVELS.index(level) >= LOG_LEVELS.index(self.log_level)


async def send_log(
    channel: SessionChannel,
    state: SessionState,
    level: str,
    data: Any,
    logger: Optional[str] = SERVER_LOGGER,
) -> bool:
    if not state.should_send(level):
        return False
    await channel.send_log_message(level, data, logger)
    return True
