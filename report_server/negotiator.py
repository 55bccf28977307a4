"""
Capability negotiation for the MCP roots protocol.

Nothing here raises: a failed or malformed roots exchange is reported to the
client (and the operational log) and the previously stored roots are kept.
"""

import logging
from typing import Any, List, Optional

from .session import SessionChannel, SessionState, send_log

logger = logging.getLogger(__name__)


def _extract_roots(response: Any) -> Optional[List[Any]]:
    if isinstance(response, dict):
        roots = response.get("roots")
    else:
        roots = getattr(response, "roots", None)
    return list(roots) if isinstance(roots, (list, tuple)) else None


class CapabilityNegotiator:
    def __init__(self, channel: SessionChannel, state: SessionState):
        self.channel = channel
        self.state = state

    async def negotiate(self) -> None:
        """Run once, after the initialize handshake has completed."""
        if self.state.negotiated:
            return
        self.state.negotiated = True

        if not self.channel.client_supports_roots():
            self.state.supports_roots = False
            logger.info("Client does not support MCP roots protocol")
            await self._log("info", "Client does not support MCP roots protocol")
            return

        self.state.supports_roots = True
        await self._refresh_roots("Initial roots received: {count} root(s) from client",
                                  "Failed to request initial roots from client")

    async def on_roots_list_changed(self) -> None:
        await self._refresh_roots("Roots updated: {count} root(s) received from client",
                                  "Failed to request roots from client")

    async def _refresh_roots(self, success: str, failure: str) -> None:
        try:
            response = await self.channel.list_roots()
        except Exception as e:
            logger.warning("%s: %s", failure, e)
            await self._log("error", f"{failure}: {e}")
            return

        roots = _extract_roots(response)
        if roots is None:
            logger.warning("%s: malformed response %r", failure, response)
            await self._log("error", f"{failure}: response has no roots list")
            return

        self.state.roots = roots
        message = success.format(count=len(roots))
        logger.info(message)
        await self._log("info", message)

    async def _log(self, level: str, data: str) -> None:
        try:
            await send_log(self.channel, self.state, level, data)
        except Exception:
            logger.exception("Could not send %s log message to client", level)
