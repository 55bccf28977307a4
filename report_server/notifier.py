"""
Session notifier: the periodic out-of-band notification stream of a session.

Two independent timers, both tied to the session's lifetime:
- resource updates: every `subscription_interval` seconds, one
  `notifications/resources/updated` per subscribed URI;
- demo log messages: every `log_interval` seconds, one message picked
  uniformly at random from LOG_MESSAGE_LEVELS.
"""

import logging
import random
from typing import Dict, List, Optional

from .session import LOG_LEVELS, SessionChannel, SessionState, send_log
from .timers import PeriodicTimer

logger = logging.getLogger(__name__)

LOG_MESSAGE_LEVELS = LOG_LEVELS


def build_log_messages(session_id: Optional[str] = None) -> List[Dict[str, str]]:
    suffix = f" - SessionId {session_id}" if session_id else ""
    return [
        {"level": level, "data": f"{level.capitalize()}-level message{suffix}"}
        for level in LOG_MESSAGE_LEVELS
    ]


class SessionNotifier:
    def __init__(
        self,
        channel: SessionChannel,
        state: SessionState,
        subscription_interval: float = 10.0,
        log_interval: float = 15.0,
        rng: Optional[random.Random] = None,
    ):
        self.channel = channel
        self.state = state
        self.subscription_interval = subscription_interval
        self.log_interval = log_interval
        self.rng = rng or random.Random()
        self._subs_timer: Optional[PeriodicTimer] = None
        self._logs_timer: Optional[PeriodicTimer] = None

    @property
    def active(self) -> bool:
        return self._subs_timer is not None or self._logs_timer is not None

    def start(self, session_id: Optional[str] = None) -> None:
        """Idle -> Active. A second call while active does not add timers."""
        if session_id is not None:
            self.state.session_id = session_id

        if self._subs_timer is None:
            self._subs_timer = PeriodicTimer(
                "resource-updates", self.subscription_interval, self._send_resource_updates
            )
            self._subs_timer.start()
            self.state.active_timers.add(self._subs_timer)

        if self._logs_timer is None:
            logger.info("Starting logs update interval (session=%s)", self.state.session_id)
            self._logs_timer = PeriodicTimer("log-messages", self.log_interval, self.send_random_log)
            self._logs_timer.start()
            self.state.active_timers.add(self._logs_timer)

    def stop(self) -> None:
        """Active -> Idle. No-op when already idle."""
        for timer in (self._subs_timer, self._logs_timer):
            if timer is not None:
                timer.cancel()
                self.state.active_timers.discard(timer)
        self._subs_timer = None
        self._logs_timer = None

    async def _send_resource_updates(self) -> None:
        # snapshot: subscribe/unsubscribe may run while we await the sends
        for uri in list(self.state.subscriptions):
            await self.channel.send_resource_updated(uri)

    async def send_random_log(self) -> None:
        # the session id may only become known after the timers started
        message = self.rng.choice(build_log_messages(self.state.session_id))
        await send_log(self.channel, self.state, message["level"], message["data"], logger=None)
