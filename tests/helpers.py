"""Test doubles shared by the session-level suites."""

import asyncio
import random
from typing import Any, Dict, List, Optional


class FakeChannel:
    """In-memory SessionChannel recording everything sent to the client."""

    def __init__(self, supports_roots: bool = False, roots: Optional[List[Any]] = None):
        self.supports_roots = supports_roots
        self.roots_response: Any = {"roots": list(roots or [])}
        self.list_roots_error: Optional[Exception] = None
        self.send_log_error: Optional[Exception] = None
        self.list_roots_calls = 0
        self.resource_updates: List[str] = []
        self.log_messages: List[Dict[str, Any]] = []

    def client_supports_roots(self) -> bool:
        return self.supports_roots

    async def list_roots(self) -> Any:
        self.list_roots_calls += 1
        if self.list_roots_error is not None:
            raise self.list_roots_error
        return self.roots_response

    async def send_resource_updated(self, uri: str) -> None:
        self.resource_updates.append(uri)

    async def send_log_message(self, level: str, data: Any, logger: Optional[str] = None) -> None:
        if self.send_log_error is not None:
            raise self.send_log_error
        self.log_messages.append({"level": level, "data": data, "logger": logger})


class FixedChoice(random.Random):
    """Random source that always picks the same index."""

    def __init__(self, index: int):
        super().__init__(0)
        self.index = index

    def choice(self, seq):
        return seq[self.index]


async def wait_until(predicate, timeout: float = 2.0, step: float = 0.01) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(step)
