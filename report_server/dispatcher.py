# -*- coding: utf-8 -*-
"""
Tool dispatcher: routes a validated call to its handler and wraps the result.

Every call gets:
- a per-call correlation ID and wall-clock timing in the logs,
- output validation against the tool's declared output model,
- uniform error handling (ToolError subclasses propagate unchanged,
  anything unexpected is logged with its traceback and surfaced as
  BackendFailure without leaking internals).
"""

import logging
import time
import traceback
import uuid
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ValidationError

from .backend import ReportBackend
from .errors import BackendFailure, SchemaDeclarationError, ToolError
from .registry import ToolRegistry
from .schemas import FetchInput, SearchInput, ToolCallResponse
from .validation import ArgumentValidator

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[Dict[str, Any]]]


def time_call() -> Tuple[float, Callable[[], float]]:
    """Simple wall-clock timer for execution duration."""
    start = time.perf_counter()

    def done() -> float:
        return time.perf_counter() - start

    return start, done


class ToolDispatcher:
    def __init__(
        self,
        registry: ToolRegistry,
        backend: ReportBackend,
        validator: Optional[ArgumentValidator] = None,
    ):
        self.registry = registry
        self.backend = backend
        self.validator = validator or ArgumentValidator(registry)

        handlers: Dict[str, Handler] = {"search": self._search, "fetch": self._fetch}
        missing = [name for name in registry.names() if name not in handlers]
        if missing:
            raise SchemaDeclarationError(f"No handler for tool(s): {', '.join(missing)}")
        self._handlers = {name: handlers[name] for name in registry.names()}

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------
    async def _search(self, args: SearchInput) -> Dict[str, Any]:
        results = await self.backend.search(args.query)
        return {"results": results}

    async def _fetch(self, args: FetchInput) -> Dict[str, Any]:
        return await self.backend.fetch(args.id)

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------
    async def call(self, tool_name: str, raw_arguments: Optional[Mapping[str, Any]]) -> ToolCallResponse:
        """Validate raw arguments, then dispatch."""
        arguments = self.validator.validate(tool_name, raw_arguments)
        return await self.dispatch(tool_name, arguments)

    async def dispatch(
        self, tool_name: str, arguments: Union[BaseModel, Mapping[str, Any]]
    ) -> ToolCallResponse:
        descriptor = self.registry.get(tool_name)
        if not isinstance(arguments, descriptor.input_model):
            arguments = self.validator.validate(tool_name, arguments)
        handler = self._handlers[tool_name]

        call_id = str(uuid.uuid4())
        logger.debug(f"[{call_id}] {tool_name}() invoked with {arguments.model_dump()}")
        _, done = time_call()

        try:
            payload = await handler(arguments)
            descriptor.output_model.model_validate(payload)

        except ToolError as e:
            logger.warning(f"[{call_id}] {tool_name}() rejected after {done():.6f}s: {e}")
            raise

        except ValidationError as e:
            logger.warning(
                f"[{call_id}] {tool_name}() backend payload failed output validation "
                f"after {done():.6f}s: {e}"
            )
            raise BackendFailure(
                f"Backend returned a payload that does not match the '{tool_name}' output schema"
            ) from e

        except Exception as e:
            tb = "".join(traceback.format_exception(type(e), e, e.__traceback__))
            logger.error(f"[{call_id}] {tool_name}() unexpected error after {done():.6f}s:\n{tb}")
            raise BackendFailure(f"An unexpected error occurred while running '{tool_name}'.") from e

        logger.info(f"[{call_id}] {tool_name}() success in {done():.6f}s")
        return ToolCallResponse.from_payload(payload)
