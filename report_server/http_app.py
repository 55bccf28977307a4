# -*- coding: utf-8 -*-
"""
HTTP mode: a FastAPI app serving
  - GET  /health            liveness probe
  - GET  /api/tools         tool descriptors (same as MCP tools/list)
  - POST /api/tools/{name}  direct tool call with a JSON object body
  - /mcp                    the MCP server over streamable HTTP
"""

import contextlib
import logging
import traceback
import uuid
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI
from fastapi.responses import JSONResponse
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager

from .dispatcher import time_call
from .errors import BackendFailure, InvalidArguments, NotFound, ToolError, UnknownTool
from .server import ReportMcpServer

logger = logging.getLogger(__name__)

_STATUS = {
    UnknownTool: 404,
    InvalidArguments: 422,
    NotFound: 404,
    BackendFailure: 502,
}


def _status_for(error: ToolError) -> int:
    for cls, status in _STATUS.items():
        if isinstance(error, cls):
            return status
    return 500


class _McpAsgiApp:
    """ASGI adapter routing requests into the streamable-HTTP session manager."""

    def __init__(self, manager: StreamableHTTPSessionManager):
        self.manager = manager

    async def __call__(self, scope, receive, send) -> None:
        await self.manager.handle_request(scope, receive, send)


def build_http_app(server: ReportMcpServer) -> FastAPI:
    manager = StreamableHTTPSessionManager(app=server)

    @contextlib.asynccontextmanager
    async def lifespan(_app: FastAPI):
        async with manager.run():
            logger.info("MCP streamable HTTP endpoint ready at /mcp")
            yield

    app = FastAPI(title=f"{server.name} HTTP", lifespan=lifespan)
    dispatcher = server.dispatcher

    @app.get("/health")
    def health():
        return {"status": "ok", "service": server.name}

    @app.get("/api/tools")
    def list_tools():
        return {"tools": [d.to_portable() for d in dispatcher.registry.list_tools()]}

    @app.post("/api/tools/{name}")
    async def call_tool(name: str, arguments: Optional[Dict[str, Any]] = Body(default=None)):
        call_id = str(uuid.uuid4())
        logger.debug(f"[{call_id}] /api/tools/{name} arguments={arguments}")
        _, done = time_call()
        try:
            response = await dispatcher.call(name, arguments)
        except ToolError as e:
            logger.warning(f"[{call_id}] /api/tools/{name} rejected after {done():.6f}s: {e}")
            return JSONResponse(
                status_code=_status_for(e),
                content={"error": e.message, "data": e.data, "call_id": call_id},
            )
        except Exception as e:
            tb = "".join(traceback.format_exception(type(e), e, e.__traceback__))
            logger.error(f"[{call_id}] /api/tools/{name} unexpected error after {done():.6f}s:\n{tb}")
            return JSONResponse(status_code=500, content={"error": "internal error", "call_id": call_id})
        return {**response.to_wire(), "call_id": call_id, "duration_s": done()}

    app.add_route("/mcp", _McpAsgiApp(manager), methods=["GET", "POST", "DELETE"])
    return app
