# -*- coding: utf-8 -*-
"""
Report MCP server launcher. Two modes:
  1) MCP over stdio  ->  `report-mcp-server --mode stdio`
  2) HTTP (FastAPI)  ->  `report-mcp-server --mode http --host 0.0.0.0 --port 8000`

Configuration comes from the environment / .env (see report_server.config).
"""

import argparse
import asyncio
import logging
import signal
import sys
import traceback

from .config import Settings, configure_logging
from .server import create_server, run_stdio

logger = logging.getLogger("report_server")


def _install_signal_handlers():
    def _handler(signum, _frame):
        name = signal.Signals(signum).name
        logger.info(f"Received {name}. Shutting down gracefully…")
        for h in logging.getLogger().handlers:
            h.flush()
        sys.exit(0)

    try:
        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
    except (ValueError, OSError) as e:
        # Not all environments allow installing signal handlers.
        logger.debug(f"Signal handlers not installed: {e}")


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Report MCP server (stdio or HTTP).")
    p.add_argument("--mode", choices=["stdio", "http"], default="stdio",
                   help="Run as MCP over stdio (default) or expose as an HTTP server.")
    p.add_argument("--host", default="127.0.0.1", help="HTTP host (when --mode http).")
    p.add_argument("--port", type=int, default=8000, help="HTTP port (when --mode http).")
    return p


def run_entry(argv=None) -> None:
    args = build_arg_parser().parse_args(argv)
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    logger.info(f"Starting {settings.server_name} in mode={args.mode} (backend={settings.backend})")
    logger.debug(f"Effective LOG_LEVEL={settings.log_level}")
    _install_signal_handlers()

    try:
        server = create_server(settings)
        if args.mode == "stdio":
            asyncio.run(run_stdio(server))
        else:
            import uvicorn

            from .http_app import build_http_app

            uvicorn.run(build_http_app(server), host=args.host, port=args.port,
                        log_level=settings.log_level.lower())
    except Exception as e:
        tb = "".join(traceback.format_exception(type(e), e, e.__traceback__))
        logger.critical(f"Fatal server error:\n{tb}")
        sys.exit(1)


if __name__ == "__main__":
    run_entry()
