# -*- coding: utf-8 -*-
"""
Runtime configuration and logging setup.

Env (loaded from the process environment and an optional .env file):
  MCP_LOG_LEVEL         = DEBUG|INFO|WARNING|ERROR (default INFO)
  SERVER_NAME           = name advertised in the MCP handshake
  INSTRUCTIONS_FILE     = path to the server instructions text
  REPORT_BACKEND        = mock|http (default mock)
  REPORT_SEARCH_URL     = search endpoint of the reporting system
  REPORT_FETCH_URL      = fetch endpoint of the reporting system
  REPORT_API_KEY        = bearer token for the reporting system
  BACKEND_TIMEOUT       = seconds per backend HTTP request
  TOOL_CALL_TIMEOUT     = seconds per tool call
  ROOTS_TIMEOUT         = seconds to wait for the client to answer roots/list
  SUBSCRIPTION_INTERVAL = seconds between resource-updated rounds
  LOG_MESSAGE_INTERVAL  = seconds between demo log messages
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_DEFAULT_INSTRUCTIONS = Path(__file__).with_name("instructions.md")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    server_name: str = "report-server"
    server_version: str = "1.0.0"
    instructions_file: Path = _DEFAULT_INSTRUCTIONS

    backend: str = "mock"
    search_url: str = ""
    fetch_url: str = ""
    api_key: str = field(default="", repr=False)
    backend_timeout: float = 20.0
    tool_call_timeout: float = 30.0
    roots_timeout: float = 10.0

    subscription_interval: float = 10.0
    log_message_interval: float = 15.0

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            log_level=os.getenv("MCP_LOG_LEVEL", "INFO").upper(),
            server_name=os.getenv("SERVER_NAME", "report-server"),
            instructions_file=Path(os.getenv("INSTRUCTIONS_FILE", str(_DEFAULT_INSTRUCTIONS))),
            backend=os.getenv("REPORT_BACKEND", "mock").lower(),
            search_url=os.getenv("REPORT_SEARCH_URL", ""),
            fetch_url=os.getenv("REPORT_FETCH_URL", ""),
            api_key=os.getenv("REPORT_API_KEY", ""),
            backend_timeout=_env_float("BACKEND_TIMEOUT", 20.0),
            tool_call_timeout=_env_float("TOOL_CALL_TIMEOUT", 30.0),
            roots_timeout=_env_float("ROOTS_TIMEOUT", 10.0),
            subscription_interval=_env_float("SUBSCRIPTION_INTERVAL", 10.0),
            log_message_interval=_env_float("LOG_MESSAGE_INTERVAL", 15.0),
        )

    def load_instructions(self) -> Optional[str]:
        """Instructions text sent in the handshake; missing file means none."""
        try:
            return self.instructions_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            logging.getLogger(__name__).warning(
                "Instructions file not found: %s", self.instructions_file
            )
            return None


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging once for the process.

    Logs go to stderr so they don't interfere with MCP stdio frames on stdout.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
