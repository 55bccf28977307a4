import argparse
import asyncio
import json
import logging
from typing import Any, Dict

from fastmcp import Client

# --- Logging setup -----------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(message)s",
)
log = logging.getLogger(__name__)


async def call_tool(client: Client, name: str, arguments: Dict[str, Any], timeout_s: float) -> Any:
    log.debug("Calling tool %r with %s", name, arguments)
    try:
        result = await asyncio.wait_for(client.call_tool(name, arguments), timeout=timeout_s)
    except asyncio.TimeoutError:
        log.error("Timed out after %.1f seconds waiting for %r.", timeout_s, name)
        raise
    log.debug("Raw result received from server: %r", result)
    return result


async def main_async(url: str, query: str, timeout_s: float) -> None:
    """
    Connect to the report server at `url`, list its tools, search for `query`
    and fetch the first hit.
    """
    async with Client(url) as client:
        tools = await client.list_tools()
        log.info("Server tools: %s", ", ".join(t.name for t in tools))

        found = await call_tool(client, "search", {"query": query}, timeout_s)
        results = (found.structured_content or {}).get("results", [])
        print(json.dumps(results, indent=2))
        if not results:
            log.warning("No reports matched %r", query)
            return

        report_id = str(results[0].get("id"))
        report = await call_tool(client, "fetch", {"id": report_id}, timeout_s)
        print(json.dumps(report.structured_content, indent=2))


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Smoke-test the search/fetch tools of a report MCP server.")
    parser.add_argument(
        "--url",
        default="http://127.0.0.1:8000/mcp",
        help="MCP server URL or path to a server script (default: %(default)s)",
    )
    parser.add_argument("--query", default="balance", help="Search query (default: %(default)s)")
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="Timeout in seconds for each tool call (default: %(default)s)",
    )
    return parser


def run_entry() -> None:
    args = build_arg_parser().parse_args()
    asyncio.run(main_async(args.url, args.query, args.timeout))


if __name__ == "__main__":
    run_entry()
