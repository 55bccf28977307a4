"""Report MCP server: `search` / `fetch` tools with per-session notifications."""

__version__ = "0.1.0"
