"""Error taxonomy for tool calls."""

from typing import Any, Dict, List, Optional

from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, ErrorData

# MCP reserves -32002 for "resource not found".
NOT_FOUND = -32002


class SchemaDeclarationError(Exception):
    """A tool contract is declared inconsistently. Raised at startup only."""


class ToolError(Exception):
    """Base for errors that reject a tool call."""

    code: int = INTERNAL_ERROR

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.data = data

    def to_error_data(self) -> ErrorData:
        return ErrorData(code=self.code, message=self.message, data=self.data)


class UnknownTool(ToolError):
    code = INVALID_PARAMS

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}", {"tool": name})
        self.name = name


class InvalidArguments(ToolError):
    """Arguments violate the tool's input schema; `errors` holds per-field detail."""

    code = INVALID_PARAMS

    def __init__(self, tool: str, errors: List[Dict[str, str]]):
        fields = ", ".join(e["field"] for e in errors) or "<arguments>"
        super().__init__(
            f"Invalid arguments for tool '{tool}': {fields}",
            {"tool": tool, "errors": errors},
        )
        self.tool = tool
        self.errors = errors


class NotFound(ToolError):
    code = NOT_FOUND

    def __init__(self, record_id: str):
        super().__init__(f"No record with id {record_id!r}", {"id": record_id})
        self.record_id = record_id


class BackendFailure(ToolError):
    """The reporting backend is unreachable or answered with garbage. Retryable."""

    code = INTERNAL_ERROR
