"""Tool contract registry: the tools this server advertises, in declaration order."""

import logging
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError

from .errors import SchemaDeclarationError, UnknownTool
from .schemas import (
    FetchInput,
    FetchOutput,
    SearchInput,
    SearchOutput,
    ToolDescriptor,
)

logger = logging.getLogger(__name__)

SEARCH_TOOL = ToolDescriptor(
    name="search",
    description=(
        "This tool returns a list of the available reports based on a "
        "keyword-based query. Each result includes an id that can be used "
        "with the fetch tool."
    ),
    input_model=SearchInput,
    output_model=SearchOutput,
    example_input={"query": "balance"},
    example_output={"results": [{"id": "-202", "name": "Balance Sheet Report"}]},
)

FETCH_TOOL = ToolDescriptor(
    name="fetch",
    description="Runs and returns a full report.",
    input_model=FetchInput,
    output_model=FetchOutput,
    example_input={"id": "-202"},
    example_output={"id": "-202", "title": "Balance Sheet Report", "rows": []},
)

DEFAULT_TOOLS = (SEARCH_TOOL, FETCH_TOOL)


class ToolRegistry:
    """
    Immutable, ordered set of tool descriptors.

    Construction runs a self-check so declaration mistakes fail at startup
    instead of at call time:
    - names are unique,
    - output schemas describe JSON objects,
    - each descriptor's example input/output validates against its own models.
    """

    def __init__(self, tools: Optional[Iterable[ToolDescriptor]] = None):
        self._tools: Dict[str, ToolDescriptor] = {}
        for descriptor in DEFAULT_TOOLS if tools is None else tools:
            if descriptor.name in self._tools:
                raise SchemaDeclarationError(f"Duplicate tool name: {descriptor.name}")
            self._check(descriptor)
            self._tools[descriptor.name] = descriptor
        logger.debug("Registered tools: %s", ", ".join(self._tools))

    @staticmethod
    def _check(descriptor: ToolDescriptor) -> None:
        if descriptor.output_schema.get("type") != "object":
            raise SchemaDeclarationError(
                f"Output schema of '{descriptor.name}' must describe a JSON object"
            )
        try:
            descriptor.input_model.model_validate(descriptor.example_input)
            descriptor.output_model.model_validate(descriptor.example_output)
        except ValidationError as e:
            raise SchemaDeclarationError(
                f"Examples of '{descriptor.name}' do not match its schemas: {e}"
            ) from e

    def list_tools(self) -> List[ToolDescriptor]:
        return list(self._tools.values())

    def names(self) -> List[str]:
        return list(self._tools)

    def get(self, name: str) -> ToolDescriptor:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownTool(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._tools
