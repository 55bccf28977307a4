"""
Typed contracts for the tools and the uniform response envelope.

Search results and fetched documents are open-ended JSON objects: the
reporting backend returns heterogeneous shapes and they are relayed as-is.
"""

import json
from typing import Any, Dict, List, Literal, Type

from pydantic import BaseModel, ConfigDict, Field, RootModel


# -----------------------------------------------------------------------------
# Tool inputs / outputs
# -----------------------------------------------------------------------------
class SearchInput(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    query: str = Field(description="Search query")


class SearchOutput(BaseModel):
    model_config = ConfigDict(strict=True)

    results: List[Dict[str, Any]] = Field(description="Array of search results")


class FetchInput(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    id: str = Field(description="The report id")


class FetchOutput(RootModel[Dict[str, Any]]):
    """The full fetched report, as returned by the backend."""

    model_config = ConfigDict(strict=True)


# -----------------------------------------------------------------------------
# Descriptors and envelopes
# -----------------------------------------------------------------------------
class ToolDescriptor(BaseModel):
    """Name, description and typed contracts of one tool."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    input_model: Type[BaseModel]
    output_model: Type[BaseModel]
    example_input: Dict[str, Any] = Field(default_factory=dict)
    example_output: Dict[str, Any] = Field(default_factory=dict)

    @property
    def input_schema(self) -> Dict[str, Any]:
        return self.input_model.model_json_schema()

    @property
    def output_schema(self) -> Dict[str, Any]:
        return self.output_model.model_json_schema()

    def to_portable(self) -> Dict[str, Any]:
        """Descriptor as sent to remote clients (camelCase, JSON Schema)."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
            "outputSchema": self.output_schema,
        }


class ToolCallRequest(BaseModel):
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolCallResponse(BaseModel):
    content: List[TextContent]
    structured_content: Dict[str, Any]

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ToolCallResponse":
        """Text block is the JSON encoding of the structured payload."""
        return cls(
            content=[TextContent(text=json.dumps(payload))],
            structured_content=payload,
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "content": [block.model_dump() for block in self.content],
            "structuredContent": self.structured_content,
        }
