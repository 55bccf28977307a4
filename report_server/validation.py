"""Argument validation against a tool's input model."""

from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ValidationError

from .errors import InvalidArguments
from .registry import ToolRegistry


def _field_errors(e: ValidationError) -> List[Dict[str, str]]:
    errors = []
    for err in e.errors():
        field = ".".join(str(part) for part in err["loc"]) or "<arguments>"
        errors.append({"field": field, "message": err["msg"]})
    return errors


class ArgumentValidator:
    """
    Parses raw call arguments into the tool's input model.

    Input models are strict, so nothing is coerced: `{"query": 5}` is
    rejected instead of becoming `"5"`. Unknown tools raise `UnknownTool`.
    """

    def __init__(self, registry: ToolRegistry):
        self._registry = registry

    def validate(self, tool_name: str, raw_arguments: Optional[Mapping[str, Any]]) -> BaseModel:
        descriptor = self._registry.get(tool_name)
        if raw_arguments is None:
            raw_arguments = {}
        if not isinstance(raw_arguments, Mapping):
            raise InvalidArguments(
                tool_name,
                [{"field": "<arguments>", "message": "Arguments must be an object"}],
            )
        try:
            return descriptor.input_model.model_validate(dict(raw_arguments))
        except ValidationError as e:
            raise InvalidArguments(tool_name, _field_errors(e)) from e
