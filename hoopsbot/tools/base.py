"""
Base classes for the data operations registry.

A data operation is a named async function the LLM may ask us to run. Each
operation declares its arguments as a Pydantic model; the JSON schema of that
model is what the LLM sees, and the same model validates whatever arguments
the LLM sends back.
"""

from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from hoopsbot.llm.models import OperationResult

OperationHandler = Callable[[Any], Awaitable[OperationResult]]


class NoParams(BaseModel):
    """Argument model for operations that take no arguments."""


@dataclass(frozen=True)
class DataOperation:
    """
    A registered data-fetch operation.

    Attributes:
        name: Name the LLM uses to request the operation
        description: One-line description shown to the LLM
        params: Pydantic model declaring (and validating) the arguments
        handler: Async callable receiving a validated ``params`` instance and
                 returning a success payload or ``{"error": ...}``
    """

    name: str
    description: str
    params: type[BaseModel]
    handler: OperationHandler

    @property
    def input_schema(self) -> dict[str, Any]:
        schema = self.params.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("properties", {})
        schema.setdefault("required", [])
        for prop in schema["properties"].values():
            prop.pop("title", None)
        return schema

    def parse_arguments(self, arguments: dict[str, Any]) -> BaseModel:
        """Validate raw arguments. Raises pydantic.ValidationError."""
        return self.params.model_validate(arguments)


class OperationRegistry:
    """
    Fixed, ordered mapping from operation name to DataOperation.

    Example:
        registry = OperationRegistry()
        registry.register(DataOperation("get_all_teams", "List teams", NoParams, handler))
        registry.get("get_all_teams")
    """

    def __init__(self, operations: list[DataOperation] | None = None):
        self._operations: dict[str, DataOperation] = {}
        for operation in operations or []:
            self.register(operation)

    def register(self, operation: DataOperation) -> None:
        if operation.name in self._operations:
            raise ValueError(f"Operation already registered: {operation.name}")
        self._operations[operation.name] = operation

    def get(self, name: str) -> DataOperation | None:
        return self._operations.get(name)

    def names(self) -> list[str]:
        return list(self._operations)

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[DataOperation]:
        return iter(self._operations.values())

    def list_tools(self) -> list[dict[str, Any]]:
        """
        List all operations as tool schemas.

        Returns:
            List of ``{"name", "description", "input_schema"}`` dicts, in
            registration order.
        """
        return [
            {
                "name": operation.name,
                "description": operation.description,
                "input_schema": operation.input_schema,
            }
            for operation in self._operations.values()
        ]
