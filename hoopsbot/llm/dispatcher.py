"""
Tool-call dispatcher.

Maps an operation name requested by the model to a registered DataOperation,
runs it, and packages the outcome as a ``tool`` message. Nothing that goes
wrong here is allowed to abort the orchestration run: unknown names, bad
arguments and faults raised by an operation all become ``{"error": ...}``
results the model can read and explain.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from hoopsbot.llm.models import (
    UNKNOWN_OPERATION,
    Message,
    OperationResult,
    ToolCall,
    ToolCallRequest,
    error_result,
    is_error_result,
)

if TYPE_CHECKING:
    from hoopsbot.tools.base import OperationRegistry

logger = logging.getLogger(__name__)


def serialize_result(result: OperationResult) -> str:
    """JSON-encode an operation result for the model. Non-JSON values fall back to str()."""
    return json.dumps(result, default=str)


def parse_arguments(raw_arguments: str) -> dict[str, Any]:
    """
    Decode the model's JSON argument string.

    Raises:
        ValueError: If the text is not JSON or not a JSON object
    """
    if not raw_arguments or not raw_arguments.strip():
        return {}
    try:
        arguments = json.loads(raw_arguments)
    except json.JSONDecodeError as e:
        raise ValueError(f"Arguments are not valid JSON: {e}") from e
    if arguments is None:
        return {}
    if not isinstance(arguments, dict):
        raise ValueError("Arguments must be a JSON object")
    return arguments


def _describe_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


class ToolDispatcher:
    """
    Executes model-requested operations against an OperationRegistry.

    Args:
        registry: The registered data operations
    """

    def __init__(self, registry: OperationRegistry):
        self._registry = registry

    @property
    def registry(self) -> OperationRegistry:
        return self._registry

    async def execute(self, operation_name: str, arguments: dict[str, Any]) -> OperationResult:
        """
        Run one operation and return its result. Never raises.

        Args:
            operation_name: Name requested by the model
            arguments: Decoded (not yet validated) arguments

        Returns:
            The operation's payload, or ``{"error": ...}``
        """
        operation = self._registry.get(operation_name)
        if operation is None:
            logger.warning(f"Model requested unknown operation {operation_name!r}")
            return error_result(f"Unknown function: {operation_name}")

        try:
            params = operation.parse_arguments(arguments)
        except ValidationError as e:
            logger.warning(f"Invalid arguments for {operation_name}: {arguments!r}")
            return error_result(
                f"Invalid arguments for {operation_name}: {_describe_validation_error(e)}"
            )

        logger.info(f"Executing {operation_name} with args: {params.model_dump()}")
        try:
            result = await operation.handler(params)
        except Exception as e:
            logger.error(f"Operation {operation_name} raised unexpectedly: {e}", exc_info=True)
            return error_result(f"{operation_name} failed: {e}")

        if not isinstance(result, dict):
            logger.error(f"Operation {operation_name} returned {type(result).__name__}, not a dict")
            return error_result(f"{operation_name} returned an invalid result")

        if is_error_result(result):
            logger.info(f"{operation_name} returned error: {result['error']}")
        return result

    async def execute_call(self, request: ToolCallRequest) -> tuple[Message, ToolCall]:
        """
        Run a model tool call end to end.

        Decodes the raw argument string, executes the operation and builds
        the ``tool`` message tagged with the originating call id and name.

        Returns:
            (tool message for the model, ToolCall record for the response)
        """
        try:
            arguments = parse_arguments(request.raw_arguments)
        except ValueError as e:
            logger.warning(f"Bad arguments from model for {request.operation_name}: {e}")
            arguments = {}
            result = error_result(str(e))
        else:
            result = await self.execute(request.operation_name, arguments)

        content = serialize_result(result)
        record = ToolCall(
            id=request.id,
            name=request.operation_name or UNKNOWN_OPERATION,
            arguments=arguments,
            result=content,
            is_error=is_error_result(result),
        )
        return Message.tool_result(request, content), record
