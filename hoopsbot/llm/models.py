"""
Data models for the LLM orchestration layer.

Messages and tool-call requests are frozen once built: a conversation is
an append-only sequence for the length of one orchestration run.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

Role = Literal["system", "user", "assistant", "tool"]

# Either an operation-specific success payload or {"error": "..."}.
OperationResult = dict[str, Any]

# Tool messages must carry a name; nameless calls are reported under this one.
UNKNOWN_OPERATION = "unknown"


def error_result(message: str) -> OperationResult:
    """Build the error-shaped result every failing operation returns."""
    return {"error": message}


def is_error_result(result: Any) -> bool:
    """True if ``result`` is an error-shaped OperationResult."""
    return isinstance(result, dict) and "error" in result


class ToolCallRequest(BaseModel):
    """A single operation the model asked us to run."""

    id: str = Field(min_length=1, description="Provider-issued tool call id")
    operation_name: str = Field(description="Name of the requested data operation")
    raw_arguments: str = Field(
        default="{}",
        description="JSON-encoded arguments exactly as the model produced them",
    )

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_wire(cls, tool_call: Any, index: int = 0) -> ToolCallRequest:
        """
        Build from a LiteLLM/OpenAI tool-call object.

        A call that arrives without an id gets ``call_<index>`` so its result
        can still be tagged and sent back to the model.
        """
        return cls(
            id=getattr(tool_call, "id", None) or f"call_{index}",
            operation_name=tool_call.function.name or "",
            raw_arguments=tool_call.function.arguments or "{}",
        )

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {
                "name": self.operation_name,
                "arguments": self.raw_arguments,
            },
        }


class Message(BaseModel):
    """
    One entry of a conversation, in the provider's chat format.

    Invariants checked on construction:
    - ``tool`` messages reference the call they answer (tool_call_id + name)
    - only ``assistant`` messages may carry tool calls, and only they may
      have null content
    """

    role: Role
    content: str | None = None
    tool_calls: list[ToolCallRequest] | None = None
    tool_call_id: str | None = None
    name: str | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_role_fields(self) -> Message:
        if self.role == "tool":
            if not self.tool_call_id or not self.name:
                raise ValueError("tool messages require tool_call_id and name")
        elif self.tool_call_id is not None:
            raise ValueError(f"{self.role} messages cannot carry a tool_call_id")

        if self.tool_calls and self.role != "assistant":
            raise ValueError("only assistant messages can request tool calls")

        if self.content is None and not (self.role == "assistant" and self.tool_calls):
            raise ValueError(f"{self.role} message requires content")
        return self

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role="user", content=content)

    @classmethod
    def tool_result(cls, request: ToolCallRequest, content: str) -> Message:
        return cls(
            role="tool",
            content=content,
            tool_call_id=request.id,
            name=request.operation_name or UNKNOWN_OPERATION,
        )

    def to_wire(self) -> dict[str, Any]:
        """Render the dict LiteLLM expects in its ``messages`` list."""
        wire: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            wire["tool_calls"] = [call.to_wire() for call in self.tool_calls]
        if self.role == "tool":
            wire["tool_call_id"] = self.tool_call_id
            wire["name"] = self.name
        return wire


class ToolCall(BaseModel):
    """Record of one executed tool call, for display and debugging."""

    id: str = Field(description="Tool call id the result was tagged with")
    name: str = Field(description="Operation name")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Parsed arguments")
    result: str = Field(description="Serialized OperationResult sent to the model")
    is_error: bool = Field(default=False, description="True if the result was error-shaped")


class TokenUsage(BaseModel):
    """Token counts summed over every model call in one run."""

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class LLMResponse(BaseModel):
    """Final outcome of one orchestration run."""

    text: str = Field(description="Displayable answer (always non-null)")
    tool_calls: list[ToolCall] = Field(default_factory=list)
    model: str = Field(default="", description="Model name reported by the provider")
    usage: TokenUsage = Field(default_factory=TokenUsage)
    model_calls: int = Field(default=0, ge=0, le=2, description="Completions requested")
    degraded: bool = Field(
        default=False,
        description="True if the text is a fallback message rather than a model answer",
    )


class LLMError(Exception):
    """Raised when a model API call fails. Carries the original exception."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause
