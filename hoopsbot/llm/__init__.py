"""
LLM Orchestration Layer.

Turns a user question plus conversation history into an answer:

    ConversationOrchestrator.process_query(query, history)
        ├── prune()            bound the history sent to the model
        ├── acompletion()      first model call, data operations as tools
        ├── ToolDispatcher     run the requested operations
        └── acompletion()      final model call, tools withheld
                ↓
           answer text

The orchestrator is stateless per call; the caller owns the history.
"""

from hoopsbot.llm.dispatcher import ToolDispatcher
from hoopsbot.llm.history import DEFAULT_HISTORY_LIMIT, prune
from hoopsbot.llm.models import (
    LLMError,
    LLMResponse,
    Message,
    OperationResult,
    TokenUsage,
    ToolCall,
    ToolCallRequest,
)
from hoopsbot.llm.orchestrator import ConversationOrchestrator, OrchestrationState

__all__ = [
    "ConversationOrchestrator",
    "DEFAULT_HISTORY_LIMIT",
    "LLMError",
    "LLMResponse",
    "Message",
    "OperationResult",
    "OrchestrationState",
    "TokenUsage",
    "ToolCall",
    "ToolCallRequest",
    "ToolDispatcher",
    "prune",
]
