"""
Conversation Orchestrator - turns a user question into an answer.

Every query runs the same fixed state machine:

    COMPOSING                   prune history, add system prompt + user query
        ↓
    AWAITING_FIRST_COMPLETION   LiteLLM acompletion() with every data operation
        ↓                       exposed as a tool (tool_choice="auto")
        ├── plain text ─────────────────────────────────────→ DONE
        ↓
    EXECUTING_TOOLS             ToolDispatcher runs every requested call
        ↓                       concurrently; results kept in request order
    AWAITING_FINAL_COMPLETION   acompletion() again, tools withheld
        ↓
    DONE

There is no path from AWAITING_FINAL_COMPLETION back to EXECUTING_TOOLS, so a
query costs at most two model calls and one tool round.

process_query() always resolves to a displayable string. Model failures are
logged and replaced with a fallback message; rate-limit and context-size
failures get a message asking the user to narrow the question.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from litellm import acompletion
from litellm.exceptions import ContextWindowExceededError, RateLimitError
from pydantic import ValidationError

from hoopsbot.config.settings import LLMSettings
from hoopsbot.llm.dispatcher import ToolDispatcher
from hoopsbot.llm.history import DEFAULT_HISTORY_LIMIT, prune
from hoopsbot.llm.models import (
    LLMError,
    LLMResponse,
    Message,
    TokenUsage,
    ToolCall,
    ToolCallRequest,
)
from hoopsbot.tools.dates import current_season

logger = logging.getLogger(__name__)

EMPTY_QUERY_MESSAGE = "Ask me anything about NBA scores, standings, schedules or player stats."
NOT_CONFIGURED_MESSAGE = (
    "I'm not able to answer right now because the language model isn't configured."
)
QUOTA_MESSAGE = (
    "I hit a usage limit while working on that. "
    "Please try a shorter or more specific question."
)
FAILURE_MESSAGE = "Sorry, I ran into a problem while answering that. Please try again in a moment."
NO_ANSWER_MESSAGE = "I wasn't able to put together an answer from the data I found."

_QUOTA_MARKERS = (
    "429",
    "rate limit",
    "rate_limit",
    "quota",
    "context length",
    "context window",
    "too many tokens",
    "token limit",
)


class OrchestrationState(str, Enum):
    COMPOSING = "composing"
    AWAITING_FIRST_COMPLETION = "awaiting_first_completion"
    EXECUTING_TOOLS = "executing_tools"
    AWAITING_FINAL_COMPLETION = "awaiting_final_completion"
    DONE = "done"


_TRANSITIONS: dict[OrchestrationState, frozenset[OrchestrationState]] = {
    OrchestrationState.COMPOSING: frozenset({OrchestrationState.AWAITING_FIRST_COMPLETION}),
    OrchestrationState.AWAITING_FIRST_COMPLETION: frozenset(
        {OrchestrationState.EXECUTING_TOOLS, OrchestrationState.DONE}
    ),
    OrchestrationState.EXECUTING_TOOLS: frozenset(
        {OrchestrationState.AWAITING_FINAL_COMPLETION}
    ),
    OrchestrationState.AWAITING_FINAL_COMPLETION: frozenset({OrchestrationState.DONE}),
    OrchestrationState.DONE: frozenset(),
}


def is_quota_error(error: BaseException) -> bool:
    """True for rate-limit, quota and context-window failures."""
    if isinstance(error, (RateLimitError, ContextWindowExceededError)):
        return True
    if getattr(error, "status_code", None) == 429:
        return True
    text = str(error).lower()
    return any(marker in text for marker in _QUOTA_MARKERS)


def _token_count(value: Any) -> int:
    return value if isinstance(value, int) and value > 0 else 0


def _text_of(message: Any) -> str:
    content = getattr(message, "content", None)
    return content if isinstance(content, str) else ""


@dataclass
class _Run:
    """Mutable state of one process_query() call."""

    query: str
    history: Sequence[Message | dict[str, Any]]
    state: OrchestrationState = OrchestrationState.COMPOSING
    transitions: list[OrchestrationState] = field(
        default_factory=lambda: [OrchestrationState.COMPOSING]
    )
    messages: list[Message] = field(default_factory=list)
    assistant_message: Message | None = None
    tool_messages: list[Message] = field(default_factory=list)
    tool_calls: list[ToolCall] = field(default_factory=list)
    text: str = ""
    model: str = ""
    model_calls: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0

    def advance(self, next_state: OrchestrationState) -> None:
        if next_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal transition {self.state.value} -> {next_state.value}")
        self.state = next_state
        self.transitions.append(next_state)


class ConversationOrchestrator:
    """
    Drives the two-phase model exchange for one user query.

    Conversation history is owned by the caller: it is read, pruned and sent,
    but never stored here.

    Args:
        settings: LLM configuration (model, temperature, max_tokens, api_key)
        system_template: System prompt with optional {today} and {season} placeholders
        dispatcher: Runs the data operations the model asks for
        history_limit: Max prior messages forwarded to the model
        today: Returns the current date (injectable for tests)
    """

    def __init__(
        self,
        settings: LLMSettings,
        system_template: str,
        dispatcher: ToolDispatcher,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        today: Callable[[], date] = date.today,
    ):
        self._settings = settings
        self._system_template = system_template
        self._dispatcher = dispatcher
        self._history_limit = history_limit
        self._today = today
        self._steps = {
            OrchestrationState.COMPOSING: self._compose,
            OrchestrationState.AWAITING_FIRST_COMPLETION: self._first_completion,
            OrchestrationState.EXECUTING_TOOLS: self._execute_tools,
            OrchestrationState.AWAITING_FINAL_COMPLETION: self._final_completion,
        }

    def _build_system_prompt(self) -> str:
        today = self._today()
        return (
            self._system_template
            .replace("{today}", today.isoformat())
            .replace("{season}", str(current_season(today)))
        )

    def _get_tool_definitions(self) -> list[dict[str, Any]]:
        """Wrap registry schemas in LiteLLM's (OpenAI) function-tool format."""
        return [
            {
                "type": "function",
                "function": {
                    "name": tool["name"],
                    "description": tool["description"],
                    "parameters": tool["input_schema"],
                },
            }
            for tool in self._dispatcher.registry.list_tools()
        ]

    async def process_query(
        self,
        query: str,
        history: Sequence[Message | dict[str, Any]] = (),
    ) -> str:
        """Answer ``query`` given prior conversation. Always returns displayable text."""
        response = await self.run(query, history)
        return response.text

    async def run(
        self,
        query: str,
        history: Sequence[Message | dict[str, Any]] = (),
    ) -> LLMResponse:
        """
        Answer ``query`` and return the answer with tool call records and usage.

        Never raises (except cancellation). Failures produce a response with
        ``degraded=True`` and a fallback message.
        """
        query = query.strip()
        if not query:
            return LLMResponse(text=EMPTY_QUERY_MESSAGE, degraded=True)

        if not self._settings.api_key:
            logger.error("LLM API key not configured. Set LLM__API_KEY in your environment.")
            return LLMResponse(text=NOT_CONFIGURED_MESSAGE, degraded=True)

        run = _Run(query=query, history=history)
        degraded = False
        try:
            while run.state is not OrchestrationState.DONE:
                next_state = await self._steps[run.state](run)
                run.advance(next_state)
        except LLMError as e:
            cause = e.cause or e
            logger.error(f"Model call failed for query {query!r}: {cause}")
            run.text = QUOTA_MESSAGE if is_quota_error(cause) else FAILURE_MESSAGE
            degraded = True
        except Exception as e:
            logger.exception(f"Unexpected error answering {query!r}: {e}")
            run.text = FAILURE_MESSAGE
            degraded = True

        if not degraded and not run.text.strip():
            run.text = NO_ANSWER_MESSAGE
            degraded = True

        logger.debug(f"Run states: {' -> '.join(s.value for s in run.transitions)}")
        return LLMResponse(
            text=run.text,
            tool_calls=run.tool_calls,
            model=run.model,
            usage=TokenUsage(
                prompt_tokens=run.prompt_tokens,
                completion_tokens=run.completion_tokens,
            ),
            model_calls=run.model_calls,
            degraded=degraded,
        )

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    async def _compose(self, run: _Run) -> OrchestrationState:
        prior = []
        for entry in prune(run.history, self._history_limit):
            try:
                prior.append(entry if isinstance(entry, Message) else Message.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Dropping malformed history entry {entry!r}: {e}")

        run.messages = [
            Message.system(self._build_system_prompt()),
            *prior,
            Message.user(run.query),
        ]
        return OrchestrationState.AWAITING_FIRST_COMPLETION

    async def _first_completion(self, run: _Run) -> OrchestrationState:
        tools = self._get_tool_definitions()
        reply = await self._complete(run, run.messages, tools=tools)

        if not reply.tool_calls:
            run.text = _text_of(reply)
            return OrchestrationState.DONE

        requests = [
            ToolCallRequest.from_wire(tool_call, index)
            for index, tool_call in enumerate(reply.tool_calls, start=1)
        ]
        run.assistant_message = Message(
            role="assistant",
            content=_text_of(reply) or None,
            tool_calls=requests,
        )
        return OrchestrationState.EXECUTING_TOOLS

    async def _execute_tools(self, run: _Run) -> OrchestrationState:
        requests = run.assistant_message.tool_calls
        logger.info(f"Executing {len(requests)} tool call(s): {[r.operation_name for r in requests]}")

        # gather() keeps results in request order regardless of completion order
        outcomes = await asyncio.gather(
            *(self._dispatcher.execute_call(request) for request in requests)
        )
        for tool_message, record in outcomes:
            run.tool_messages.append(tool_message)
            run.tool_calls.append(record)
        return OrchestrationState.AWAITING_FINAL_COMPLETION

    async def _final_completion(self, run: _Run) -> OrchestrationState:
        messages = [*run.messages, run.assistant_message, *run.tool_messages]
        reply = await self._complete(run, messages, tools=None)
        run.text = _text_of(reply)
        return OrchestrationState.DONE

    # ------------------------------------------------------------------
    # Model call
    # ------------------------------------------------------------------

    async def _complete(
        self,
        run: _Run,
        messages: list[Message],
        tools: list[dict[str, Any]] | None,
    ) -> Any:
        """Request one completion and return the assistant message. Raises LLMError."""
        call_kwargs: dict[str, Any] = {
            "model": self._settings.model,
            "messages": [message.to_wire() for message in messages],
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
            "api_key": self._settings.api_key,
        }
        if tools:
            call_kwargs["tools"] = tools
            call_kwargs["tool_choice"] = "auto"

        run.model_calls += 1
        try:
            response = await acompletion(**call_kwargs)
        except Exception as e:
            raise LLMError(f"LLM API call failed: {e}", cause=e) from e

        usage = getattr(response, "usage", None)
        if usage is not None:
            run.prompt_tokens += _token_count(getattr(usage, "prompt_tokens", 0))
            run.completion_tokens += _token_count(getattr(usage, "completion_tokens", 0))
        model_name = getattr(response, "model", None)
        if isinstance(model_name, str) and model_name:
            run.model = model_name

        return response.choices[0].message
