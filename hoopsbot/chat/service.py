"""
Caller-facing chat surface.

One request/response operation shared by every front-end (Discord, CLI):
take a query plus the caller's conversation history, pass it through the
session throttle and the orchestrator, and return displayable text.
"""

from __future__ import annotations

from collections.abc import Hashable
from typing import Literal

from pydantic import BaseModel, Field

from hoopsbot.chat.throttle import DEFAULT_SESSION, RequestThrottle
from hoopsbot.config.logging import get_logger
from hoopsbot.llm.models import LLMResponse, Message
from hoopsbot.llm.orchestrator import ConversationOrchestrator

logger = get_logger(__name__)

THROTTLED_MESSAGE = "Please wait a moment before sending another request."


class HistoryEntry(BaseModel):
    """A prior turn as the caller remembers it."""

    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    query: str = Field(description="The user's question")
    conversation_history: list[HistoryEntry] = Field(
        default_factory=list,
        description="Prior turns, oldest first",
    )


class ChatResponse(BaseModel):
    response: str = Field(description="Displayable answer or advisory text")
    throttled: bool = Field(default=False, description="True if the request was rejected")
    details: LLMResponse | None = Field(
        default=None,
        description="Tool calls, model and usage for the answer (None when throttled)",
    )


class ChatService:
    """
    Gate + orchestrate.

    Args:
        orchestrator: Answers accepted queries
        throttle: Per-session cooldown gate
    """

    def __init__(self, orchestrator: ConversationOrchestrator, throttle: RequestThrottle):
        self._orchestrator = orchestrator
        self._throttle = throttle

    @property
    def throttle(self) -> RequestThrottle:
        return self._throttle

    async def handle(
        self,
        request: ChatRequest,
        session_id: Hashable = DEFAULT_SESSION,
    ) -> ChatResponse:
        """Answer a chat request, or return THROTTLED_MESSAGE if the session must wait."""
        with self._throttle.hold(session_id) as accepted:
            if not accepted:
                logger.info(f"Throttled request from session {session_id!r}")
                return ChatResponse(response=THROTTLED_MESSAGE, throttled=True)

            history = [
                Message(role=entry.role, content=entry.content)
                for entry in request.conversation_history
            ]
            result = await self._orchestrator.run(request.query, history)
            return ChatResponse(response=result.text, details=result)
