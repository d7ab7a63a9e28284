"""
Chat Layer.

The request/response surface front-ends call: per-session throttling in
front of the conversation orchestrator.
"""

from hoopsbot.chat.service import (
    THROTTLED_MESSAGE,
    ChatRequest,
    ChatResponse,
    ChatService,
    HistoryEntry,
)
from hoopsbot.chat.throttle import RequestThrottle, ThrottleState

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "ChatService",
    "HistoryEntry",
    "RequestThrottle",
    "THROTTLED_MESSAGE",
    "ThrottleState",
]
