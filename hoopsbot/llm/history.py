"""
Conversation history pruning.

The single authority for bounding how much prior conversation reaches the
model. Keeps the first message as an anchor plus the most recent tail.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")

DEFAULT_HISTORY_LIMIT = 6


def prune(history: Sequence[T], max_items: int = DEFAULT_HISTORY_LIMIT) -> list[T]:
    """
    Bound ``history`` to at most ``max_items`` entries.

    Histories that already fit come back element-for-element. Longer ones
    keep their first entry followed by the last ``max_items - 1`` entries,
    in original order. The input is never mutated.

    Args:
        history: Ordered conversation entries (oldest first)
        max_items: Maximum number of entries to keep (>= 1)

    Returns:
        A new list with the retained entries

    Raises:
        ValueError: If max_items is less than 1
    """
    if max_items < 1:
        raise ValueError(f"max_items must be at least 1, got {max_items}")

    if len(history) <= max_items:
        return list(history)

    tail = list(history[len(history) - (max_items - 1):]) if max_items > 1 else []
    return [history[0], *tail]
