"""In-memory transcript — the simplest conversation consumer."""

from __future__ import annotations

import threading

from vaultchat.session.models import (
    ConversationEvent,
    ResultEvent,
    SystemEvent,
    ToolResultBlock,
    ToolUseBlock,
    UserEvent,
)


class Transcript:
    """Collects conversation events in arrival order.

    Usable directly as the controller's event callback.  Nothing is written
    to disk; ``clear()`` forgets the conversation when a new one starts.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[ConversationEvent] = []

    def __call__(self, event: ConversationEvent) -> None:
        self.record(event)

    def __len__(self) -> int:
        return len(self._events)

    @property
    def events(self) -> list[ConversationEvent]:
        """Snapshot of the recorded events."""
        with self._lock:
            return list(self._events)

    def record(self, event: ConversationEvent) -> None:
        with self._lock:
            self._events.append(event)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def notices(self, subtype: str | None = None) -> list[SystemEvent]:
        """System events, optionally filtered by *subtype*."""
        return [
            e
            for e in self.events
            if isinstance(e, SystemEvent) and (subtype is None or e.subtype == subtype)
        ]

    def last_result(self) -> ResultEvent | None:
        for event in reversed(self.events):
            if isinstance(event, ResultEvent):
                return event
        return None

    def tool_result_for(self, tool_use: ToolUseBlock) -> ToolResultBlock | None:
        """Find the tool_result answering *tool_use*, if one has arrived.

        Correlation is by identifier only; unmatched ids are not an error.
        """
        for event in self.events:
            if not isinstance(event, UserEvent):
                continue
            for block in event.message.content:
                if isinstance(block, ToolResultBlock) and block.tool_use_id == tool_use.id:
                    return block
        return None
