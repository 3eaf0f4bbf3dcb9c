"""Conversation events, identifiers, and the in-memory transcript."""

from vaultchat.session.ids import Clock, IdFactory, counter_ids, new_id, utc_now
from vaultchat.session.models import (
    AssistantEvent,
    ContentBlock,
    ConversationEvent,
    Message,
    OtherBlock,
    ResultEvent,
    SystemEvent,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    Usage,
    UserEvent,
)
from vaultchat.session.transcript import Transcript

__all__ = [
    "AssistantEvent",
    "Clock",
    "ContentBlock",
    "ConversationEvent",
    "IdFactory",
    "Message",
    "OtherBlock",
    "ResultEvent",
    "SystemEvent",
    "TextBlock",
    "ToolResultBlock",
    "ToolUseBlock",
    "Transcript",
    "Usage",
    "UserEvent",
    "counter_ids",
    "new_id",
    "utc_now",
]
