"""Pydantic v2 models for conversation events and message content."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, field_validator

# ------------------------------------------------------------------ #
# Content blocks
# ------------------------------------------------------------------ #


class _BlockBase(BaseModel):
    """Common config for message content blocks.

    Unknown keys are kept so the block round-trips unchanged.
    """

    model_config = ConfigDict(extra="allow")


class TextBlock(_BlockBase):
    """Plain text produced by the assistant or typed by the user."""

    type: Literal["text"] = "text"
    text: str = Field(default="", description="Text content")


class ToolUseBlock(_BlockBase):
    """A tool invocation requested by the assistant."""

    type: Literal["tool_use"] = "tool_use"
    id: str = Field(default="", description="Identifier a later tool_result refers to")
    name: str = Field(default="", description="Tool name")
    input: Any = Field(default_factory=dict, description="Opaque tool arguments")


class ToolResultBlock(_BlockBase):
    """The result of a tool invocation, echoed back as a ``user`` message."""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str = Field(default="", description="Identifier of the matching tool_use")
    content: str | list[Any] | dict[str, Any] | None = Field(
        default=None, description="Tool output as text or structured value"
    )
    is_error: bool = Field(default=False, description="Whether the tool failed")


class OtherBlock(_BlockBase):
    """Any block type not modelled above (``thinking``, ``image``, ...)."""

    type: str = Field(default="unknown", description="Block type as sent on the wire")


def _block_discriminator(v: Any) -> str:
    if isinstance(v, dict):
        block_type = v.get("type")
    else:
        block_type = getattr(v, "type", None)
    if block_type in ("text", "tool_use", "tool_result"):
        return str(block_type)
    return "other"


ContentBlock = Annotated[
    Annotated[TextBlock, Tag("text")]
    | Annotated[ToolUseBlock, Tag("tool_use")]
    | Annotated[ToolResultBlock, Tag("tool_result")]
    | Annotated[OtherBlock, Tag("other")],
    Discriminator(_block_discriminator),
]
"""Discriminated union of message content blocks."""


# ------------------------------------------------------------------ #
# Messages
# ------------------------------------------------------------------ #


class Usage(BaseModel):
    """Token accounting attached to an assistant message."""

    model_config = ConfigDict(extra="allow")

    input_tokens: int | None = None
    output_tokens: int | None = None
    service_tier: str | None = None


class Message(BaseModel):
    """An API message carried by ``assistant`` and ``user`` events."""

    model_config = ConfigDict(extra="allow")

    id: str | None = Field(default=None, description="Message identifier")
    role: Literal["user", "assistant"] = Field(description="Message author")
    content: list[ContentBlock] = Field(
        default_factory=list, description="Ordered content blocks"
    )
    model: str | None = Field(default=None, description="Model that produced it")
    usage: Usage | None = Field(default=None, description="Token usage counters")

    @field_validator("content", mode="before")
    @classmethod
    def _normalize_content(cls, value: Any) -> Any:
        """Accept the API's shorthand forms of ``content``.

        A bare string is one text block, ``None`` is no blocks, and bare
        strings inside the list are text blocks too.
        """
        if value is None:
            return []
        if isinstance(value, str):
            return [{"type": "text", "text": value}]
        if isinstance(value, list):
            return [
                {"type": "text", "text": item} if isinstance(item, str) else item
                for item in value
            ]
        return value


# ------------------------------------------------------------------ #
# Conversation events
# ------------------------------------------------------------------ #


class _EventBase(BaseModel):
    """Common envelope fields shared by every conversation event."""

    model_config = ConfigDict(extra="forbid")

    session_id: str = Field(description="Assistant-assigned session identifier")
    uuid: str = Field(description="Locally generated, unique event identifier")
    timestamp: datetime = Field(description="When the event was created (UTC)")
    has_wire_session: bool = Field(
        default=False,
        exclude=True,
        description="True when session_id came from the stream, not a placeholder",
    )


class SystemEvent(_EventBase):
    """Stream handshake (``init``) or a locally synthesized notice."""

    type: Literal["system"] = "system"
    subtype: str = Field(
        description="init, or one of error/stderr/exit/cancelled/spawn_error/parse_error",
    )
    result: str | None = Field(default=None, description="Notice text")


class AssistantEvent(_EventBase):
    """A message authored by the assistant."""

    type: Literal["assistant"] = "assistant"
    message: Message


class UserEvent(_EventBase):
    """A ``user`` role message.

    Either text the user typed (``is_user_input=True``) or a tool result
    the assistant fed back to itself.
    """

    type: Literal["user"] = "user"
    message: Message
    is_user_input: bool = False


class ResultEvent(_EventBase):
    """Terminal summary of one turn."""

    type: Literal["result"] = "result"
    subtype: str = Field(default="success", description="success or an error kind")
    duration_ms: int = Field(default=0, ge=0, description="Wall-clock duration")
    duration_api_ms: int = Field(default=0, ge=0, description="Time spent in the API")
    is_error: bool = False
    num_turns: int = Field(default=1, ge=0, description="Assistant turns taken")
    result: str | None = Field(default=None, description="Final text")
    total_cost_usd: float | None = Field(default=None, description="Cost in USD")


def _event_discriminator(v: Any) -> str:
    """Extract the discriminator value from raw data or a model instance."""
    if isinstance(v, dict):
        return str(v.get("type", ""))
    return str(getattr(v, "type", ""))


ConversationEvent = Annotated[
    Annotated[SystemEvent, Tag("system")]
    | Annotated[AssistantEvent, Tag("assistant")]
    | Annotated[UserEvent, Tag("user")]
    | Annotated[ResultEvent, Tag("result")],
    Discriminator(_event_discriminator),
]
"""Discriminated union of all conversation event types."""
