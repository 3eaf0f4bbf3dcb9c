"""Plain terminal rendering of conversation events."""

from __future__ import annotations

import json
from typing import Any

import click

from vaultchat.session.models import (
    AssistantEvent,
    ContentBlock,
    ConversationEvent,
    ResultEvent,
    SystemEvent,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserEvent,
)

#: Tool results longer than this are truncated on screen.
_MAX_TOOL_RESULT_CHARS = 800

#: Notice subtypes rendered as errors rather than informational lines.
_ERROR_SUBTYPES = {"error", "stderr", "exit", "spawn_error", "parse_error"}


class ConsoleRenderer:
    """Event consumer that prints each event with ``click.echo``.

    Errors go to stderr; everything else to stdout.
    """

    def __init__(self, show_tool_results: bool = True) -> None:
        self._show_tool_results = show_tool_results

    def __call__(self, event: ConversationEvent) -> None:
        self.render(event)

    def render(self, event: ConversationEvent) -> None:
        if isinstance(event, SystemEvent):
            self._render_system(event)
        elif isinstance(event, AssistantEvent):
            for block in event.message.content:
                self._render_block(block)
        elif isinstance(event, UserEvent):
            if event.is_user_input:
                text = " ".join(
                    b.text for b in event.message.content if isinstance(b, TextBlock)
                )
                click.echo(click.style(f"> {text}", bold=True))
            elif self._show_tool_results:
                for block in event.message.content:
                    self._render_block(block)
        elif isinstance(event, ResultEvent):
            self._render_result(event)

    def _render_system(self, event: SystemEvent) -> None:
        if event.subtype == "init":
            click.echo(click.style(f"● session {event.session_id}", dim=True))
        elif event.subtype in _ERROR_SUBTYPES:
            click.echo(click.style(f"✗ {event.result}", fg="red"), err=True)
        elif event.subtype == "cancelled":
            click.echo(click.style(f"■ {event.result}", fg="yellow"))
        else:
            click.echo(f"System: {event.result or event.subtype}")

    def _render_block(self, block: ContentBlock) -> None:
        if isinstance(block, TextBlock):
            if block.text:
                click.echo(block.text)
        elif isinstance(block, ToolUseBlock):
            args = json.dumps(block.input, default=str)
            click.echo(click.style(f"⚙ {block.name} {args}", fg="cyan"))
        elif isinstance(block, ToolResultBlock):
            text = _tool_result_text(block.content)
            if len(text) > _MAX_TOOL_RESULT_CHARS:
                text = text[:_MAX_TOOL_RESULT_CHARS] + " …"
            color = "red" if block.is_error else None
            for line in text.splitlines() or [""]:
                click.echo(click.style(f"  │ {line}", fg=color, dim=not block.is_error))

    def _render_result(self, event: ResultEvent) -> None:
        parts = [f"{event.duration_ms / 1000:.1f}s", f"{event.num_turns} turn(s)"]
        if event.total_cost_usd is not None:
            parts.append(f"${event.total_cost_usd:.4f}")
        status = "error" if event.is_error else event.subtype
        click.echo(click.style(f"— {status} · {' · '.join(parts)}", dim=True))


def _tool_result_text(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Lists of {"type": "text", "text": ...} items as sent by the CLI.
        texts = [
            item.get("text", "")
            for item in content
            if isinstance(item, dict) and item.get("type") == "text"
        ]
        if texts:
            return "\n".join(texts)
    return json.dumps(content, default=str)
