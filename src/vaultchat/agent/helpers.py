"""Shared helper functions for delivering events to the consumer."""

from __future__ import annotations

import logging

from vaultchat.constants import EventCallback
from vaultchat.session.models import ConversationEvent, SystemEvent

_logger = logging.getLogger(__name__)


def format_stderr_preview(stderr_text: str, max_lines: int = 5) -> str:
    """Extract and format the last N non-empty lines from stderr output."""
    lines = [line for line in stderr_text.split("\n") if line.strip()]
    last = lines[-max_lines:] if len(lines) > max_lines else lines
    return "\n  ".join(last)


def deliver(on_event: EventCallback, event: ConversationEvent) -> None:
    """Hand *event* to the consumer; a failing consumer never stops the stream."""
    try:
        on_event(event)
    except Exception:
        _logger.exception(
            "event consumer failed on %s event %s", event.type, event.uuid
        )


def emit_notice(
    on_event: EventCallback,
    notice: SystemEvent,
    level: int = logging.ERROR,
    logger: logging.Logger | None = None,
) -> None:
    """Log and deliver a synthetic notice in one call."""
    if logger:
        logger.log(level, "%s: %s", notice.subtype, notice.result)
    deliver(on_event, notice)
