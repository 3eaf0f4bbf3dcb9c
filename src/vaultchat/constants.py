"""Shared constants and type aliases for vaultchat."""

from __future__ import annotations

from collections.abc import Callable

from vaultchat.session.models import ConversationEvent

#: Consumer callback, invoked once per event, in order, never concurrently.
EventCallback = Callable[[ConversationEvent], None]

#: Flags passed on every invocation of the assistant CLI.
STREAM_ARGS: tuple[str, ...] = (
    "--output-format",
    "stream-json",
    "--permission-mode",
    "bypassPermissions",
    "--dangerously-skip-permissions",
    "--verbose",
)

#: Flag used to continue an earlier session.
RESUME_FLAG = "--resume"

#: Environment overrides applied on top of the inherited environment.
CHILD_ENV_OVERRIDES: dict[str, str] = {"FORCE_COLOR": "0"}
