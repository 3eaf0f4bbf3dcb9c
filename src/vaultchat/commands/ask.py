"""vaultchat ask — run a single turn and print the conversation."""

from __future__ import annotations

import asyncio
import contextlib
import signal
from pathlib import Path

import click

from vaultchat.agent.controller import ConversationController, TurnOutcome
from vaultchat.commands.options import (
    configure_logging,
    load_settings_or_exit,
    session_options,
)
from vaultchat.config.models import ChatSettings
from vaultchat.render import ConsoleRenderer


@click.command()
@click.argument("prompt")
@click.option(
    "-f",
    "--file",
    "current_file",
    type=str,
    default=None,
    help="Path of the file the prompt is about (sent as context).",
)
@session_options
def ask(
    prompt: str,
    current_file: str | None,
    workspace: Path,
    config_file: Path | None,
    verbose: bool,
) -> None:
    """Send PROMPT to the assistant and stream its reply."""
    settings = load_settings_or_exit(config_file)
    configure_logging(verbose, settings.debug_context)

    outcome = asyncio.run(_ask(prompt, current_file, workspace, settings))
    if outcome != "completed":
        raise SystemExit(1)


async def _ask(
    prompt: str,
    current_file: str | None,
    workspace: Path,
    settings: ChatSettings,
) -> TurnOutcome:
    controller = ConversationController(
        workspace.resolve(), ConsoleRenderer(), settings=settings
    )
    loop = asyncio.get_running_loop()
    # Ctrl+C cancels the turn instead of tearing down the event loop.
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, controller.cancel)
    try:
        return await controller.submit(prompt, current_file=current_file)
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)
        await controller.shutdown()
