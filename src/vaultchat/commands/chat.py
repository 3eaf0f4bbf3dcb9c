"""vaultchat chat — interactive conversation with the assistant."""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
from pathlib import Path

import click

from vaultchat.agent.controller import ConversationController
from vaultchat.commands.options import (
    configure_logging,
    load_settings_or_exit,
    session_options,
)
from vaultchat.config.models import ChatSettings
from vaultchat.render import ConsoleRenderer

_HELP_TEXT = """\
  /new              start a new conversation
  /file [PATH]      set (or clear) the file sent as context
  /session          show the current session id
  /exit             quit
  Ctrl+C            cancel the running turn"""


@click.command()
@session_options
def chat(workspace: Path, config_file: Path | None, verbose: bool) -> None:
    """Start an interactive conversation in WORKSPACE."""
    settings = load_settings_or_exit(config_file)
    configure_logging(verbose, settings.debug_context)
    asyncio.run(_chat(workspace.resolve(), settings))


async def _chat(workspace: Path, settings: ChatSettings) -> None:
    controller = ConversationController(workspace, ConsoleRenderer(), settings=settings)
    loop = asyncio.get_running_loop()

    def _on_sigint() -> None:
        if not controller.cancel():
            click.echo("\n(type /exit or press Ctrl+D to quit)")

    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, _on_sigint)

    click.echo(f"vaultchat in {workspace} — /help for commands")
    current_file: str | None = None
    try:
        while True:
            try:
                line = await loop.run_in_executor(None, _read_input)
            except EOFError:
                break

            line = line.strip()
            if not line:
                continue

            if line.startswith("/"):
                cmd, _, arg = line.partition(" ")
                cmd = cmd.lower()
                if cmd == "/exit":
                    break
                if cmd == "/new":
                    controller.new_conversation()
                    click.echo("Started a new conversation.")
                elif cmd == "/file":
                    current_file = arg.strip() or None
                    click.echo(f"File context: {current_file or '(none)'}")
                elif cmd == "/session":
                    click.echo(f"Session: {controller.session_id or '(none yet)'}")
                elif cmd == "/help":
                    click.echo(_HELP_TEXT)
                else:
                    click.echo(f"Unknown command: {cmd}")
                continue

            await controller.submit(line, current_file=current_file)
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)
        await controller.shutdown()


def _read_input() -> str:
    r"""Blocking stdin reader for use with ``run_in_executor``.

    Lines ending with ``\`` continue on the next line.
    """
    lines: list[str] = []
    prompt = "> "

    while True:
        sys.stdout.write(prompt)
        sys.stdout.flush()

        line = sys.stdin.readline()
        if not line:
            raise EOFError
        line = line.rstrip("\n")

        if line.endswith("\\"):
            lines.append(line[:-1])
            prompt = "... "
        else:
            lines.append(line)
            return "\n".join(lines)
