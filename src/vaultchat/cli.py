"""Root CLI group and version flag."""

import signal

import click

# Keep SIGPIPE from killing the process when stdout is closed mid-stream
# (e.g. `vaultchat ask ... | head`).
if hasattr(signal, "SIGPIPE"):
    signal.signal(signal.SIGPIPE, signal.SIG_IGN)

from vaultchat import __version__
from vaultchat.commands.ask import ask
from vaultchat.commands.chat import chat
from vaultchat.commands.init import init


@click.group()
@click.version_option(version=__version__, prog_name="vaultchat")
def cli() -> None:
    """vaultchat — stream conversations with an AI coding assistant CLI."""


cli.add_command(init)
cli.add_command(ask)
cli.add_command(chat)
