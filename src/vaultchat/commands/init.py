"""vaultchat init — scaffold a settings file."""

from __future__ import annotations

from pathlib import Path

import click

from vaultchat.config.parser import DEFAULT_CONFIG_NAME

TEMPLATE_YAML = """\
# vaultchat settings
# Every key is optional; the values below are the defaults.

# Path to the JavaScript runtime used to launch the assistant.
# Leave empty to run the assistant entry point directly.
# node_location: /usr/local/bin/node

# Path to the assistant CLI. Leave empty to look up `claude` on PATH.
# claude_location: /usr/local/bin/claude

# Run the assistant through another environment, e.g. WSL on Windows.
# wsl_prefix: [wsl.exe, -d, Ubuntu]

# Prefix prompts with the path of the file you are working on.
include_file_context: true

# Log composed prompts and every raw stream frame.
debug_context: false

# Seconds to wait after SIGTERM before SIGKILL when shutting down.
shutdown_timeout: 3.0
"""


@click.command()
@click.option(
    "--force",
    is_flag=True,
    help=f"Overwrite existing {DEFAULT_CONFIG_NAME} if it exists.",
)
def init(force: bool) -> None:
    """Create a vaultchat.yaml in the current directory."""
    config_path = Path.cwd() / DEFAULT_CONFIG_NAME

    if config_path.exists() and not force:
        raise click.ClickException(
            f"{DEFAULT_CONFIG_NAME} already exists. Use --force to overwrite."
        )

    try:
        config_path.write_text(TEMPLATE_YAML, encoding="utf-8")
    except OSError as exc:
        raise click.ClickException(
            f"Cannot write {DEFAULT_CONFIG_NAME}: {exc}"
        ) from exc
    click.echo(f"  Created {DEFAULT_CONFIG_NAME}")

    click.echo()
    click.echo("Next steps:")
    click.echo(f"  1. Edit {DEFAULT_CONFIG_NAME} if `claude` is not on your PATH")
    click.echo('  2. Run `vaultchat ask "..."` or `vaultchat chat`')
