"""Options and setup shared by the commands that talk to the assistant."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import click

from vaultchat.config.models import ChatSettings
from vaultchat.config.parser import ConfigError, load_settings

F = TypeVar("F", bound=Callable[..., Any])

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def session_options(func: F) -> F:
    """Attach ``--workspace``, ``--config`` and ``--verbose``."""
    func = click.option(
        "-v", "--verbose", is_flag=True, help="Enable debug logging."
    )(func)
    func = click.option(
        "-c",
        "--config",
        "config_file",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Settings file (default: ./vaultchat.yaml if present).",
    )(func)
    func = click.option(
        "-w",
        "--workspace",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        default=".",
        show_default=True,
        help="Working directory for the assistant.",
    )(func)
    return func


def configure_logging(verbose: bool, debug_context: bool = False) -> None:
    """Send log records to stderr; DEBUG with --verbose, INFO for debug_context."""
    if verbose:
        level = logging.DEBUG
    elif debug_context:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=_LOG_FORMAT, force=True)


def load_settings_or_exit(config_file: Path | None) -> ChatSettings:
    try:
        return load_settings(config_file)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
